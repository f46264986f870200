"""
Chat router — POST /api/chat endpoint.

Runs the chat pipeline and streams the model's answer back as plain
UTF-8 text. Any failure before streaming starts becomes a generic 500.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from chatrelay.models.chat import ChatRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


def get_rag_orchestrator(request: Request):
    """
    Dependency injection for the RAG orchestrator.
    Initialized once in the lifespan and stored in app.state.
    """
    return request.app.state.rag_orchestrator


@router.post("/chat")
async def chat(
    body: ChatRequest,
    rag=Depends(get_rag_orchestrator),
) -> Response:
    """
    Answer a chat conversation as a live text stream.

    The endpoint:
    1. Augments the latest question with retrieved passages.
    2. Trims the conversation to the model's token budget.
    3. Relays the completion fragments as they arrive.
    """
    try:
        stream = await rag.run(body)
    except Exception:
        logger.exception("Chat pipeline failed")
        return PlainTextResponse("Error", status_code=500)

    return StreamingResponse(stream, media_type="text/plain; charset=utf-8")
