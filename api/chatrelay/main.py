"""
FastAPI application entrypoint.

Registers routers, configures CORS, initializes telemetry,
and creates service instances on startup.
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatrelay.core.config import get_settings
from chatrelay.core.telemetry import setup_telemetry
from chatrelay.routers import chat, health
from chatrelay.services.completion import CompletionRelay
from chatrelay.services.notifier import WebhookNotifier
from chatrelay.services.openai_client import OpenAIEmbeddingService
from chatrelay.services.rag import RAGOrchestrator
from chatrelay.services.retrieval import RetrievalAugmenter
from chatrelay.services.search import VectorIndexService
from chatrelay.services.tokenizer import get_tokenizer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """
    Application lifespan handler.
    Initializes service clients on startup, cleans up on shutdown.
    """
    settings = get_settings()

    # Configure logging
    logging.basicConfig(level=settings.log_level)

    # Initialize telemetry
    setup_telemetry(settings.applicationinsights_connection_string)

    # Token encoding must load before any request is served
    tokenizer = get_tokenizer(settings.tokenizer_encoding)

    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout_seconds),
    )

    # Initialize service clients
    embedding_service = OpenAIEmbeddingService(settings, http_client)
    index_service = VectorIndexService(settings, http_client)
    notifier = WebhookNotifier(settings, http_client)
    augmenter = RetrievalAugmenter(embedding_service, index_service, settings)
    relay = CompletionRelay(settings, http_client, notifier)
    rag_orchestrator = RAGOrchestrator(augmenter, tokenizer, relay, settings)

    # Store in app state for dependency injection
    application.state.rag_orchestrator = rag_orchestrator

    logger.info("Retrieval chat relay started.")
    try:
        yield
    finally:
        await relay.drain()
        await http_client.aclose()
        logger.info("Retrieval chat relay shutting down.")


app = FastAPI(
    title="Retrieval Chat Relay API",
    description="Streams retrieval-augmented chat completions.",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health.router)
app.include_router(chat.router)
