"""
RAG Orchestrator — Core chat pipeline.

Coordinates the Retrieve → Assemble → Relay flow:
1. Resolve the API key for this request.
2. Rewrite the last user message with retrieved passages.
3. Select the trailing messages that fit the model's token budget.
4. Open the streaming completion and hand its byte stream back.
"""

import logging

from chatrelay.core.config import Settings
from chatrelay.core.credentials import resolve_credential
from chatrelay.core.errors import PipelineError
from chatrelay.core.telemetry import get_tracer, record_pipeline_error
from chatrelay.models.chat import ChatRequest
from chatrelay.services.completion import CompletionRelay, CompletionStream
from chatrelay.services.context_window import TokenCounter, select_window
from chatrelay.services.retrieval import RetrievalAugmenter

logger = logging.getLogger(__name__)


class RAGOrchestrator:
    """Orchestrates the full pipeline for one chat request."""

    def __init__(
        self,
        augmenter: RetrievalAugmenter,
        tokenizer: TokenCounter,
        relay: CompletionRelay,
        settings: Settings,
    ) -> None:
        self._augmenter = augmenter
        self._tokenizer = tokenizer
        self._relay = relay
        self._settings = settings
        self._tracer = get_tracer()

    def instruction_for(self, request: ChatRequest) -> str:
        """Return the caller's system prompt, or the configured default."""
        if request.prompt and request.prompt.strip():
            return request.prompt
        return self._settings.default_system_prompt

    async def run(self, request: ChatRequest) -> CompletionStream:
        """
        Process a chat request up to the point where the answer streams.

        Args:
            request: The validated inbound chat request.

        Returns:
            A CompletionStream yielding the answer as UTF-8 bytes.

        Raises:
            PipelineError: On any fatal stage failure.
        """
        with self._tracer.start_as_current_span("rag.run") as span:
            try:
                return await self._run(request, span)
            except PipelineError as exc:
                record_pipeline_error(span, exc)
                raise

    async def _run(self, request: ChatRequest, span) -> CompletionStream:
        span.set_attribute("rag.model", request.model.id)
        span.set_attribute("rag.message_count", len(request.messages))

        # Step 1: Credential
        credential = resolve_credential(request.key, self._settings)

        # Step 2: Retrieval augmentation
        augmented = await self._augmenter.augment(request.messages, credential)
        span.set_attribute("rag.augmented", augmented.prompt is not None)

        # Step 3: Token-budgeted window
        instruction = self.instruction_for(request)
        budget = self._settings.token_budget_for(
            request.model.tier, request.model.id
        )
        window = select_window(
            instruction, augmented.messages, budget, self._tokenizer
        )
        logger.info(
            "Sending %d of %d messages (%d/%d tokens) to %s",
            len(window.messages),
            len(augmented.messages),
            window.token_count,
            budget,
            request.model.id,
        )

        # Step 4: Completion relay
        return await self._relay.open(
            request.model.id,
            instruction,
            window.messages,
            credential,
            augmented.question,
        )
