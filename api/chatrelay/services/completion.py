"""
Streaming relay for OpenAI chat completions.

Opens a streaming completion through the OpenAI SDK and forwards each
content delta to the caller as raw UTF-8 bytes. When the upstream stream
ends, the full answer is logged and the notification webhook is called
in the background.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass, field

import httpx
from openai import APIError, APIStatusError, AsyncStream
from openai.types.chat import ChatCompletionChunk
from pydantic import BaseModel, Field, ValidationError

from chatrelay.core.config import Settings
from chatrelay.core.credentials import ResolvedCredential
from chatrelay.core.errors import CompletionError, MalformedEventError
from chatrelay.core.telemetry import get_tracer, record_pipeline_error
from chatrelay.models.chat import Message
from chatrelay.services.notifier import WebhookNotifier
from chatrelay.services.openai_client import build_client

logger = logging.getLogger(__name__)


class CompletionDelta(BaseModel):
    content: str | None = None


class CompletionChoice(BaseModel):
    delta: CompletionDelta


class CompletionChunk(BaseModel):
    """The part of a streamed completion chunk the relay reads."""

    choices: list[CompletionChoice] = Field(min_length=1)


def parse_fragment(chunk: object) -> str:
    """
    Extract the text fragment from a streamed chunk.

    Accepts SDK chunk objects as well as plain dicts.

    Raises:
        MalformedEventError: If the chunk has no choice with a delta.
    """
    try:
        parsed = CompletionChunk.model_validate(chunk, from_attributes=True)
    except ValidationError as exc:
        raise MalformedEventError(f"Malformed completion event: {exc}") from exc
    return parsed.choices[0].delta.content or ""


@dataclass
class StreamSession:
    """Fragments emitted by one completion stream."""

    question: str
    fragments: list[str] = field(default_factory=list)
    finished: bool = False

    def append(self, fragment: str) -> None:
        self.fragments.append(fragment)

    @property
    def answer(self) -> str:
        return "".join(self.fragments)


class CompletionStream:
    """
    Lazy byte stream over an open upstream completion.

    Iterate it once. The upstream response is closed when iteration ends,
    fails, or is abandoned by the consumer.
    """

    def __init__(
        self,
        upstream: AsyncStream[ChatCompletionChunk],
        question: str,
        on_finished: Callable[[str, str], None] | None = None,
    ) -> None:
        self._upstream = upstream
        self._question = question
        self._on_finished = on_finished
        self.session: StreamSession | None = None

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.iter_bytes()

    async def _next_chunk(self) -> ChatCompletionChunk | None:
        try:
            return await anext(self._upstream)
        except StopAsyncIteration:
            return None
        except ValueError as exc:
            raise MalformedEventError(f"Malformed completion event: {exc}") from exc
        except APIError as exc:
            raise CompletionError(f"Completion stream failed: {exc}") from exc

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        session = StreamSession(question=self._question)
        self.session = session
        span = get_tracer().start_span("completion.stream")
        try:
            while True:
                try:
                    chunk = await self._next_chunk()
                    if chunk is None:
                        break
                    fragment = parse_fragment(chunk)
                except (MalformedEventError, CompletionError) as exc:
                    logger.error("%s", exc)
                    record_pipeline_error(span, exc)
                    raise
                session.append(fragment)
                if fragment:
                    yield fragment.encode("utf-8")
            self._finalize(session)
        finally:
            span.set_attribute("completion.fragments", len(session.fragments))
            span.set_attribute("completion.finished", session.finished)
            span.end()
            await self._upstream.close()

    async def aclose(self) -> None:
        """Close the upstream response without reading it."""
        await self._upstream.close()

    def _finalize(self, session: StreamSession) -> None:
        session.finished = True
        answer = session.answer
        logger.info("Completion answer: %s", answer)
        if self._on_finished is not None:
            self._on_finished(session.question, answer)


class CompletionRelay:
    """Opens streaming completion requests against the OpenAI API."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        notifier: WebhookNotifier | None = None,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._notifier = notifier
        self._pending: set[asyncio.Task] = set()
        self._tracer = get_tracer()

    @staticmethod
    def build_messages(instruction: str, window: Sequence[Message]) -> list[dict]:
        """Return the upstream message list: instruction first, then the window."""
        return [
            {"role": "system", "content": instruction},
            *(m.model_dump() for m in window),
        ]

    async def open(
        self,
        model_id: str,
        instruction: str,
        window: Sequence[Message],
        credential: ResolvedCredential,
        question: str,
    ) -> CompletionStream:
        """
        Send the completion request and return a stream over its body.

        Raises:
            CompletionError: If the endpoint is unreachable or responds
                with a non-success status.
        """
        with self._tracer.start_as_current_span("completion.connect") as span:
            span.set_attribute("openai.model", model_id)
            span.set_attribute("openai.window_messages", len(window))

            client = build_client(self._settings, credential, self._http)
            try:
                upstream = await client.chat.completions.create(
                    model=model_id,
                    messages=self.build_messages(instruction, window),
                    max_tokens=self._settings.completion_max_tokens,
                    temperature=self._settings.completion_temperature,
                    stream=True,
                )
            except APIStatusError as exc:
                reason = exc.response.reason_phrase
                raise CompletionError(f"OpenAI API returned an error: {reason}") from exc
            except APIError as exc:
                raise CompletionError(f"Completion request failed: {exc}") from exc

        return CompletionStream(upstream, question, self._dispatch_notification)

    def _dispatch_notification(self, question: str, answer: str) -> None:
        if self._notifier is None:
            return
        task = asyncio.create_task(self._deliver(question, answer))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, question: str, answer: str) -> None:
        try:
            await self._notifier.notify(question, answer)
        except Exception:
            logger.exception("Notification dispatch failed.")

    async def drain(self) -> None:
        """Wait for notifications still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending)
