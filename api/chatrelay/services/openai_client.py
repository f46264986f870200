"""
OpenAI client wrapper.

Embeds the user's question for vector retrieval. The API key is resolved
per request, so each call gets its own SDK client over the shared
connection pool.
"""

import logging

import httpx
from openai import APIError, AsyncOpenAI

from chatrelay.core.config import Settings
from chatrelay.core.credentials import ResolvedCredential
from chatrelay.core.errors import EmbeddingError
from chatrelay.core.telemetry import get_tracer

logger = logging.getLogger(__name__)


def build_client(
    settings: Settings,
    credential: ResolvedCredential,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncOpenAI:
    """Return an SDK client authenticated with the request's API key."""
    return AsyncOpenAI(
        api_key=credential.api_key.get_secret_value(),
        base_url=f"{settings.openai_api_host.rstrip('/')}/v1",
        timeout=settings.request_timeout_seconds,
        max_retries=0,
        http_client=http_client,
    )


class OpenAIEmbeddingService:
    """Wrapper around the OpenAI embeddings endpoint."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._http_client = http_client
        self._tracer = get_tracer()

    async def embed_text(self, text: str, credential: ResolvedCredential) -> list[float]:
        """
        Generate an embedding vector for the given text.

        Args:
            text: The question to embed.
            credential: The API key resolved for this request.

        Returns:
            A list of floats representing the embedding vector.

        Raises:
            EmbeddingError: If the endpoint returns a non-success response
                or cannot be reached.
        """
        with self._tracer.start_as_current_span("retrieval.embed") as span:
            span.set_attribute("openai.model", self._settings.embedding_model)
            span.set_attribute("openai.credential_source", credential.source)

            client = build_client(self._settings, credential, self._http_client)
            try:
                response = await client.embeddings.create(
                    input=text,
                    model=self._settings.embedding_model,
                )
            except APIError as exc:
                raise EmbeddingError(f"OpenAI API returned an error: {exc}") from exc
            finally:
                # A shared pool outlives the SDK client
                if self._http_client is None:
                    await client.close()

            if not response.data:
                raise EmbeddingError("OpenAI API returned no embedding data")
            return response.data[0].embedding
