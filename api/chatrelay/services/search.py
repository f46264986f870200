"""
Pinecone vector index client.

Queries the index over its REST API for the passages closest to an
embedding and validates the metadata stored with each match.
"""

import logging

import httpx
from pydantic import ValidationError

from chatrelay.core.config import Settings
from chatrelay.core.errors import IndexQueryError
from chatrelay.core.telemetry import get_tracer
from chatrelay.models.chat import MatchMetadata, RetrievalMatch

logger = logging.getLogger(__name__)


class VectorIndexService:
    """Wrapper around a Pinecone index for passage retrieval."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client
        self._tracer = get_tracer()

    async def query(self, vector: list[float]) -> list[RetrievalMatch]:
        """
        Return the top-K matches for a vector within the configured namespace.

        Args:
            vector: The embedded question.

        Returns:
            Matches in index order. Matches with invalid metadata are dropped.

        Raises:
            IndexQueryError: If the index is not configured, unreachable,
                or returns a non-success or undecodable response.
        """
        with self._tracer.start_as_current_span("retrieval.query") as span:
            host = self._settings.pinecone_index_host.rstrip("/")
            if not host:
                raise IndexQueryError("Pinecone index host is not configured")

            span.set_attribute("pinecone.namespace", self._settings.pinecone_namespace)
            span.set_attribute("pinecone.top_k", self._settings.retrieval_top_k)

            try:
                response = await self._http.post(
                    f"{host}/query",
                    headers={
                        "Api-Key": self._settings.pinecone_api_key.get_secret_value(),
                        "Content-Type": "application/json",
                    },
                    json={
                        "vector": vector,
                        "topK": self._settings.retrieval_top_k,
                        "includeValues": False,
                        "includeMetadata": True,
                        "namespace": self._settings.pinecone_namespace,
                    },
                    timeout=self._settings.request_timeout_seconds,
                )
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise IndexQueryError(f"Pinecone query failed: {exc}") from exc

            raw_matches = payload.get("matches") if isinstance(payload, dict) else None
            matches = parse_matches(raw_matches or [])
            span.set_attribute("pinecone.results_count", len(matches))
            logger.info("Pinecone query returned %d matches", len(matches))
            return matches


def parse_matches(raw_matches: list) -> list[RetrievalMatch]:
    """Convert raw Pinecone matches into validated RetrievalMatch records."""
    matches: list[RetrievalMatch] = []
    for raw in raw_matches:
        if not isinstance(raw, dict):
            logger.warning("Dropping match with unexpected shape: %r", raw)
            continue
        try:
            metadata = MatchMetadata.model_validate(raw.get("metadata") or {})
        except ValidationError as exc:
            logger.warning("Dropping match %s with invalid metadata: %s", raw.get("id"), exc)
            continue

        identifiers = {
            key: str(value)
            for key, value in (metadata.model_extra or {}).items()
            if isinstance(value, (str, int))
        }
        score = raw.get("score")
        matches.append(
            RetrievalMatch(
                text=metadata.text,
                title=metadata.title,
                identifiers=identifiers,
                score=float(score) if isinstance(score, (int, float)) else 0.0,
            )
        )
        logger.debug("Match metadata: %s", metadata.model_dump())
    return matches
