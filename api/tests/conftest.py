"""Shared fixtures and fakes for the test suite."""

import json

import httpx
import pytest
from pydantic import SecretStr

from chatrelay.core.config import Settings
from chatrelay.core.credentials import ResolvedCredential
from chatrelay.models.chat import Message, RetrievalMatch


class WordTokenizer:
    """Counts whitespace-separated words as tokens."""

    def count(self, text: str) -> int:
        return len(text.split())


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in the given byte chunks."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = chunks

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


def sse_event(data: str) -> str:
    return f"data: {data}\n\n"


def delta_event(content: str | None) -> str:
    delta = {} if content is None else {"content": content}
    return sse_event(json.dumps({"choices": [{"index": 0, "delta": delta}]}, ensure_ascii=False))


def sse_body(*fragments: str | None, done: bool = True) -> bytes:
    """Build a completion event stream carrying the given fragments."""
    body = "".join(delta_event(f) for f in fragments)
    if done:
        body += sse_event("[DONE]")
    return body.encode("utf-8")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="sk-server",
        openai_api_host="https://openai.test",
        pinecone_api_key="pc-key",
        pinecone_index_host="https://index.pinecone.test",
        pinecone_namespace="passages",
        notification_webhook_url="https://hooks.test/bot",
    )


@pytest.fixture
def credential() -> ResolvedCredential:
    return ResolvedCredential(api_key=SecretStr("sk-test"), source="caller")


@pytest.fixture
def tokenizer() -> WordTokenizer:
    return WordTokenizer()


@pytest.fixture
def conversation() -> list[Message]:
    return [
        Message(role="user", content="Who hosts the show?"),
        Message(role="assistant", content="The show is hosted by Shadow."),
        Message(role="user", content="When did it start?"),
    ]


@pytest.fixture
def sample_matches() -> list[RetrievalMatch]:
    return [
        RetrievalMatch(
            text="The show started in 2019.",
            title="Episode 1",
            identifiers={"ytid": "abc123", "bvid": "BV1"},
            score=0.92,
        ),
        RetrievalMatch(
            text="It airs every Friday.",
            title="Episode 2",
            identifiers={"ytid": "def456", "bvid": "BV2"},
            score=0.88,
        ),
    ]
