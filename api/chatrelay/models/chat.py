"""
Pydantic models for the Chat API request contract and pipeline records.
"""

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Message(BaseModel):
    """A single message in the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"] = Field(
        ..., description="Message role: 'system', 'user' or 'assistant'"
    )
    content: str = Field(..., description="Message content")


class ModelInfo(BaseModel):
    """The completion model requested by the caller."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Upstream model identifier, e.g. gpt-3.5-turbo")
    tier: str | None = Field(
        None, description="Model tier used to select the token budget"
    )


class ChatRequest(BaseModel):
    """Request body for the POST /api/chat endpoint."""

    model_config = ConfigDict(frozen=True)

    model: ModelInfo = Field(..., description="Requested completion model")
    messages: tuple[Message, ...] = Field(
        ..., description="Conversation history in chronological order"
    )
    key: str | None = Field(
        None, description="Caller API key overriding the server default"
    )
    prompt: str | None = Field(
        None, description="System prompt overriding the server default"
    )


class MatchMetadata(BaseModel):
    """Metadata stored alongside each passage in the vector index."""

    model_config = ConfigDict(extra="allow")

    text: str = ""
    title: str = ""

    @field_validator("text", "title", mode="before")
    @classmethod
    def _null_as_blank(cls, v: object) -> object:
        return "" if v is None else v


@dataclass(frozen=True)
class RetrievalMatch:
    """A single passage returned by the vector index."""

    text: str
    title: str
    identifiers: dict[str, str] = field(default_factory=dict)
    score: float = 0.0


@dataclass(frozen=True)
class AugmentedPrompt:
    """The rendered retrieval prompt and the pieces it was built from."""

    question: str
    combined_text: str
    references: list[str]
    content: str


@dataclass(frozen=True)
class AugmentationResult:
    """Outcome of the retrieval stage."""

    question: str
    messages: list[Message]
    prompt: AugmentedPrompt | None = None
