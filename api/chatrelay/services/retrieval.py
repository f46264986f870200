"""
Retrieval augmentation of the user's latest question.

Embeds the last user message, looks up related passages in the vector
index and, when any are found, rewrites that message into a grounded
instruction that carries the passages and their references.
"""

import logging
from collections.abc import Sequence

from chatrelay.core.config import Settings
from chatrelay.core.credentials import ResolvedCredential
from chatrelay.core.errors import IndexQueryError
from chatrelay.models.chat import (
    AugmentationResult,
    AugmentedPrompt,
    Message,
    RetrievalMatch,
)
from chatrelay.services.openai_client import OpenAIEmbeddingService
from chatrelay.services.search import VectorIndexService

logger = logging.getLogger(__name__)

REFUSAL_MESSAGE = (
    "Sorry! No answer was found in the available material. "
    "You can also try asking in a different way."
)

RETRIEVAL_TEMPLATE = '''\
You are playing a person named "{assistant_name}". Answer the question using the content of the passages.
Do not make up an answer and do not say anything besides the answer. If the answer cannot be determined, reply "{refusal}". If the passages contain typos, correct them before using them.
Return the answer in Markdown. The reference material must be appended after the answer.
Question:
"""
{question}
"""
Passages:
"""
{passages}
"""
References:
"""
{references}
"""
First-person answer in Markdown:'''


def last_user_index(messages: Sequence[Message]) -> int | None:
    """Return the index of the most recent user message, or None."""
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == "user":
            return index
    return None


def combine_passages(matches: Sequence[RetrievalMatch]) -> str:
    """Join the non-blank passage texts with single spaces."""
    return " ".join(m.text for m in matches if m.text.strip())


def reference_line(match: RetrievalMatch, link_template: str) -> str | None:
    """Render the reference line for a match, or None if it has no title."""
    if not match.title.strip():
        return None
    try:
        link = link_template.format_map(match.identifiers)
    except (KeyError, IndexError, ValueError):
        return f"Related: {match.title}"
    return f"Related: {match.title}\n{link}"


def collect_references(matches: Sequence[RetrievalMatch], link_template: str) -> list[str]:
    """Build deduplicated reference lines in first-seen order."""
    lines = (reference_line(m, link_template) for m in matches)
    return list(dict.fromkeys(line for line in lines if line is not None))


def build_prompt(
    question: str,
    matches: Sequence[RetrievalMatch],
    settings: Settings,
) -> AugmentedPrompt:
    """Render the retrieval instruction for a question and its matches."""
    combined = combine_passages(matches)
    references = collect_references(matches, settings.reference_link_template)
    content = RETRIEVAL_TEMPLATE.format(
        assistant_name=settings.assistant_name,
        refusal=REFUSAL_MESSAGE,
        question=question,
        passages=combined,
        references="\n".join(references),
    )
    return AugmentedPrompt(
        question=question,
        combined_text=combined,
        references=references,
        content=content,
    )


class RetrievalAugmenter:
    """Rewrites the last user message with retrieved context."""

    def __init__(
        self,
        embedding_service: OpenAIEmbeddingService,
        index_service: VectorIndexService,
        settings: Settings,
    ) -> None:
        self._embeddings = embedding_service
        self._index = index_service
        self._settings = settings

    async def augment(
        self,
        messages: Sequence[Message],
        credential: ResolvedCredential,
    ) -> AugmentationResult:
        """
        Augment the conversation with passages related to the last question.

        The input sequence is never modified; a new list is returned.

        Raises:
            EmbeddingError: If the question cannot be embedded.
        """
        index = last_user_index(messages)
        if index is None:
            logger.info("No user message in conversation; skipping retrieval.")
            return AugmentationResult(question="", messages=list(messages))

        question = messages[index].content
        logger.info("User question: %s", question)

        vector = await self._embeddings.embed_text(question, credential)

        try:
            matches = await self._index.query(vector)
        except IndexQueryError as exc:
            logger.error("Error querying vector index: %s", exc)
            matches = []

        if not matches:
            logger.info("No passages retrieved; question is sent unchanged.")
            return AugmentationResult(question=question, messages=list(messages))

        prompt = build_prompt(question, matches, self._settings)
        updated = list(messages)
        updated[index] = updated[index].model_copy(update={"content": prompt.content})
        return AugmentationResult(question=question, messages=updated, prompt=prompt)
