"""
Token counting with tiktoken.

The encoding table is loaded once per process and shared read-only by
every request.
"""

import logging
from functools import lru_cache

import tiktoken

from chatrelay.core.errors import TokenizerError

logger = logging.getLogger(__name__)


class Tokenizer:
    """Thin wrapper over a tiktoken encoding."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        try:
            self._encoding = tiktoken.get_encoding(encoding_name)
        except Exception as exc:
            raise TokenizerError(
                f"Could not load token encoding {encoding_name!r}"
            ) from exc
        self.encoding_name = encoding_name
        logger.info("Loaded token encoding %s.", encoding_name)

    def encode(self, text: str) -> list[int]:
        """Encode text into token ids. Special-token text is encoded as plain text."""
        return self._encoding.encode(text, disallowed_special=())

    def count(self, text: str) -> int:
        """Return the number of tokens in text."""
        return len(self.encode(text))


@lru_cache(maxsize=None)
def get_tokenizer(encoding_name: str = "cl100k_base") -> Tokenizer:
    """Return the process-wide tokenizer for an encoding."""
    return Tokenizer(encoding_name)
