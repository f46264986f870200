"""
Credential resolution for upstream OpenAI calls.

A caller may send its own API key with the chat request. The key is
resolved once per request and passed explicitly to every collaborator
that authenticates against OpenAI.
"""

from dataclasses import dataclass

from pydantic import SecretStr

from chatrelay.core.config import Settings
from chatrelay.core.errors import CredentialError


@dataclass(frozen=True)
class ResolvedCredential:
    """The API key used for one request, and where it came from."""

    api_key: SecretStr
    source: str

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        return f"Bearer {self.api_key.get_secret_value()}"


def resolve_credential(caller_key: str | None, settings: Settings) -> ResolvedCredential:
    """
    Pick the caller-supplied key when present, else the server default.

    Raises:
        CredentialError: If neither key is available.
    """
    if caller_key and caller_key.strip():
        return ResolvedCredential(api_key=SecretStr(caller_key.strip()), source="caller")

    server_key = settings.openai_api_key.get_secret_value()
    if server_key:
        return ResolvedCredential(api_key=settings.openai_api_key, source="server")

    raise CredentialError("No OpenAI API key supplied by caller or configured on the server.")
