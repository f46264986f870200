"""
Exception types raised by the chat pipeline.

Lower layers raise these; the chat router is the only place that turns
them into a caller-visible response.
"""


class PipelineError(Exception):
    """Base class for failures inside the chat pipeline."""


class CredentialError(PipelineError):
    """Raised when neither the caller nor the server supplies an API key."""


class TokenizerError(PipelineError):
    """Raised when the token encoding cannot be loaded."""


class EmbeddingError(PipelineError):
    """Raised when the embedding call returns a non-success response."""


class IndexQueryError(PipelineError):
    """Raised when the vector index query fails. Callers treat it as degraded."""


class CompletionError(PipelineError):
    """Raised when the completion endpoint rejects the request."""


class MalformedEventError(PipelineError):
    """Raised mid-stream when a completion event payload cannot be parsed."""
