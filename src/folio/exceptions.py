"""Exceptions raised by Folio.

Errors are scoped to the document or request they occurred on. Ingest
errors skip one document, provider errors end one request, and neither
touches its siblings.
"""

from __future__ import annotations


class FolioError(Exception):
    """Base class for all Folio errors."""


class IngestError(FolioError):
    """A source document is malformed or unreadable.

    The ingestor skips the offending document and continues the batch.
    """

    def __init__(self, message: str, document_id: str | None = None) -> None:
        super().__init__(message)
        self.document_id = document_id


class EmbeddingUnavailable(FolioError):
    """No configured backend could produce an embedding.

    Not fatal: retrieval degrades to the sparse pass only.
    """


class RetrievalEmpty(FolioError):
    """Neither retrieval pass matched anything."""


class DimensionMismatchError(FolioError, ValueError):
    """A vector's length does not match the embedding store's dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected a vector of dimension {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ProviderError(FolioError):
    """A completion/embedding backend failed.

    Attributes:
        kind: Short machine-readable category ("auth", "rate_limit",
            "timeout", "unavailable", "not_configured", "provider").
        provider: Backend kind value, if known.
    """

    def __init__(self, message: str, kind: str = "provider", provider: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider


class ProviderUnavailable(ProviderError):
    """Network, auth or rate-limit failure talking to a backend."""


class ProviderNotConfigured(ProviderError):
    """The requested backend has no resolved profile."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"Provider '{provider}' is not configured", kind="not_configured", provider=provider
        )


class UnsupportedOperation(FolioError):
    """The backend does not offer the requested capability (e.g. embeddings)."""

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(f"Provider '{provider}' does not support {operation}")
        self.provider = provider
        self.operation = operation
