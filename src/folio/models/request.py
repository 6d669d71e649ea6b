"""Conversation request models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from folio.models.provider import ProviderKind
from folio.models.results import SourceReference


class RequestStatus(str, Enum):
    """Lifecycle state of a question: Pending -> Streaming -> terminal."""

    PENDING = "pending"
    STREAMING = "streaming"
    DONE = "done"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.DONE, RequestStatus.CANCELLED, RequestStatus.ERROR)


class ConversationRequest(BaseModel):
    """One user question, in flight or completed.

    Mutated only by the RequestManager. Retained by the caller for
    display; never persisted.
    """

    request_id: str
    question: str
    provider: ProviderKind | None = None
    answer: str = ""
    sources: list[SourceReference] = Field(default_factory=list)
    status: RequestStatus = RequestStatus.PENDING
    error: str | None = None
    error_kind: str | None = None
    retrieval_empty: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
