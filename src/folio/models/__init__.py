"""Data models for Folio."""

from folio.models.chunk import Chunk
from folio.models.document import Document
from folio.models.events import (
    ErrorEvent,
    EventCallback,
    IncrementEvent,
    RequestEvent,
    SourcesEvent,
    StatusEvent,
    is_terminal_event,
)
from folio.models.ingest import DocumentIngestResult, IngestResult
from folio.models.provider import ProviderKind, ProviderProfile
from folio.models.request import ConversationRequest, RequestStatus
from folio.models.results import SearchResult, SourceReference

__all__ = [
    "Document",
    "Chunk",
    "SearchResult",
    "SourceReference",
    "ProviderKind",
    "ProviderProfile",
    "ConversationRequest",
    "RequestStatus",
    "IncrementEvent",
    "SourcesEvent",
    "StatusEvent",
    "ErrorEvent",
    "RequestEvent",
    "EventCallback",
    "is_terminal_event",
    "DocumentIngestResult",
    "IngestResult",
]
