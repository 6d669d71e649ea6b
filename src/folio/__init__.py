"""Folio - retrieval-augmented answers over a markdown library.

Quick Start:
    from folio import Folio, ProviderKind, ProviderProfile

    openai = ProviderProfile(kind=ProviderKind.OPENAI, api_key="sk-...")

    # Build time
    folio = Folio("./folio_data", profiles=[openai])
    folio.ingest_path("./docs")

    # Query time
    folio = Folio("./folio_data", profiles=[openai], read_only=True)
    manager = folio.request_manager(on_event=print)
    request_id = manager.submit("How do I rotate the signing keys?")
    await manager.wait(request_id)

From folio.yaml and the environment:
    from folio.config import create_folio, get_folio_config

    folio = create_folio(get_folio_config())
"""

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("folio-rag")
except PackageNotFoundError:
    # Development / source-tree fallback (e.g. running tests without installing the wheel).
    try:
        import tomllib
        from pathlib import Path

        def _read_version_from_pyproject() -> str | None:
            for parent in Path(__file__).resolve().parents:
                pyproject = parent / "pyproject.toml"
                if pyproject.exists():
                    data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
                    version = data.get("project", {}).get("version")
                    return str(version) if version is not None else None
            return None

        __version__ = _read_version_from_pyproject() or "unknown"
    except Exception:
        __version__ = "unknown"

# Chunking
from folio.chunker import Chunker, HeadingChunker

# Conversation
from folio.conversation import RequestManager

# Errors
from folio.exceptions import (
    DimensionMismatchError,
    EmbeddingUnavailable,
    FolioError,
    IngestError,
    ProviderError,
    ProviderNotConfigured,
    ProviderUnavailable,
    UnsupportedOperation,
)

# Central configuration
from folio.folio import Folio

# Pipelines
from folio.ingestor import Ingestor

# File loading
from folio.loaders import MarkdownLoader

# Core models
from folio.models import (
    Chunk,
    ConversationRequest,
    Document,
    ErrorEvent,
    IncrementEvent,
    ProviderKind,
    ProviderProfile,
    RequestStatus,
    SearchResult,
    SourceReference,
    SourcesEvent,
    StatusEvent,
)

# Providers
from folio.providers import ProviderBackend, ProviderGateway
from folio.retriever import HybridRetriever

# Configuration
from folio.settings import Settings

# Storage
from folio.stores import (
    ChunkStore,
    DocumentRegistry,
    EmbeddingStore,
    SQLiteChunkStore,
    SQLiteDocumentRegistry,
    SQLiteEmbeddingStore,
)

__all__ = [
    # Version
    "__version__",
    # Models
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
    # Config
    "Settings",
    # Errors
    "FolioError",
    "IngestError",
    "ProviderError",
    "ProviderNotConfigured",
    "ProviderUnavailable",
    "EmbeddingUnavailable",
    "UnsupportedOperation",
    "DimensionMismatchError",
    # Storage
    "ChunkStore",
    "EmbeddingStore",
    "DocumentRegistry",
    "SQLiteChunkStore",
    "SQLiteEmbeddingStore",
    "SQLiteDocumentRegistry",
    # Chunking
    "Chunker",
    "HeadingChunker",
    # Providers
    "ProviderBackend",
    "ProviderGateway",
    # Pipelines
    "Ingestor",
    "HybridRetriever",
    "RequestManager",
    # Central configuration
    "Folio",
    # File loading
    "MarkdownLoader",
]
