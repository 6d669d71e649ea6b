# src/folio/folio.py
"""Central configuration class for Folio."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from folio.settings import Settings

if TYPE_CHECKING:
    from folio.chunker import HeadingChunker
    from folio.conversation import RequestManager
    from folio.ingestor import Ingestor, ProgressCallback
    from folio.models import EventCallback, IngestResult, ProviderKind, ProviderProfile
    from folio.providers import ProviderGateway
    from folio.retriever import HybridRetriever
    from folio.stores import ChunkStore, DocumentRegistry, EmbeddingStore

DATABASE_FILE = "folio.db"


class Folio:
    """Central configuration for Folio stores and components.

    Folio bundles the stores, the provider gateway and the settings so you
    can configure once and create Ingestors, Retrievers and
    RequestManagers from it.

    Build time:

        folio = Folio("./folio_data", profiles=[openai_profile])
        folio.ingest_path("./docs")

    Query time (read-only stores):

        folio = Folio("./folio_data", profiles=[openai_profile], read_only=True)
        manager = folio.request_manager(on_event=print)
        request_id = manager.submit("How do I rotate the signing keys?")
        await manager.wait(request_id)
    """

    def __init__(
        self,
        data_dir: str | Path,
        *,
        profiles: Iterable[ProviderProfile] = (),
        settings: Settings | None = None,
        preferred: ProviderKind | None = None,
        read_only: bool = False,
    ) -> None:
        """Create a Folio instance backed by one SQLite file in data_dir.

        Args:
            data_dir: Directory holding folio.db. Created unless read_only.
            profiles: Resolved provider profiles.
            settings: Behavioral settings (chunk sizes, retrieval limits, timeouts).
            preferred: Provider kind used when a request does not name one.
            read_only: Open the stores read-only (query time).

        Raises:
            FileNotFoundError: If read_only and no database exists yet.
        """
        from folio.providers import ProviderGateway
        from folio.stores import SQLiteChunkStore, SQLiteDocumentRegistry, SQLiteEmbeddingStore

        self.data_dir = str(data_dir)
        self.db_path = os.path.join(self.data_dir, DATABASE_FILE)
        self._settings = settings if settings is not None else Settings()

        self.chunk_store: ChunkStore = SQLiteChunkStore(self.db_path, read_only=read_only)
        self.embedding_store: EmbeddingStore = SQLiteEmbeddingStore(
            self.db_path, read_only=read_only
        )
        self.registry: DocumentRegistry = SQLiteDocumentRegistry(self.db_path, read_only=read_only)
        self.gateway: ProviderGateway = ProviderGateway(profiles, self._settings, preferred)
        self._retriever: HybridRetriever | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def chunker(self) -> HeadingChunker:
        """Create a chunker from settings."""
        from folio.chunker import HeadingChunker

        return HeadingChunker(
            target_tokens=self._settings.chunk_target_tokens,
            overlap_tokens=self._settings.chunk_overlap_tokens,
            heading_strategy=self._settings.heading_strategy,
        )

    def ingestor(self, embedding_provider: ProviderKind | None = None) -> Ingestor:
        """Create an Ingestor over this instance's stores.

        Args:
            embedding_provider: Kind tried first for embeddings.
        """
        from folio.ingestor import Ingestor

        return Ingestor(
            chunk_store=self.chunk_store,
            embedding_store=self.embedding_store,
            registry=self.registry,
            chunker=self.chunker(),
            gateway=self.gateway if self.gateway.profiles else None,
            embedding_provider=embedding_provider,
            batch_size=self._settings.embedding_batch_size,
        )

    def retriever(self) -> HybridRetriever:
        """Return the shared HybridRetriever (its embedding cache is reused)."""
        if self._retriever is None:
            from folio.retriever import HybridRetriever

            self._retriever = HybridRetriever(
                chunk_store=self.chunk_store,
                embedding_store=self.embedding_store,
                registry=self.registry,
                dense_k=self._settings.dense_k,
                sparse_k=self._settings.sparse_k,
                default_limit=self._settings.retrieval_limit,
            )
        return self._retriever

    def request_manager(self, on_event: EventCallback | None = None) -> RequestManager:
        """Create a RequestManager that answers from this corpus."""
        from folio.conversation import RequestManager

        return RequestManager(
            gateway=self.gateway,
            retriever=self.retriever(),
            settings=self._settings,
            on_event=on_event,
            embedding_model=self.embedding_store.model(),
        )

    def ingest_path(
        self,
        path: str | Path,
        embedding_provider: ProviderKind | None = None,
        on_progress: ProgressCallback | None = None,
        prune: bool = True,
    ) -> IngestResult:
        """Ingest a markdown file or every supported file under a directory.

        Document ids are relative to path when it is a directory, or to
        its parent when it is a file. A directory is taken as the whole
        corpus: with prune, tracked documents whose file is no longer
        under it are removed.
        """
        from folio.loaders import MarkdownLoader

        target = Path(path)
        loader = MarkdownLoader(target if target.is_dir() else target.parent)
        return self.ingestor(embedding_provider).ingest_files(
            loader.discover(target), loader, on_progress, prune=prune and target.is_dir()
        )

    def delete(self, document_id: str) -> None:
        """Remove a document from the corpus."""
        self.ingestor().delete_document(document_id)

    def status(self) -> dict:
        """Summarize the corpus."""
        return {
            "documents": len(self.registry.list_documents()),
            "chunks": self.chunk_store.count_chunks(),
            "embeddings": self.embedding_store.count(),
            "dimension": self.embedding_store.dimension(),
            "embedding_model": self.embedding_store.model(),
            "generation": self.registry.generation(),
            "providers": sorted(kind.value for kind in self.gateway.profiles),
        }
