"""Ingestion pipeline for Folio."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from folio.chunker import Chunker
from folio.exceptions import (
    DimensionMismatchError,
    EmbeddingUnavailable,
    IngestError,
    ProviderError,
    UnsupportedOperation,
)
from folio.loaders import MarkdownLoader
from folio.models import Chunk, Document, DocumentIngestResult, IngestResult, ProviderKind
from folio.providers import ProviderBackend, ProviderGateway
from folio.stores import ChunkStore, DocumentRegistry, EmbeddingStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int, str], None]
"""Callback for ingestion progress updates.

Args:
    event: Event type - "ingesting" or "embedding"
    current: Current progress count (0 to total)
    total: Total items to process
    message: Human-readable status message

Example:
    def on_progress(event: str, current: int, total: int, message: str) -> None:
        print(f"[{event}] {current}/{total}: {message}")
"""

_EMBEDDING_ERRORS = (
    EmbeddingUnavailable,
    ProviderError,
    UnsupportedOperation,
    DimensionMismatchError,
)


@dataclass
class _EmbeddingState:
    """Embedding availability for one batch; disabled after the first failure."""

    enabled: bool
    backend: ProviderBackend | None = None


class Ingestor:
    """Orchestrates the build-time pipeline.

    Pipeline, per document:
    1. Skip if the content hash is unchanged, embedding any of its chunks
       that still lack an embedding
    2. Remove the document's old chunks, full-text rows and embeddings
    3. Chunk the text and store chunks + full-text rows
    4. Embed the chunks (best effort)
    5. Record the new content hash

    Embedding is best effort: the first embedding failure disables it for
    the rest of the batch and those chunks are served by sparse retrieval
    only. The registry generation is bumped once per batch that changed
    anything, so query-time readers reload. A directory rebuild may also
    prune documents whose file is gone.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        embedding_store: EmbeddingStore,
        registry: DocumentRegistry,
        chunker: Chunker,
        gateway: ProviderGateway | None = None,
        embedding_provider: ProviderKind | None = None,
        batch_size: int = 64,
    ) -> None:
        """Initialize the ingestor with all required components.

        Args:
            chunk_store: Store for chunks and their full-text index
            embedding_store: Store for chunk embeddings
            registry: Document registry for change detection
            chunker: Component to split documents into chunks
            gateway: Provider gateway for embeddings. None builds a
                sparse-only corpus.
            embedding_provider: Kind tried first for embeddings
            batch_size: Chunks per embedding call
        """
        self.chunk_store = chunk_store
        self.embedding_store = embedding_store
        self.registry = registry
        self.chunker = chunker
        self.gateway = gateway
        self.embedding_provider = embedding_provider
        self.batch_size = batch_size

    def _embedding_state(self) -> _EmbeddingState:
        if self.gateway is None:
            return _EmbeddingState(enabled=False)
        try:
            backend = self.gateway.embedding_backend(self.embedding_provider)
        except EmbeddingUnavailable as e:
            logger.warning("Embeddings disabled: %s", e)
            return _EmbeddingState(enabled=False)

        stored_model = self.embedding_store.model()
        if stored_model is not None and stored_model != backend.embedding_model:
            logger.warning(
                "Store was embedded with %s but %s is configured; "
                "embeddings disabled for this batch",
                stored_model,
                backend.embedding_model,
            )
            return _EmbeddingState(enabled=False)
        return _EmbeddingState(enabled=True, backend=backend)

    def _embed(
        self,
        chunks: list[Chunk],
        chunk_ids: list[int],
        state: _EmbeddingState,
        progress: ProgressCallback,
    ) -> int:
        """Embed stored chunks in batches. Returns the number embedded."""
        if not state.enabled or state.backend is None or not chunks:
            return 0

        backend = state.backend
        embedded = 0
        try:
            for start in range(0, len(chunks), self.batch_size):
                batch = chunks[start : start + self.batch_size]
                vectors = backend.embed([c.content for c in batch])
                if len(vectors) != len(batch):
                    raise ProviderError(
                        f"Embedding count mismatch: {len(batch)} chunks, {len(vectors)} vectors",
                        provider=backend.kind.value,
                    )
                self.embedding_store.put_many(
                    list(zip(chunk_ids[start : start + len(batch)], vectors, strict=True))
                )
                embedded += len(batch)
                progress("embedding", embedded, len(chunks), f"Embedded {embedded} chunks")
        except _EMBEDDING_ERRORS as e:
            logger.warning("Embeddings disabled for the rest of this batch: %s", e)
            state.enabled = False
            return embedded

        if self.embedding_store.model() is None and backend.embedding_model:
            self.embedding_store.set_model(backend.embedding_model)
        return embedded

    def _backfill(
        self, document_id: str, state: _EmbeddingState, progress: ProgressCallback
    ) -> int:
        """Embed an unchanged document's chunks that have no embedding yet."""
        if not state.enabled:
            return 0
        chunks = self.chunk_store.get_by_document(document_id)
        missing = set(self.embedding_store.missing([c.id for c in chunks]))
        pending = [c for c in chunks if c.id in missing]
        embedded = self._embed(pending, [c.id for c in pending], state, progress)
        if embedded:
            logger.info("Backfilled %s: %d embedded", document_id, embedded)
        return embedded

    def _ingest(
        self, document: Document, state: _EmbeddingState, progress: ProgressCallback
    ) -> DocumentIngestResult:
        content_hash = document.content_hash()
        if self.registry.get_hash(document.id) == content_hash:
            embedded = self._backfill(document.id, state, progress)
            return DocumentIngestResult(
                document_id=document.id,
                status="backfilled" if embedded else "skipped",
                embedded=embedded,
            )

        chunks = self.chunker.chunk_document(document)
        self.chunk_store.delete_by_document(document.id)
        chunk_ids = self.chunk_store.put_many(chunks)
        embedded = self._embed(chunks, chunk_ids, state, progress)

        self.registry.set_hash(
            document.id, content_hash, collection=document.collection, title=document.title
        )
        logger.info(
            "Ingested %s: %d chunks, %d embedded", document.id, len(chunks), embedded
        )
        return DocumentIngestResult(
            document_id=document.id, status="ingested", chunks=len(chunks), embedded=embedded
        )

    def ingest_document(self, document: Document) -> DocumentIngestResult:
        """Ingest a single document, bumping the generation if it changed."""
        result = self._ingest(document, self._embedding_state(), lambda *_: None)
        if result.status in ("ingested", "backfilled"):
            self.registry.bump_generation()
        return result

    def _ingest_batch(
        self, documents: list[Document], on_progress: ProgressCallback | None
    ) -> IngestResult:
        def progress(event: str, current: int, total: int, message: str = "") -> None:
            if on_progress:
                on_progress(event, current, total, message)

        state = self._embedding_state()
        result = IngestResult()

        for i, document in enumerate(documents):
            progress("ingesting", i, len(documents), f"Ingesting {document.id}...")
            try:
                outcome = self._ingest(document, state, progress)
            except IngestError as e:
                logger.warning("Skipping %s: %s", document.id, e)
                outcome = DocumentIngestResult(
                    document_id=document.id, status="failed", error=str(e)
                )
            result.documents.append(outcome)
        progress("ingesting", len(documents), len(documents), "Ingestion complete")
        return result

    def _finish(self, result: IngestResult) -> IngestResult:
        if result.changed:
            result.generation = self.registry.bump_generation()
        return result

    def ingest_documents(
        self,
        documents: Iterable[Document],
        on_progress: ProgressCallback | None = None,
    ) -> IngestResult:
        """Ingest a batch of documents.

        Args:
            documents: Documents to ingest
            on_progress: Optional callback(event, current, total, message)

        Returns:
            Per-document outcomes and the new generation, if it changed.
        """
        return self._finish(self._ingest_batch(list(documents), on_progress))

    def ingest_files(
        self,
        paths: Iterable[str | Path],
        loader: MarkdownLoader,
        on_progress: ProgressCallback | None = None,
        prune: bool = False,
    ) -> IngestResult:
        """Load files with loader and ingest them.

        Files that fail to load are reported as failed; the rest of the
        batch continues.

        Args:
            paths: Files to ingest
            loader: Loader that maps each path to a Document
            on_progress: Optional callback(event, current, total, message)
            prune: Treat paths as the whole corpus and remove tracked
                documents whose file is not among them

        Returns:
            Per-document outcomes, removed ids and the new generation, if
            it changed. The generation is bumped at most once.
        """
        documents: list[Document] = []
        failures: list[DocumentIngestResult] = []
        discovered: set[str] = set()
        for path in paths:
            discovered.add(loader.document_id(Path(path)))
            try:
                documents.append(loader.load(path))
            except IngestError as e:
                logger.warning("Skipping %s: %s", path, e)
                failures.append(
                    DocumentIngestResult(
                        document_id=e.document_id or str(path), status="failed", error=str(e)
                    )
                )

        result = self._ingest_batch(documents, on_progress)
        result.documents.extend(failures)

        if prune:
            for document_id in self.registry.list_documents():
                if document_id not in discovered:
                    self._remove(document_id)
                    result.removed.append(document_id)
            if result.removed:
                logger.info("Removed %d documents no longer on disk", len(result.removed))

        return self._finish(result)

    def _remove(self, document_id: str) -> None:
        self.chunk_store.delete_by_document(document_id)
        self.registry.delete(document_id)

    def delete_document(self, document_id: str) -> None:
        """Remove a document's chunks, embeddings and tracking."""
        self._remove(document_id)
        self.registry.bump_generation()
