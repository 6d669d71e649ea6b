# src/folio/stores/base.py
"""Abstract base classes for storage."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import NamedTuple

import numpy as np

from folio.models import Chunk


class StoredEmbedding(NamedTuple):
    """An embedding joined with the chunk it belongs to."""

    chunk_id: int
    vector: np.ndarray
    chunk_text: str
    heading_context: str
    document_id: str


class ChunkStore(ABC):
    """Abstract base class for chunk storage with a full-text index."""

    @abstractmethod
    def write_chunk(
        self, document_id: str, index: int, text: str, heading_context: str = ""
    ) -> int:
        """Store a chunk and its full-text row. Returns the assigned chunk id."""
        ...

    @abstractmethod
    def put_many(self, chunks: list[Chunk]) -> list[int]:
        """Store multiple chunks in one transaction. Returns ids in input order."""
        ...

    @abstractmethod
    def get(self, chunk_id: int) -> Chunk | None:
        """Retrieve a chunk by ID. Returns None if not found."""
        ...

    @abstractmethod
    def get_many(self, chunk_ids: list[int]) -> list[Chunk]:
        """Retrieve multiple chunks by ID, in input order. Skips missing chunks."""
        ...

    @abstractmethod
    def get_by_document(self, document_id: str) -> list[Chunk]:
        """Get all chunks of a document, ordered by index."""
        ...

    @abstractmethod
    def delete_by_document(self, document_id: str) -> None:
        """Delete a document's chunks, full-text rows and embeddings."""
        ...

    @abstractmethod
    def count_chunks(self) -> int:
        """Count the total number of chunks in the store."""
        ...

    @abstractmethod
    def list_documents(self) -> list[str]:
        """List all document ids that have chunks."""
        ...

    @abstractmethod
    def search_text(self, match_query: str, limit: int) -> list[tuple[Chunk, float]]:
        """Run a full-text MATCH query. Returns (Chunk, score) pairs, best first."""
        ...


class EmbeddingStore(ABC):
    """Abstract base class for chunk embedding storage."""

    @abstractmethod
    def put(self, chunk_id: int, vector: list[float]) -> None:
        """Store (or replace) the embedding of a chunk."""
        ...

    @abstractmethod
    def put_many(self, items: list[tuple[int, list[float]]]) -> None:
        """Store multiple (chunk_id, vector) pairs."""
        ...

    @abstractmethod
    def get(self, chunk_id: int) -> list[float] | None:
        """Get the embedding of a chunk, or None if it has none."""
        ...

    @abstractmethod
    def get_all(self) -> Iterator[StoredEmbedding]:
        """Iterate over every stored embedding, ordered by chunk id."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Count stored embeddings."""
        ...

    @abstractmethod
    def dimension(self) -> int | None:
        """Vector dimension of the store, or None while empty."""
        ...

    @abstractmethod
    def model(self) -> str | None:
        """Name of the embedding model the store was built with."""
        ...

    @abstractmethod
    def set_model(self, model: str) -> None:
        """Record the embedding model name."""
        ...

    @abstractmethod
    def delete_by_chunk_ids(self, chunk_ids: list[int]) -> None:
        """Delete embeddings for the given chunks."""
        ...

    @abstractmethod
    def missing(self, chunk_ids: list[int]) -> list[int]:
        """Return the chunk ids, in input order, that have no embedding."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every embedding and reset the dimension."""
        ...


class DocumentRegistry(ABC):
    """Tracks document metadata for change detection.

    Keeps tracking separate from chunk storage. Stores content hashes to
    detect when documents change, and a generation counter that readers
    compare to notice a rebuilt corpus.
    """

    @abstractmethod
    def get_hash(self, document_id: str) -> str | None:
        """Get content hash for a document, or None if not tracked."""

    @abstractmethod
    def set_hash(
        self, document_id: str, content_hash: str, collection: str = "", title: str = ""
    ) -> None:
        """Store content hash after successful ingestion."""

    @abstractmethod
    def delete(self, document_id: str) -> None:
        """Remove tracking for a document."""

    @abstractmethod
    def list_documents(self) -> list[str]:
        """List all tracked document ids."""

    @abstractmethod
    def get_titles(self, document_ids: list[str]) -> dict[str, str]:
        """Map tracked document ids to their titles. Unknown ids are left out."""

    @abstractmethod
    def generation(self) -> int:
        """Current corpus generation (0 before the first build)."""

    @abstractmethod
    def bump_generation(self) -> int:
        """Increment the corpus generation. Returns the new value."""
