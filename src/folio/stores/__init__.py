# src/folio/stores/__init__.py
"""Storage abstractions for Folio."""

from folio.stores.base import ChunkStore, DocumentRegistry, EmbeddingStore, StoredEmbedding
from folio.stores.registry import SQLiteDocumentRegistry
from folio.stores.sqlite_chunk import SQLiteChunkStore
from folio.stores.sqlite_embedding import SQLiteEmbeddingStore

__all__ = [
    "ChunkStore",
    "EmbeddingStore",
    "DocumentRegistry",
    "StoredEmbedding",
    "SQLiteChunkStore",
    "SQLiteEmbeddingStore",
    "SQLiteDocumentRegistry",
]
