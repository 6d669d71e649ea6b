"""Retrieval result models."""

from pydantic import BaseModel

from folio.models.chunk import Chunk

EXCERPT_WORDS = 28


class SearchResult(BaseModel):
    """A retrieved chunk with its fused score and per-pass ranks."""

    chunk: Chunk
    score: float
    dense_rank: int | None = None
    sparse_rank: int | None = None


class SourceReference(BaseModel):
    """A chunk cited as context for an answer."""

    chunk_id: int
    document_id: str
    heading_context: str
    excerpt: str
    document_title: str = ""

    @classmethod
    def from_chunk(cls, chunk: Chunk, document_title: str = "") -> "SourceReference":
        if chunk.id is None:
            raise ValueError("Cannot reference a chunk that has not been stored")
        return cls(
            chunk_id=chunk.id,
            document_id=chunk.document_id,
            heading_context=chunk.heading_context,
            excerpt=" ".join(chunk.content.split()[:EXCERPT_WORDS]),
            document_title=document_title,
        )
