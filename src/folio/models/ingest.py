"""Ingestion result models."""

from typing import Literal

from pydantic import BaseModel, Field

# "backfilled": content unchanged, but chunks missing embeddings were embedded
IngestStatus = Literal["ingested", "backfilled", "skipped", "failed"]


class DocumentIngestResult(BaseModel):
    """Outcome of ingesting one document."""

    document_id: str
    status: IngestStatus
    chunks: int = 0
    embedded: int = 0
    error: str | None = None


class IngestResult(BaseModel):
    """Outcome of ingesting a batch of documents."""

    documents: list[DocumentIngestResult] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)  # Tracked ids whose file is gone
    generation: int | None = None  # Registry generation after the batch, if it changed

    def _count(self, status: IngestStatus) -> int:
        return sum(1 for d in self.documents if d.status == status)

    @property
    def ingested(self) -> int:
        return self._count("ingested")

    @property
    def backfilled(self) -> int:
        return self._count("backfilled")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def chunks(self) -> int:
        return sum(d.chunks for d in self.documents)

    @property
    def embedded(self) -> int:
        return sum(d.embedded for d in self.documents)

    @property
    def changed(self) -> bool:
        """Whether the corpus served at query time differs after this batch."""
        return bool(self.ingested or self.backfilled or self.removed)
