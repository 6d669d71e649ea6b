"""Chunker abstract base class."""

from abc import ABC, abstractmethod

from folio.models import Chunk, Document


class Chunker(ABC):
    """Abstract base class for splitting document text into chunks."""

    @abstractmethod
    def chunk(self, text: str, document_id: str = "") -> list[Chunk]:
        """Split text into chunks with contiguous indices starting at 0."""
        ...

    def chunk_document(self, document: Document) -> list[Chunk]:
        """Chunk a document's text, tagging each chunk with the document id."""
        return self.chunk(document.text, document_id=document.id)
