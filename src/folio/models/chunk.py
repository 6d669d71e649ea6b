"""Chunk data models."""

from pydantic import BaseModel, ConfigDict


class Chunk(BaseModel):
    """A contiguous excerpt of a document, sized for a model's context window."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None  # Assigned by the chunk store on write
    document_id: str
    index: int  # Zero-based position within the document
    content: str
    heading_context: str = ""

