"""Document data model."""

import hashlib

from pydantic import BaseModel, ConfigDict


class Document(BaseModel):
    """An immutable unit of source content.

    Documents are replaced wholesale on rebuild, never partially mutated.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    collection: str = ""
    title: str = ""

    def content_hash(self) -> str:
        """Return the sha256 hex digest of the document text."""
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()
