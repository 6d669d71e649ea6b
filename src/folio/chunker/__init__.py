"""Document chunking for Folio."""

from folio.chunker.base import Chunker
from folio.chunker.heading import HeadingChunker, HeadingStrategy, estimate_tokens

__all__ = ["Chunker", "HeadingChunker", "HeadingStrategy", "estimate_tokens"]
