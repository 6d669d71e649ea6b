# src/folio/loaders/__init__.py
"""Document loaders for Folio."""

from folio.loaders.markdown import MarkdownLoader, split_front_matter, to_slug

__all__ = ["MarkdownLoader", "split_front_matter", "to_slug"]
