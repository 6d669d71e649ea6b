# src/folio/loaders/markdown.py
"""Markdown and plain text document loader."""

import re
from pathlib import Path
from typing import Any

import yaml

from folio.exceptions import IngestError
from folio.models import Document

FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def to_slug(segment: str, strip_prefix: bool = True) -> str:
    """Convert a path segment to a URL-friendly slug.

    Strips numeric ordering prefixes ("01-setup" -> "setup"), lowercases,
    and collapses runs of other characters into single hyphens.
    """
    value = re.sub(r"^\d+-", "", segment) if strip_prefix else segment
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from the body of a markdown document.

    Raises:
        ValueError: If the front matter is not a valid YAML mapping.
    """
    match = FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid front matter: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Front matter must be a mapping")
    return data, text[match.end() :]


class MarkdownLoader:
    """Load markdown and text files under a root directory as Documents.

    Document ids are the slugged path relative to the root, without the
    suffix ("02-Guides/Deploy Basics.md" -> "guides/deploy-basics"). The
    first directory names the collection.
    """

    SUPPORTED_EXTENSIONS = {".md", ".markdown", ".txt"}

    def __init__(self, root: str | Path) -> None:
        """Initialize the loader.

        Args:
            root: Directory that document ids are relative to
        """
        self.root = Path(root).resolve()

    def supports(self, path: str | Path) -> bool:
        """Check if this loader supports the given file."""
        return Path(path).suffix.lower() in self.SUPPORTED_EXTENSIONS

    def discover(self, path: str | Path | None = None) -> list[Path]:
        """List supported files under path (default: the root), sorted.

        A single supported file is returned as-is.
        """
        target = Path(path) if path is not None else self.root
        if target.is_file():
            return [target] if self.supports(target) else []
        if not target.exists():
            raise FileNotFoundError(f"Path not found: {target}")
        return sorted(
            p
            for p in target.rglob("*")
            if p.is_file() and self.supports(p) and not p.name.startswith(".")
        )

    def document_id(self, path: Path) -> str:
        resolved = path.resolve()
        try:
            relative = resolved.relative_to(self.root)
        except ValueError:
            relative = Path(resolved.name)
        parts = [*relative.parent.parts, relative.stem]
        return "/".join(to_slug(part) for part in parts)

    def load(self, path: str | Path) -> Document:
        """Load a file as a Document.

        Raises:
            FileNotFoundError: If the file does not exist.
            IngestError: If the file is not UTF-8 text or its front matter is malformed.
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        document_id = self.document_id(file_path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise IngestError(f"{file_path} is not valid UTF-8 text", document_id) from e

        try:
            front_matter, body = split_front_matter(text)
        except ValueError as e:
            raise IngestError(f"{file_path}: {e}", document_id) from e

        h1 = H1_RE.search(body)
        title = front_matter.get("title") or (h1.group(1).strip() if h1 else file_path.stem)

        collection = document_id.split("/")[0] if "/" in document_id else ""
        return Document(id=document_id, text=body, collection=collection, title=str(title))
