# src/folio/stores/registry.py
"""SQLite implementation of the document registry."""

import sqlite3
from datetime import UTC, datetime

from folio.stores.base import DocumentRegistry
from folio.stores.schema import connect, get_meta, prepare, set_meta

_GENERATION_KEY = "generation"


class SQLiteDocumentRegistry(DocumentRegistry):
    """SQLite-backed document registry."""

    def __init__(self, db_path: str, read_only: bool = False) -> None:
        """Initialize the registry.

        Args:
            db_path: Path to SQLite database file
            read_only: Open without creating anything (query time)
        """
        self._db_path = db_path
        self._read_only = read_only
        prepare(db_path, read_only=read_only)

    def _connect(self) -> sqlite3.Connection:
        return connect(self._db_path, read_only=self._read_only)

    def get_hash(self, document_id: str) -> str | None:
        """Get content hash for a document, or None if not tracked."""
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT content_hash FROM documents WHERE document_id = ?",
                (document_id,),
            )
            row = cursor.fetchone()
            return row[0] if row else None

    def set_hash(
        self, document_id: str, content_hash: str, collection: str = "", title: str = ""
    ) -> None:
        """Store content hash after successful ingestion."""
        now = datetime.now(UTC).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO documents
                    (document_id, content_hash, collection, title, ingested_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (document_id, content_hash, collection, title, now),
            )

    def delete(self, document_id: str) -> None:
        """Remove tracking for a document."""
        with self._connect() as conn:
            conn.execute("DELETE FROM documents WHERE document_id = ?", (document_id,))

    def list_documents(self) -> list[str]:
        """List all tracked document ids."""
        with self._connect() as conn:
            cursor = conn.execute("SELECT document_id FROM documents ORDER BY document_id")
            return [row[0] for row in cursor.fetchall()]

    def get_titles(self, document_ids: list[str]) -> dict[str, str]:
        """Map tracked document ids to their titles. Unknown ids are left out."""
        if not document_ids:
            return {}
        placeholders = ",".join("?" * len(document_ids))
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT document_id, title FROM documents WHERE document_id IN ({placeholders})",
                document_ids,
            )
            return {row[0]: row[1] for row in cursor.fetchall()}

    def generation(self) -> int:
        """Current corpus generation (0 before the first build)."""
        with self._connect() as conn:
            value = get_meta(conn, _GENERATION_KEY)
            return int(value) if value is not None else 0

    def bump_generation(self) -> int:
        """Increment the corpus generation. Returns the new value."""
        with self._connect() as conn:
            value = get_meta(conn, _GENERATION_KEY)
            generation = (int(value) if value is not None else 0) + 1
            set_meta(conn, _GENERATION_KEY, str(generation))
            return generation
