# src/folio/stores/sqlite_chunk.py
"""SQLite chunk store with an FTS5 full-text index."""

import sqlite3

from folio.models import Chunk
from folio.stores.base import ChunkStore
from folio.stores.schema import connect, prepare

_COLUMNS = "id, document_id, chunk_index, content_text, heading_context"


def _row_to_chunk(row: tuple) -> Chunk:
    return Chunk(
        id=row[0],
        document_id=row[1],
        index=row[2],
        content=row[3],
        heading_context=row[4],
    )


class SQLiteChunkStore(ChunkStore):
    """SQLite-based chunk store.

    Every chunk row has a matching chunks_fts row with the same rowid,
    written and deleted in the same transaction.
    """

    def __init__(self, db_path: str, read_only: bool = False) -> None:
        """Initialize the SQLite store.

        Args:
            db_path: Path to the SQLite database file
            read_only: Open without creating anything (query time)
        """
        self.db_path = db_path
        self.read_only = read_only
        prepare(db_path, read_only=read_only)

    def _connect(self) -> sqlite3.Connection:
        return connect(self.db_path, read_only=self.read_only)

    @staticmethod
    def _insert(
        conn: sqlite3.Connection, document_id: str, index: int, text: str, heading_context: str
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO chunks (document_id, chunk_index, content_text, heading_context)
            VALUES (?, ?, ?, ?)
            """,
            (document_id, index, text, heading_context),
        )
        chunk_id = cursor.lastrowid
        conn.execute(
            "INSERT INTO chunks_fts (rowid, content, heading_context) VALUES (?, ?, ?)",
            (chunk_id, text, heading_context),
        )
        return chunk_id

    def write_chunk(
        self, document_id: str, index: int, text: str, heading_context: str = ""
    ) -> int:
        """Store a chunk and its full-text row. Returns the assigned chunk id."""
        with self._connect() as conn:
            chunk_id = self._insert(conn, document_id, index, text, heading_context)
            conn.commit()
            return chunk_id

    def put_many(self, chunks: list[Chunk]) -> list[int]:
        """Store multiple chunks in one transaction. Returns ids in input order."""
        if not chunks:
            return []
        with self._connect() as conn:
            ids = [
                self._insert(conn, c.document_id, c.index, c.content, c.heading_context)
                for c in chunks
            ]
            conn.commit()
            return ids

    def get(self, chunk_id: int) -> Chunk | None:
        """Retrieve a chunk by ID."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE id = ?", (chunk_id,)
            ).fetchone()
            return _row_to_chunk(row) if row else None

    def get_many(self, chunk_ids: list[int]) -> list[Chunk]:
        """Retrieve multiple chunks by ID, preserving input order."""
        if not chunk_ids:
            return []
        placeholders = ",".join("?" * len(chunk_ids))
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE id IN ({placeholders})", chunk_ids
            )
            by_id = {row[0]: _row_to_chunk(row) for row in cursor.fetchall()}
        return [by_id[i] for i in chunk_ids if i in by_id]

    def get_by_document(self, document_id: str) -> list[Chunk]:
        """Get all chunks of a document, ordered by index."""
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            return [_row_to_chunk(row) for row in cursor.fetchall()]

    def delete_by_document(self, document_id: str) -> None:
        """Delete a document's chunks, full-text rows and embeddings."""
        with self._connect() as conn:
            subquery = "SELECT id FROM chunks WHERE document_id = ?"
            conn.execute(
                f"DELETE FROM chunk_embeddings WHERE chunk_id IN ({subquery})", (document_id,)
            )
            conn.execute(f"DELETE FROM chunks_fts WHERE rowid IN ({subquery})", (document_id,))
            conn.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            conn.commit()

    def count_chunks(self) -> int:
        """Count the total number of chunks in the store."""
        with self._connect() as conn:
            count = conn.execute("SELECT COUNT(id) FROM chunks").fetchone()
            return count[0] if count else 0

    def list_documents(self) -> list[str]:
        """List all document ids that have chunks."""
        with self._connect() as conn:
            cursor = conn.execute("SELECT DISTINCT document_id FROM chunks ORDER BY document_id")
            return [row[0] for row in cursor.fetchall()]

    def search_text(self, match_query: str, limit: int) -> list[tuple[Chunk, float]]:
        """Run an FTS5 MATCH query.

        Args:
            match_query: A syntactically valid FTS5 query
            limit: Maximum number of hits

        Returns:
            (Chunk, score) pairs ordered by BM25 rank, ties by lower chunk id.
            The score is the negated BM25 rank, so higher is better.
        """
        if not match_query.strip() or limit <= 0:
            return []
        with self._connect() as conn:
            cursor = conn.execute(
                """
                SELECT c.id, c.document_id, c.chunk_index, c.content_text, c.heading_context,
                       bm25(chunks_fts) AS rank
                FROM chunks_fts
                JOIN chunks c ON c.id = chunks_fts.rowid
                WHERE chunks_fts MATCH ?
                ORDER BY rank, c.id
                LIMIT ?
                """,
                (match_query, limit),
            )
            return [(_row_to_chunk(row[:5]), -row[5]) for row in cursor.fetchall()]
