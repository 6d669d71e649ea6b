# src/folio/stores/sqlite_embedding.py
"""SQLite embedding store implementation."""

import sqlite3
from collections.abc import Iterator

import numpy as np

from folio.exceptions import DimensionMismatchError
from folio.stores.base import EmbeddingStore, StoredEmbedding
from folio.stores.schema import connect, get_meta, prepare, set_meta

_DIMENSION_KEY = "embedding_dimension"
_MODEL_KEY = "embedding_model"

# Vectors are stored as little-endian float32
_DTYPE = np.dtype("<f4")


def encode_vector(vector: list[float] | np.ndarray) -> bytes:
    return np.asarray(vector, dtype=_DTYPE).tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=_DTYPE)


class SQLiteEmbeddingStore(EmbeddingStore):
    """SQLite-backed store of one dense vector per chunk.

    The first vector written fixes the store dimension. Later vectors of
    another length are rejected, never truncated or padded.
    """

    def __init__(self, db_path: str, read_only: bool = False) -> None:
        """Initialize the embedding store.

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
    def _stored_dimension(conn: sqlite3.Connection) -> int | None:
        value = get_meta(conn, _DIMENSION_KEY)
        return int(value) if value is not None else None

    def _write(self, conn: sqlite3.Connection, items: list[tuple[int, list[float]]]) -> None:
        expected = self._stored_dimension(conn)
        if expected is None:
            expected = len(items[0][1])
        for _, vector in items:
            if len(vector) != expected:
                raise DimensionMismatchError(expected, len(vector))

        set_meta(conn, _DIMENSION_KEY, str(expected))
        conn.executemany(
            """
            INSERT OR REPLACE INTO chunk_embeddings (chunk_id, dimension, vector)
            VALUES (?, ?, ?)
            """,
            [(chunk_id, expected, encode_vector(vector)) for chunk_id, vector in items],
        )

    def put(self, chunk_id: int, vector: list[float]) -> None:
        """Store (or replace) the embedding of a chunk.

        Raises:
            DimensionMismatchError: If the vector length differs from the store dimension.
        """
        self.put_many([(chunk_id, vector)])

    def put_many(self, items: list[tuple[int, list[float]]]) -> None:
        """Store multiple (chunk_id, vector) pairs. Nothing is written if any is invalid."""
        if not items:
            return
        with self._connect() as conn:
            self._write(conn, items)
            conn.commit()

    def get(self, chunk_id: int) -> list[float] | None:
        """Get the embedding of a chunk."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT vector FROM chunk_embeddings WHERE chunk_id = ?", (chunk_id,)
            ).fetchone()
            return decode_vector(row[0]).tolist() if row else None

    def get_all(self) -> Iterator[StoredEmbedding]:
        """Iterate over every embedding joined with its chunk, ordered by chunk id."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                SELECT e.chunk_id, e.vector, c.content_text, c.heading_context, c.document_id
                FROM chunk_embeddings e
                JOIN chunks c ON c.id = e.chunk_id
                ORDER BY e.chunk_id
                """
            )
            for row in cursor:
                yield StoredEmbedding(
                    chunk_id=row[0],
                    vector=decode_vector(row[1]),
                    chunk_text=row[2],
                    heading_context=row[3],
                    document_id=row[4],
                )

    def count(self) -> int:
        """Count stored embeddings."""
        with self._connect() as conn:
            count = conn.execute("SELECT COUNT(chunk_id) FROM chunk_embeddings").fetchone()
            return count[0] if count else 0

    def dimension(self) -> int | None:
        """Vector dimension of the store, or None while empty."""
        with self._connect() as conn:
            return self._stored_dimension(conn)

    def model(self) -> str | None:
        """Name of the embedding model the store was built with."""
        with self._connect() as conn:
            return get_meta(conn, _MODEL_KEY)

    def set_model(self, model: str) -> None:
        """Record the embedding model name."""
        with self._connect() as conn:
            set_meta(conn, _MODEL_KEY, model)
            conn.commit()

    def missing(self, chunk_ids: list[int]) -> list[int]:
        """Return the chunk ids, in input order, that have no embedding."""
        if not chunk_ids:
            return []
        placeholders = ",".join("?" * len(chunk_ids))
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT chunk_id FROM chunk_embeddings WHERE chunk_id IN ({placeholders})",
                chunk_ids,
            )
            present = {row[0] for row in cursor.fetchall()}
        return [i for i in chunk_ids if i not in present]

    def delete_by_chunk_ids(self, chunk_ids: list[int]) -> None:
        """Delete embeddings for the given chunks."""
        if not chunk_ids:
            return
        placeholders = ",".join("?" * len(chunk_ids))
        with self._connect() as conn:
            conn.execute(
                f"DELETE FROM chunk_embeddings WHERE chunk_id IN ({placeholders})", chunk_ids
            )
            conn.commit()

    def clear(self) -> None:
        """Delete every embedding and forget the dimension and model."""
        with self._connect() as conn:
            conn.execute("DELETE FROM chunk_embeddings")
            conn.execute("DELETE FROM meta WHERE key IN (?, ?)", (_DIMENSION_KEY, _MODEL_KEY))
            conn.commit()
