# src/folio/stores/schema.py
"""Shared SQLite schema and connection helpers.

Chunks, their full-text index, embeddings and the document registry all
live in one database file, so any store can be opened first and create
the whole schema.
"""

import sqlite3
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    document_id TEXT PRIMARY KEY,
    content_hash TEXT NOT NULL,
    collection TEXT NOT NULL DEFAULT '',
    title TEXT NOT NULL DEFAULT '',
    ingested_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chunks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    content_text TEXT NOT NULL,
    heading_context TEXT NOT NULL DEFAULT '',
    UNIQUE (document_id, chunk_index)
);

CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id);

CREATE VIRTUAL TABLE IF NOT EXISTS chunks_fts USING fts5(content, heading_context);

CREATE TABLE IF NOT EXISTS chunk_embeddings (
    chunk_id INTEGER PRIMARY KEY,
    dimension INTEGER NOT NULL,
    vector BLOB NOT NULL
);

CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def connect(db_path: str, read_only: bool = False) -> sqlite3.Connection:
    """Open a connection to the database.

    Read-only connections use a mode=ro URI and never create the file.
    """
    if read_only:
        uri = f"{Path(db_path).resolve().as_uri()}?mode=ro"
        return sqlite3.connect(uri, uri=True)
    return sqlite3.connect(db_path)


def prepare(db_path: str, read_only: bool = False) -> None:
    """Make the database usable by a store.

    Writable stores create the parent directory and schema. Read-only
    stores require an existing database.

    Raises:
        FileNotFoundError: If read_only and the database does not exist.
    """
    if read_only:
        if not Path(db_path).exists():
            raise FileNotFoundError(f"Database not found: {db_path}")
        return
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    with connect(db_path) as conn:
        conn.executescript(SCHEMA)
        conn.commit()


def get_meta(conn: sqlite3.Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
    return row[0] if row else None


def set_meta(conn: sqlite3.Connection, key: str, value: str) -> None:
    conn.execute("INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)", (key, value))
