"""Shared pytest fixtures."""

import asyncio
import logging
import os
import tempfile

import pytest

from folio.models import ProviderKind, ProviderProfile
from folio.providers.litellm import BACKENDS


@pytest.fixture
def temp_dir():
    """Create a temporary directory for stores."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def db_path(temp_dir):
    """Path to a fresh SQLite database file."""
    return os.path.join(temp_dir, "folio.db")


@pytest.fixture
def stores(db_path):
    """Writable chunk store, embedding store and registry sharing one database."""
    from folio.stores import SQLiteChunkStore, SQLiteDocumentRegistry, SQLiteEmbeddingStore

    return {
        "chunk_store": SQLiteChunkStore(db_path),
        "embedding_store": SQLiteEmbeddingStore(db_path),
        "registry": SQLiteDocumentRegistry(db_path),
    }


@pytest.fixture
def openai_profile():
    return ProviderProfile(kind=ProviderKind.OPENAI, api_key="sk-test")


@pytest.fixture
def anthropic_profile():
    return ProviderProfile(kind=ProviderKind.ANTHROPIC, api_key="sk-ant-test")


@pytest.fixture
def ollama_profile():
    return ProviderProfile(kind=ProviderKind.OLLAMA)


def scripted_backend(
    kind: ProviderKind,
    *,
    vector: list[float] | None = None,
    deltas: tuple[str, ...] = (),
    error: Exception | None = None,
    embed_error: Exception | None = None,
    check_error: Exception | None = None,
    delay: float = 0.0,
    first_delay: float = 0.0,
):
    """Build a backend class for kind that replays canned output.

    The class records every message list it streams in `calls`, every
    embedded batch in `embedded`, and each connection check in `checks`.
    `closed` is set once a stream is torn down.
    """
    base = BACKENDS[kind]

    class ScriptedBackend(base):
        calls: list[list[dict]] = []
        embedded: list[list[str]] = []
        checks: list[str] = []
        closed = False

        def embed(self, texts):
            ScriptedBackend.embedded.append(list(texts))
            if embed_error is not None:
                raise embed_error
            return [list(vector or [1.0, 0.0]) for _ in texts]

        async def aembed(self, texts):
            return self.embed(texts)

        async def acheck(self):
            ScriptedBackend.checks.append(self.chat_model)
            if first_delay:
                await asyncio.sleep(first_delay)
            if check_error is not None:
                raise check_error

        async def astream(self, messages):
            ScriptedBackend.calls.append(messages)
            try:
                if first_delay:
                    await asyncio.sleep(first_delay)
                for text in deltas:
                    if delay:
                        await asyncio.sleep(delay)
                    yield text
                if error is not None:
                    raise error
            finally:
                ScriptedBackend.closed = True

    ScriptedBackend.__name__ = f"Scripted{base.__name__}"
    return ScriptedBackend


@pytest.fixture
def install_backend(monkeypatch):
    """Replace the backend class used for a provider kind."""

    def install(kind: ProviderKind, **script):
        backend_cls = scripted_backend(kind, **script)
        monkeypatch.setitem(BACKENDS, kind, backend_cls)
        return backend_cls

    return install


class EventRecorder:
    """Collects RequestManager events."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def of(self, request_id, event_type=None):
        return [
            e
            for e in self.events
            if e.request_id == request_id and (event_type is None or e.type == event_type)
        ]

    def text(self, request_id):
        return "".join(e.text for e in self.of(request_id, "increment"))

    def terminal(self, request_id):
        return [e for e in self.of(request_id) if e.type in ("status", "error")]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture(autouse=True)
def reset_folio_logger():
    """Undo configure_logging so caplog sees folio records."""
    yield
    logger = logging.getLogger("folio")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def clean_env(monkeypatch, temp_dir):
    """Run from an empty directory with no provider credentials or FOLIO_* variables."""
    for name in list(os.environ):
        if name.startswith("FOLIO_"):
            monkeypatch.delenv(name)
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "OLLAMA_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(temp_dir)
    return temp_dir
