# tests/stores/test_document_registry.py
"""Tests for the SQLite document registry."""

import pytest

from folio.stores import DocumentRegistry, SQLiteDocumentRegistry


@pytest.fixture
def registry(db_path):
    return SQLiteDocumentRegistry(db_path)


class TestSQLiteDocumentRegistry:
    def test_is_registry(self, registry):
        assert isinstance(registry, DocumentRegistry)

    def test_unknown_document(self, registry):
        assert registry.get_hash("missing") is None

    def test_set_and_get_hash(self, registry):
        registry.set_hash("guides/deploy", "abc123", collection="guides", title="Deploy")
        assert registry.get_hash("guides/deploy") == "abc123"

    def test_set_hash_replaces(self, registry):
        registry.set_hash("doc", "old")
        registry.set_hash("doc", "new")
        assert registry.get_hash("doc") == "new"
        assert registry.list_documents() == ["doc"]

    def test_delete(self, registry):
        registry.set_hash("doc", "hash")
        registry.delete("doc")
        assert registry.get_hash("doc") is None
        registry.delete("never-existed")

    def test_list_documents_sorted(self, registry):
        registry.set_hash("zeta", "1")
        registry.set_hash("alpha", "2")
        assert registry.list_documents() == ["alpha", "zeta"]

    def test_get_titles(self, registry):
        registry.set_hash("guides/deploy", "1", title="Deploy")
        registry.set_hash("notes", "2")

        assert registry.get_titles(["guides/deploy", "notes", "unknown"]) == {
            "guides/deploy": "Deploy",
            "notes": "",
        }
        assert registry.get_titles([]) == {}

    def test_generation_starts_at_zero(self, registry):
        assert registry.generation() == 0

    def test_bump_generation(self, registry):
        assert registry.bump_generation() == 1
        assert registry.bump_generation() == 2
        assert registry.generation() == 2

    def test_generation_visible_to_readers(self, db_path, registry):
        registry.bump_generation()
        reader = SQLiteDocumentRegistry(db_path, read_only=True)
        assert reader.generation() == 1
