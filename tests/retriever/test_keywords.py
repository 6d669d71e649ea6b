# tests/retriever/test_keywords.py
"""Tests for keyword extraction and FTS5 query building."""

import sqlite3

import pytest

from folio.retriever import build_match_query, extract_keywords
from folio.retriever.keywords import FALLBACK_TERMS, quote_term


class TestExtractKeywords:
    def test_drops_stop_words_and_punctuation(self):
        assert extract_keywords("How do I handle incident response?") == [
            "handle",
            "incident",
            "response",
        ]

    def test_lowercases(self):
        assert extract_keywords("Deploy PRODUCTION") == ["deploy", "production"]

    def test_drops_single_characters(self):
        assert extract_keywords("a b c kubernetes") == ["kubernetes"]

    def test_only_stop_words_falls_back(self):
        assert extract_keywords("what is this") == ["what", "is", "this"]

    def test_fallback_is_capped(self):
        query = " ".join(["the", "and", "for", "with", "you", "our", "we", "it"])
        assert len(extract_keywords(query)) == FALLBACK_TERMS

    def test_empty(self):
        assert extract_keywords("") == []
        assert extract_keywords("?! ...") == []


class TestBuildMatchQuery:
    def test_disjunction_of_prefix_terms(self):
        assert build_match_query("incident response") == '"incident"* OR "response"*'

    def test_empty(self):
        assert build_match_query("   ") == ""

    def test_quote_term_doubles_quotes(self):
        assert quote_term('say"hi') == '"say""hi"*'

    @pytest.mark.parametrize(
        "query",
        [
            "NOT AND OR NEAR",
            'she said "hello" (loudly)',
            "column:value ^start * -minus",
            "c++ vs. c#",
        ],
    )
    def test_any_input_is_valid_fts5(self, query):
        conn = sqlite3.connect(":memory:")
        conn.execute("CREATE VIRTUAL TABLE t USING fts5(content)")
        conn.execute("INSERT INTO t (content) VALUES ('not and or near said hello column')")

        match = build_match_query(query)

        assert match
        conn.execute("SELECT rowid FROM t WHERE t MATCH ?", (match,)).fetchall()
        conn.close()
