# tests/loaders/test_markdown.py
"""Tests for the markdown loader."""

import os
from pathlib import Path

import pytest

from folio.exceptions import IngestError
from folio.loaders import MarkdownLoader, split_front_matter, to_slug


def write(root, relative, content, mode="w"):
    path = Path(root) / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode == "wb":
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


class TestToSlug:
    def test_strips_numeric_prefix(self):
        assert to_slug("01-getting-started") == "getting-started"

    def test_lowercases_and_hyphenates(self):
        assert to_slug("Deploy Basics & Tips") == "deploy-basics-tips"

    def test_keep_prefix(self):
        assert to_slug("01-setup", strip_prefix=False) == "01-setup"


class TestSplitFrontMatter:
    def test_no_front_matter(self):
        assert split_front_matter("# Title\n\nBody") == ({}, "# Title\n\nBody")

    def test_front_matter(self):
        data, body = split_front_matter("---\ntitle: Deploy\ntags: [ops]\n---\n# Heading\n")
        assert data == {"title": "Deploy", "tags": ["ops"]}
        assert body == "# Heading\n"

    def test_invalid_yaml(self):
        with pytest.raises(ValueError):
            split_front_matter("---\ntitle: [unclosed\n---\nBody")

    def test_not_a_mapping(self):
        with pytest.raises(ValueError):
            split_front_matter("---\n- a\n- b\n---\nBody")


class TestMarkdownLoader:
    def test_supports(self, temp_dir):
        loader = MarkdownLoader(temp_dir)
        assert loader.supports("a.md")
        assert loader.supports("a.MARKDOWN")
        assert loader.supports("notes.txt")
        assert not loader.supports("a.pdf")

    def test_discover_sorted_and_filtered(self, temp_dir):
        write(temp_dir, "b.md", "B")
        write(temp_dir, "a/z.md", "Z")
        write(temp_dir, "image.png", "nope")
        write(temp_dir, ".hidden.md", "hidden")

        found = MarkdownLoader(temp_dir).discover()

        assert [p.name for p in found] == ["z.md", "b.md"]

    def test_discover_single_file(self, temp_dir):
        path = write(temp_dir, "one.md", "One")
        assert MarkdownLoader(temp_dir).discover(path) == [path]

    def test_discover_missing(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            MarkdownLoader(temp_dir).discover(os.path.join(temp_dir, "missing"))

    def test_document_id_and_collection(self, temp_dir):
        path = write(temp_dir, "02-Guides/Deploy Basics.md", "# Deploy\n\nText")

        document = MarkdownLoader(temp_dir).load(path)

        assert document.id == "guides/deploy-basics"
        assert document.collection == "guides"

    def test_top_level_document_has_no_collection(self, temp_dir):
        document = MarkdownLoader(temp_dir).load(write(temp_dir, "readme.md", "Hi"))
        assert document.id == "readme"
        assert document.collection == ""

    def test_title_from_front_matter(self, temp_dir):
        path = write(temp_dir, "x.md", "---\ntitle: From Front Matter\n---\n# From H1\n")

        document = MarkdownLoader(temp_dir).load(path)

        assert document.title == "From Front Matter"
        assert document.text == "# From H1\n"

    def test_title_from_h1(self, temp_dir):
        document = MarkdownLoader(temp_dir).load(write(temp_dir, "x.md", "Intro\n\n# Real Title\n"))
        assert document.title == "Real Title"

    def test_title_from_file_stem(self, temp_dir):
        document = MarkdownLoader(temp_dir).load(write(temp_dir, "release-notes.md", "No h1"))
        assert document.title == "release-notes"

    def test_invalid_utf8(self, temp_dir):
        path = write(temp_dir, "bad.md", b"\xff\xfe", mode="wb")
        with pytest.raises(IngestError) as exc_info:
            MarkdownLoader(temp_dir).load(path)
        assert exc_info.value.document_id == "bad"

    def test_malformed_front_matter(self, temp_dir):
        path = write(temp_dir, "bad.md", "---\ntitle: [oops\n---\nBody")
        with pytest.raises(IngestError):
            MarkdownLoader(temp_dir).load(path)

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            MarkdownLoader(temp_dir).load(os.path.join(temp_dir, "nope.md"))
