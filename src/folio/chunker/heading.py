"""Heading-aware chunker implementation."""

import re
from dataclasses import dataclass, field
from typing import Literal

import pysbd

from folio.chunker.base import Chunker
from folio.models import Chunk

HEADING_RE = re.compile(r"^#{1,6}\s+")
FENCE_RE = re.compile(r"^\s*(```|~~~)")
PARAGRAPH_RE = re.compile(r"\n\s*\n")

# How a flushed chunk picks its heading label.
#   - "latest": the heading active when the buffer is flushed. A buffer
#     spanning a heading change is labelled with the newer heading.
#   - "dominant": the heading that covers the most characters of the buffer.
HeadingStrategy = Literal["latest", "dominant"]


def estimate_tokens(text: str) -> int:
    """Estimate the token count of text as words / 0.75, rounded up."""
    return _words_to_tokens(len(text.split()))


def _words_to_tokens(words: int) -> int:
    return -(-words * 4 // 3)


@dataclass
class Section:
    """Content introduced by one heading ("" before the first heading)."""

    heading: str
    content: str


def split_sections(text: str) -> list[Section]:
    """Split markdown text into sections at heading lines.

    Heading lines inside fenced code blocks are treated as content.
    Sections with blank content are dropped.
    """
    sections: list[Section] = []
    heading = ""
    lines: list[str] = []
    in_fence = False

    for line in text.split("\n"):
        if FENCE_RE.match(line):
            in_fence = not in_fence
        if not in_fence and HEADING_RE.match(line):
            sections.append(Section(heading, "\n".join(lines)))
            heading = HEADING_RE.sub("", line).strip().rstrip("#").strip()
            lines = []
        else:
            lines.append(line)

    sections.append(Section(heading, "\n".join(lines)))
    return [s for s in sections if s.content.strip()]


@dataclass
class _Buffer:
    """Text accumulated toward the next chunk, with per-heading character counts."""

    text: str = ""
    words: int = 0
    weights: dict[str, int] = field(default_factory=dict)
    last_heading: str = ""
    fresh: bool = False  # True once it holds more than the overlap seed

    @classmethod
    def seeded(cls, tail: list[str], heading: str) -> "_Buffer":
        text = " ".join(tail)
        return cls(
            text=text,
            words=len(tail),
            weights={heading: len(text)} if text else {},
            last_heading=heading,
        )

    def append(self, block: str, heading: str, sep: str) -> None:
        self.text = f"{self.text}{sep}{block}" if self.text else block
        self.words += len(block.split())
        self.weights[heading] = self.weights.get(heading, 0) + len(block)
        self.last_heading = heading
        self.fresh = True

    def trim_seed(self, max_words: int) -> None:
        """Shorten an overlap seed so that max_words more words still fit."""
        if self.fresh or self.words <= max_words:
            return
        tail = self.text.split()[-max_words:] if max_words > 0 else []
        trimmed = _Buffer.seeded(tail, self.last_heading)
        self.text, self.words, self.weights = trimmed.text, trimmed.words, trimmed.weights

    def dominant_heading(self) -> str:
        if not self.weights:
            return self.last_heading
        return max(self.weights, key=lambda heading: self.weights[heading])


class _Packer:
    """Packs blocks into chunks for a single chunk() call."""

    def __init__(
        self,
        document_id: str,
        capacity: int,
        overlap_words: int,
        heading_strategy: HeadingStrategy,
    ) -> None:
        self.document_id = document_id
        self.capacity = capacity
        self.overlap_words = overlap_words
        self.heading_strategy = heading_strategy
        self.buffer = _Buffer()
        self.chunks: list[Chunk] = []

    def add(self, block: str, heading: str, sep: str = "\n\n") -> None:
        words = len(block.split())
        if self.buffer.fresh and self.buffer.words + words > self.capacity:
            self.flush(heading)
        if not self.buffer.fresh:
            self.buffer.trim_seed(self.capacity - words)
        self.buffer.append(block, heading, sep)

    def flush(self, heading: str) -> None:
        if not self.buffer.fresh:
            return

        if self.heading_strategy == "dominant":
            label = self.buffer.dominant_heading()
        else:
            label = heading

        self.chunks.append(
            Chunk(
                document_id=self.document_id,
                index=len(self.chunks),
                content=self.buffer.text.strip(),
                heading_context=label,
            )
        )

        tail = self.buffer.text.split()[-self.overlap_words :] if self.overlap_words else []
        self.buffer = _Buffer.seeded(tail, self.buffer.last_heading)


class HeadingChunker(Chunker):
    """Splits markdown text into overlapping, heading-aware chunks.

    Sections that fit the target are merged into a running buffer. A
    section over the target is split into paragraphs, and a paragraph
    over the target into sentences (pySBD). Each flush carries the
    trailing overlap words into the next chunk.

    Token counts are estimated as words / 0.75, so the default target of
    500 tokens holds 375 words and the default overlap of 50 tokens
    carries 37 words.

    Example:
        chunker = HeadingChunker(target_tokens=500, overlap_tokens=50)
        chunks = chunker.chunk(markdown_text, document_id="guides/deploy")
    """

    def __init__(
        self,
        target_tokens: int = 500,
        overlap_tokens: int = 50,
        heading_strategy: HeadingStrategy = "latest",
        language: str = "en",
    ) -> None:
        """Initialize the chunker.

        Args:
            target_tokens: Maximum estimated tokens per chunk.
            overlap_tokens: Estimated tokens carried from the end of one
                chunk into the start of the next.
            heading_strategy: "latest" or "dominant" (see HeadingStrategy).
            language: Language code for sentence segmentation.

        Raises:
            ValueError: If overlap_tokens >= target_tokens or the strategy is unknown.
        """
        if target_tokens <= 0:
            raise ValueError(f"target_tokens must be positive, got {target_tokens}")
        if not 0 <= overlap_tokens < target_tokens:
            raise ValueError(
                f"overlap_tokens ({overlap_tokens}) must be in [0, target_tokens ({target_tokens}))"
            )
        if heading_strategy not in ("latest", "dominant"):
            raise ValueError(f"Unknown heading_strategy '{heading_strategy}'")

        self.target_tokens = target_tokens
        self.overlap_tokens = overlap_tokens
        self.heading_strategy: HeadingStrategy = heading_strategy
        self.segmenter = pysbd.Segmenter(language=language, clean=False)

        # Largest word count whose estimate stays within the target
        self._capacity = max(1, target_tokens * 3 // 4)
        self._overlap_words = overlap_tokens * 3 // 4

    def chunk(self, text: str, document_id: str = "") -> list[Chunk]:
        """Split text into chunks.

        Args:
            text: Plain document text; markdown headings start sections.
            document_id: Owning document id stamped on every chunk.

        Returns:
            Chunks in document order with indices 0..n-1. Empty input
            yields an empty list.
        """
        if not text.strip():
            return []

        sections = split_sections(text)
        if not sections:
            return []

        packer = _Packer(document_id, self._capacity, self._overlap_words, self.heading_strategy)

        for section in sections:
            heading = section.heading
            content = section.content.strip()

            if estimate_tokens(content) <= self.target_tokens:
                packer.add(content, heading)
                continue

            for paragraph in PARAGRAPH_RE.split(content):
                paragraph = paragraph.strip()
                if not paragraph:
                    continue
                if estimate_tokens(paragraph) <= self.target_tokens:
                    packer.add(paragraph, heading)
                    continue
                for i, piece in enumerate(self._split_sentences(paragraph)):
                    packer.add(piece, heading, sep="\n\n" if i == 0 else " ")

        packer.flush(sections[-1].heading)
        return packer.chunks

    def _split_sentences(self, paragraph: str) -> list[str]:
        """Split a paragraph into sentences, windowing any sentence over the target."""
        pieces: list[str] = []
        for sentence in self.segmenter.segment(paragraph):
            sentence = sentence.strip()
            if not sentence:
                continue
            words = sentence.split()
            if len(words) <= self._capacity:
                pieces.append(sentence)
                continue
            for start in range(0, len(words), self._capacity):
                pieces.append(" ".join(words[start : start + self._capacity]))
        return pieces
