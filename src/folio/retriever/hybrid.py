"""Hybrid dense + sparse retrieval."""

import asyncio
import logging
import math
import threading
from dataclasses import dataclass

import numpy as np

from folio.exceptions import RetrievalEmpty
from folio.models import SearchResult
from folio.retriever.keywords import build_match_query
from folio.stores import ChunkStore, DocumentRegistry, EmbeddingStore

logger = logging.getLogger(__name__)

# Fusion weights: a sparse-only hit scores SPARSE_SCORE; a hit found by
# both passes gets BOTH_BONUS on top of its cosine similarity.
SPARSE_SCORE = 0.5
BOTH_BONUS = 0.35


@dataclass
class _DenseIndex:
    """Row-normalized embedding matrix for one corpus generation."""

    generation: int | None
    chunk_ids: np.ndarray
    matrix: np.ndarray

    @property
    def dimension(self) -> int:
        return self.matrix.shape[1]


class HybridRetriever:
    """Merges brute-force cosine search with FTS5 keyword search.

    The stores are treated as immutable while serving queries, so one
    retriever can be shared by any number of concurrent requests. The
    embedding matrix is cached and reloaded when the registry generation
    changes.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        embedding_store: EmbeddingStore,
        registry: DocumentRegistry | None = None,
        dense_k: int = 10,
        sparse_k: int = 5,
        default_limit: int = 8,
    ) -> None:
        """Initialize the retriever.

        Args:
            chunk_store: Chunk store with the full-text index
            embedding_store: Per-chunk embeddings for the dense pass
            registry: Document registry whose generation invalidates the
                cached matrix. Without one, embeddings are reloaded per query.
            dense_k: Results taken from the dense pass
            sparse_k: Results taken from the sparse pass
            default_limit: Maximum merged results when no limit is given
        """
        self.chunk_store = chunk_store
        self.embedding_store = embedding_store
        self.registry = registry
        self.dense_k = dense_k
        self.sparse_k = sparse_k
        self.default_limit = default_limit
        self._index: _DenseIndex | None = None
        self._lock = threading.Lock()

    def _load_index(self) -> _DenseIndex | None:
        generation = self.registry.generation() if self.registry else None
        with self._lock:
            if (
                self._index is not None
                and generation is not None
                and self._index.generation == generation
            ):
                return self._index

            rows = list(self.embedding_store.get_all())
            if not rows:
                self._index = None
                return None

            chunk_ids = np.array([r.chunk_id for r in rows], dtype=np.int64)
            matrix = np.vstack([r.vector for r in rows]).astype(np.float64)
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            with np.errstate(divide="ignore", invalid="ignore"):
                matrix = matrix / norms

            self._index = _DenseIndex(generation=generation, chunk_ids=chunk_ids, matrix=matrix)
            logger.debug("Loaded %d embeddings (generation %s)", len(rows), generation)
            return self._index

    def dense_search(self, vector: list[float], k: int | None = None) -> list[SearchResult]:
        """Rank chunks by cosine similarity to a query vector.

        Non-positive and non-finite similarities are dropped. Ties are
        broken by the lower chunk id.
        """
        k = self.dense_k if k is None else k
        if k <= 0:
            return []

        index = self._load_index()
        if index is None:
            return []

        query = np.asarray(vector, dtype=np.float64)
        if query.shape != (index.dimension,):
            logger.warning(
                "Query vector has dimension %d, store has %d; skipping dense search",
                query.size,
                index.dimension,
            )
            return []

        norm = np.linalg.norm(query)
        if not math.isfinite(norm) or norm == 0:
            return []

        with np.errstate(invalid="ignore"):
            scores = index.matrix @ (query / norm)
        keep = np.isfinite(scores) & (scores > 0)
        ids = index.chunk_ids[keep]
        scores = scores[keep]

        order = np.lexsort((ids, -scores))[:k]
        top_ids = [int(i) for i in ids[order]]
        top_scores = [float(s) for s in scores[order]]

        chunks = {c.id: c for c in self.chunk_store.get_many(top_ids)}
        results = []
        for chunk_id, score in zip(top_ids, top_scores, strict=True):
            chunk = chunks.get(chunk_id)
            if chunk is not None:
                results.append(
                    SearchResult(chunk=chunk, score=score, dense_rank=len(results))
                )
        return results

    def sparse_search(self, text: str, k: int | None = None) -> list[SearchResult]:
        """Rank chunks by full-text relevance to the query's keywords."""
        k = self.sparse_k if k is None else k
        match_query = build_match_query(text)
        if not match_query or k <= 0:
            return []
        hits = self.chunk_store.search_text(match_query, k)
        return [
            SearchResult(chunk=chunk, score=score, sparse_rank=rank)
            for rank, (chunk, score) in enumerate(hits)
        ]

    def retrieve(
        self,
        query_text: str,
        query_vector: list[float] | None = None,
        limit: int | None = None,
        raise_if_empty: bool = False,
    ) -> list[SearchResult]:
        """Retrieve context chunks for a question.

        Args:
            query_text: The user's question
            query_vector: Embedding of the question. None skips the dense pass.
            limit: Maximum results (default: self.default_limit)
            raise_if_empty: Raise RetrievalEmpty instead of returning []

        Returns:
            At most limit results with distinct chunk ids. Dense hits score
            their cosine similarity, sparse-only hits score 0.5, and hits in
            both passes get +0.35. Ordered by score, then dense rank, sparse
            rank and chunk id.

        Raises:
            RetrievalEmpty: If raise_if_empty and neither pass matched.
        """
        limit = self.default_limit if limit is None else limit
        if limit <= 0:
            return []

        dense = self.dense_search(query_vector) if query_vector is not None else []
        sparse = self.sparse_search(query_text)

        merged: dict[int, SearchResult] = {r.chunk.id: r for r in dense}
        for hit in sparse:
            existing = merged.get(hit.chunk.id)
            if existing is not None:
                merged[hit.chunk.id] = existing.model_copy(
                    update={"score": existing.score + BOTH_BONUS, "sparse_rank": hit.sparse_rank}
                )
            else:
                merged[hit.chunk.id] = hit.model_copy(update={"score": SPARSE_SCORE})

        def sort_key(result: SearchResult) -> tuple:
            return (
                -result.score,
                result.dense_rank if result.dense_rank is not None else math.inf,
                result.sparse_rank if result.sparse_rank is not None else math.inf,
                result.chunk.id,
            )

        results = sorted(merged.values(), key=sort_key)[:limit]
        logger.debug(
            "Retrieved %d results (%d dense, %d sparse) for %r",
            len(results),
            len(dense),
            len(sparse),
            query_text,
        )
        if raise_if_empty and not results:
            raise RetrievalEmpty(f"No chunks matched {query_text!r}")
        return results

    async def aretrieve(
        self,
        query_text: str,
        query_vector: list[float] | None = None,
        limit: int | None = None,
        raise_if_empty: bool = False,
    ) -> list[SearchResult]:
        """Async version of retrieve, run in a worker thread."""
        return await asyncio.to_thread(
            self.retrieve, query_text, query_vector, limit, raise_if_empty
        )
