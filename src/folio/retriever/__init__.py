"""Hybrid retrieval for Folio."""

from folio.retriever.hybrid import BOTH_BONUS, SPARSE_SCORE, HybridRetriever
from folio.retriever.keywords import STOP_WORDS, build_match_query, extract_keywords

__all__ = [
    "HybridRetriever",
    "build_match_query",
    "extract_keywords",
    "STOP_WORDS",
    "SPARSE_SCORE",
    "BOTH_BONUS",
]
