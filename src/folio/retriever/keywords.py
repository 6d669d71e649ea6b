"""Keyword extraction and FTS5 query construction."""

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "can", "do", "does", "for",
        "from", "has", "have", "how", "i", "in", "is", "it", "its", "my", "not", "of",
        "on", "or", "our", "should", "so", "that", "the", "their", "them", "then",
        "there", "these", "they", "this", "to", "was", "we", "what", "when", "where",
        "which", "who", "why", "will", "with", "would", "you", "your",
    }
)  # fmt: skip

# Terms kept when a query is nothing but stop words ("what is this about")
FALLBACK_TERMS = 6


def extract_keywords(query: str) -> list[str]:
    """Extract search keywords from a free-text query.

    Terms are lowercased and stripped to alphanumeric characters; terms
    shorter than two characters are dropped, then stop words. A query of
    only stop words keeps its first few terms instead of matching nothing.
    """
    terms = []
    for word in query.split():
        term = "".join(ch for ch in word.lower() if ch.isalnum())
        if len(term) >= 2:
            terms.append(term)

    keywords = [t for t in terms if t not in STOP_WORDS]
    return keywords or terms[:FALLBACK_TERMS]


def quote_term(term: str) -> str:
    """Quote a term as an FTS5 prefix query, doubling embedded quotes."""
    escaped = term.replace('"', '""')
    return f'"{escaped}"*'


def build_match_query(query: str) -> str:
    """Build a disjunctive FTS5 MATCH expression for a free-text query.

    Every term is quoted, so operators (AND, OR, NOT, NEAR) and special
    characters in the input are matched literally and any input yields a
    valid expression. Returns "" when the query has no usable terms.

    Example:
        >>> build_match_query("How do I handle incident response?")
        '"handle"* OR "incident"* OR "response"*'
    """
    return " OR ".join(quote_term(k) for k in extract_keywords(query))
