"""Prompt construction for grounded answers."""

from folio.models import Chunk

SYSTEM_PROMPT = (
    "You are a helpful assistant for a documentation library. "
    "Answer questions based on the provided context from the documents. "
    "If the context does not contain enough information to answer, say so honestly. "
    "Use clear, concise language. Format your response with markdown where appropriate."
)

NO_CONTEXT = "No relevant context was found in the documents."

USER_TEMPLATE = """Here is relevant context from the documents:

{context}

---

Question: {question}"""


def format_context(chunks: list[Chunk]) -> str:
    """Render chunks as numbered context blocks, or a notice when there are none."""
    if not chunks:
        return NO_CONTEXT

    parts = []
    for i, chunk in enumerate(chunks, 1):
        heading = f" ({chunk.heading_context})" if chunk.heading_context else ""
        parts.append(f"--- Context {i} ---{heading}\n{chunk.content}")
    return "\n\n".join(parts)


def build_messages(
    chunks: list[Chunk],
    question: str,
    system_prompt: str | None = None,
) -> list[dict]:
    """Build the chat messages for a question and its context chunks.

    Args:
        chunks: Retrieved context, best first. May be empty.
        question: The user's question.
        system_prompt: Override for SYSTEM_PROMPT.

    Returns:
        A system message followed by one user message.
    """
    return [
        {"role": "system", "content": system_prompt or SYSTEM_PROMPT},
        {
            "role": "user",
            "content": USER_TEMPLATE.format(context=format_context(chunks), question=question),
        },
    ]
