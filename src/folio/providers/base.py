# src/folio/providers/base.py
"""Abstract base class for completion/embedding backends."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from folio.models import ProviderKind, ProviderProfile


class ProviderBackend(ABC):
    """One configured completion/embedding backend.

    A backend is bound to a single ProviderProfile and is shared by every
    request that uses that profile, so implementations must be safe to
    call concurrently.

    Example:
        class EchoBackend(ProviderBackend):
            kind = ProviderKind.OLLAMA

            async def astream(self, messages):
                yield messages[-1]["content"]
            ...
    """

    kind: ProviderKind

    def __init__(self, profile: ProviderProfile) -> None:
        if profile.kind is not self.kind:
            raise ValueError(
                f"{type(self).__name__} cannot serve a {profile.kind.value} profile"
            )
        self.profile = profile

    @property
    @abstractmethod
    def chat_model(self) -> str:
        """Model identifier used for chat completions."""
        ...

    @property
    @abstractmethod
    def embedding_model(self) -> str | None:
        """Model identifier used for embeddings, or None if unsupported."""
        ...

    @property
    def supports_embedding(self) -> bool:
        return self.embedding_model is not None

    @abstractmethod
    def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for multiple texts (build time).

        Returns:
            One vector per input text, in input order.

        Raises:
            UnsupportedOperation: If the backend has no embedding API.
            ProviderError: If the call fails.
        """
        ...

    @abstractmethod
    async def aembed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for multiple texts (async)."""
        ...

    @abstractmethod
    def astream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Stream a chat completion as text increments, in generation order.

        Closing the iterator (aclose) releases the underlying response so
        the backend stops generating.

        Raises:
            ProviderError: If the request fails or the stream breaks.
        """
        ...

    @abstractmethod
    async def acheck(self) -> None:
        """Make the smallest possible chat call to verify credentials and reachability.

        Raises:
            ProviderError: If the provider rejects the call or cannot be reached.
        """
        ...
