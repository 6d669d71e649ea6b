"""Provider gateway: backend selection, embedding fallback and chat streaming."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Iterable
from typing import Protocol

from folio.exceptions import (
    EmbeddingUnavailable,
    ProviderError,
    ProviderNotConfigured,
    ProviderUnavailable,
    UnsupportedOperation,
)
from folio.models import Chunk, ProviderKind, ProviderProfile
from folio.providers.base import ProviderBackend
from folio.providers.litellm import BACKENDS, map_error
from folio.providers.prompts import build_messages
from folio.settings import Settings

logger = logging.getLogger(__name__)

# Default chat backend when no kind is requested and no preference is set
RESOLVE_ORDER = (
    ProviderKind.OPENAI,
    ProviderKind.ANTHROPIC,
    ProviderKind.GEMINI,
    ProviderKind.OLLAMA,
)

# Embedding fallback after the build-time model and the preferred kind
EMBEDDING_FALLBACK_ORDER = (ProviderKind.OLLAMA, ProviderKind.OPENAI, ProviderKind.GEMINI)


class StreamSink(Protocol):
    """Receives one chat stream's output.

    on_delta is called in generation order, followed by exactly one of
    on_complete or on_error. Nothing is called after a cancelled stream.
    """

    def on_open(self) -> None: ...

    def on_delta(self, text: str) -> None: ...

    def on_complete(self) -> None: ...

    def on_error(self, error: ProviderError) -> None: ...


class StreamHandle:
    """Control over one in-flight chat stream.

    The gateway owns the pumping task; callers can only cancel it or wait
    for it to finish.
    """

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        """Cancel the stream. Closes the response so the backend stops generating."""
        return self._task.cancel()

    async def wait(self) -> None:
        """Wait until the stream finished, failed or was cancelled. Never raises."""
        await asyncio.wait({self._task})


async def _next(stream: AsyncIterator[str]) -> str:
    return await anext(stream)


class ProviderGateway:
    """Uniform access to the configured completion/embedding backends.

    Backends are pooled: one instance per profile, shared by every
    concurrent request.

    Example:
        gateway = ProviderGateway([openai_profile, ollama_profile], Settings())
        vector = await gateway.aembed_query("How do I rotate keys?")
        handle = gateway.stream_chat(openai_profile, None, chunks, question, sink)
        await handle.wait()
    """

    def __init__(
        self,
        profiles: Iterable[ProviderProfile],
        settings: Settings | None = None,
        preferred: ProviderKind | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            profiles: Resolved provider profiles, at most one per kind.
            settings: Timeouts, retries and generation parameters.
            preferred: Kind used when a caller does not name one.
        """
        self.profiles: dict[ProviderKind, ProviderProfile] = {p.kind: p for p in profiles}
        self.settings = settings or Settings()
        self.preferred = preferred
        self._backends: dict[ProviderKind, ProviderBackend] = {}
        self._lock = threading.Lock()

    def resolve(self, kind: ProviderKind | None = None) -> ProviderProfile:
        """Return the profile for a kind, or the default profile.

        Raises:
            ProviderNotConfigured: If the kind (or any kind, when None) has no profile.
        """
        if kind is not None:
            if kind not in self.profiles:
                raise ProviderNotConfigured(kind.value)
            return self.profiles[kind]

        for candidate in (self.preferred, *RESOLVE_ORDER):
            if candidate is not None and candidate in self.profiles:
                return self.profiles[candidate]
        raise ProviderNotConfigured(self.preferred.value if self.preferred else "any")

    def backend(self, profile: ProviderProfile) -> ProviderBackend:
        """Return the pooled backend for a profile, creating it on first use."""
        with self._lock:
            cached = self._backends.get(profile.kind)
            if cached is not None and cached.profile == profile:
                return cached
            backend = BACKENDS[profile.kind](
                profile,
                request_timeout=self.settings.request_timeout,
                num_retries=self.settings.num_retries,
                max_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
            )
            self._backends[profile.kind] = backend
            return backend

    def _embedding_candidates(
        self, preferred: ProviderKind | None = None, model: str | None = None
    ) -> list[ProviderBackend]:
        kinds: list[ProviderKind | None] = []
        if model:
            kinds.extend(
                kind
                for kind, profile in self.profiles.items()
                if self.backend(profile).embedding_model == model
            )
        kinds.extend([preferred or self.preferred, *EMBEDDING_FALLBACK_ORDER])

        candidates: list[ProviderBackend] = []
        seen: set[ProviderKind] = set()
        for kind in kinds:
            if kind is None or kind in seen or kind not in self.profiles:
                continue
            seen.add(kind)
            backend = self.backend(self.profiles[kind])
            if backend.supports_embedding:
                candidates.append(backend)
        return candidates

    def embedding_backend(self, kind: ProviderKind | None = None) -> ProviderBackend:
        """Return the first embedding-capable backend, trying kind first.

        Raises:
            EmbeddingUnavailable: If no configured backend can embed.
        """
        candidates = self._embedding_candidates(preferred=kind)
        if not candidates:
            raise EmbeddingUnavailable("No configured provider supports embeddings")
        return candidates[0]

    def embed_texts(
        self, texts: list[str], kind: ProviderKind | None = None
    ) -> list[list[float]]:
        """Embed a batch of texts at build time with the first capable backend."""
        return self.embedding_backend(kind).embed(texts)

    def embed(self, text: str, kind: ProviderKind | None = None) -> list[float]:
        """Embed a single text at build time."""
        return self.embed_texts([text], kind)[0]

    async def aembed_query(
        self,
        text: str,
        preferred: ProviderKind | None = None,
        model: str | None = None,
    ) -> list[float]:
        """Embed a query, falling back across embedding-capable backends.

        Tries the backend that produced the store's embeddings (model)
        first, then the preferred kind, then ollama, openai and gemini.

        Raises:
            EmbeddingUnavailable: If every candidate failed or none is configured.
        """
        candidates = self._embedding_candidates(preferred=preferred, model=model)
        last_error: Exception | None = None
        for backend in candidates:
            try:
                vectors = await backend.aembed([text])
                return vectors[0]
            except (ProviderError, UnsupportedOperation) as e:
                logger.warning("Query embedding with %s failed: %s", backend.kind.value, e)
                last_error = e

        message = "No embedding backend available"
        if last_error is not None:
            message = f"{message}: {last_error}"
        raise EmbeddingUnavailable(message)

    async def check(self, kind: ProviderKind | None = None) -> str:
        """Verify that a provider accepts its credentials and answers.

        Sends a minimal chat request, bounded by request_timeout.

        Args:
            kind: Provider to check; None uses the preferred/first profile

        Returns:
            A short success message naming the checked model.

        Raises:
            ProviderNotConfigured: If no matching profile exists.
            ProviderError: If the call fails; kind is "auth", "rate_limit",
                "timeout" or "unavailable" when that can be told apart.
        """
        profile = self.resolve(kind)
        backend = self.backend(profile)
        timeout = self.settings.request_timeout
        try:
            await asyncio.wait_for(backend.acheck(), timeout)
        except TimeoutError as e:
            raise ProviderUnavailable(
                f"No response from {profile.kind.value} within {timeout:g}s",
                kind="timeout",
                provider=profile.kind.value,
            ) from e
        except Exception as e:
            raise map_error(e, profile.kind) from e
        logger.info("Connection check passed for %s", backend.chat_model)
        return f"Connected to {profile.kind.value} ({backend.chat_model})"

    def stream_chat(
        self,
        profile: ProviderProfile,
        system_prompt: str | None,
        context_chunks: list[Chunk],
        question: str,
        sink: StreamSink,
    ) -> StreamHandle:
        """Start streaming a grounded answer into sink.

        Must be called from a running event loop. Returns immediately; the
        sink receives on_open, on_delta(text)... and then exactly one of
        on_complete or on_error. Errors are delivered to the sink, never
        raised.
        """
        backend = self.backend(profile)
        messages = build_messages(context_chunks, question, system_prompt)
        task = asyncio.get_running_loop().create_task(
            self._pump(backend, messages, sink), name=f"folio-stream-{profile.kind.value}"
        )
        return StreamHandle(task)

    async def _pump(
        self, backend: ProviderBackend, messages: list[dict], sink: StreamSink
    ) -> None:
        stream = backend.astream(messages)
        opened = False
        # The first increment includes request latency
        timeout = self.settings.request_timeout
        try:
            while True:
                try:
                    text = await asyncio.wait_for(_next(stream), timeout)
                except StopAsyncIteration:
                    break
                if not opened:
                    opened = True
                    sink.on_open()
                sink.on_delta(text)
                timeout = self.settings.stream_idle_timeout
            if not opened:
                sink.on_open()
            sink.on_complete()
        except TimeoutError:
            sink.on_error(
                ProviderUnavailable(
                    f"No response from {backend.kind.value} within {timeout:g}s",
                    kind="timeout",
                    provider=backend.kind.value,
                )
            )
        except ProviderError as e:
            sink.on_error(e)
        except Exception as e:
            logger.exception("Unexpected error streaming from %s", backend.kind.value)
            sink.on_error(ProviderError(str(e), provider=backend.kind.value))
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
