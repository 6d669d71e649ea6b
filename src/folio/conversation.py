"""Request lifecycle management for concurrent streamed answers."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import uuid

from folio.exceptions import EmbeddingUnavailable, FolioError, ProviderError, RetrievalEmpty
from folio.models import (
    Chunk,
    ConversationRequest,
    ErrorEvent,
    EventCallback,
    IncrementEvent,
    ProviderKind,
    RequestStatus,
    SourceReference,
    SourcesEvent,
    StatusEvent,
)
from folio.providers import ProviderGateway
from folio.retriever import HybridRetriever
from folio.settings import Settings

logger = logging.getLogger(__name__)


class _RequestSink:
    """Feeds one request's stream back into the manager."""

    def __init__(self, manager: RequestManager, request: ConversationRequest) -> None:
        self.manager = manager
        self.request = request

    def on_open(self) -> None:
        if self.request.status is RequestStatus.PENDING:
            self.request.status = RequestStatus.STREAMING

    def on_delta(self, text: str) -> None:
        # Increments racing a cancellation are dropped
        if self.request.status.is_terminal:
            return
        self.request.answer += text
        self.manager._emit(IncrementEvent(request_id=self.request.request_id, text=text))

    def on_complete(self) -> None:
        self.manager._finish(self.request, RequestStatus.DONE)

    def on_error(self, error: ProviderError) -> None:
        self.manager._fail(self.request, str(error), error.kind)


class RequestManager:
    """Runs questions as independent asyncio tasks and reports their events.

    Each submitted question goes Pending -> Streaming -> Done, Cancelled
    or Error, and emits exactly one terminal event. Every event carries
    its request id, so several concurrent questions can share one
    callback.

    Example:
        manager = RequestManager(gateway, retriever, settings, on_event=print)
        request_id = manager.submit("How do I rotate the signing keys?")
        await manager.wait(request_id)
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        retriever: HybridRetriever,
        settings: Settings | None = None,
        on_event: EventCallback | None = None,
        embedding_model: str | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            gateway: Provider gateway for query embedding and chat streaming
            retriever: Hybrid retriever over the built corpus
            settings: Retrieval and generation settings
            on_event: Called with every IncrementEvent, SourcesEvent,
                StatusEvent and ErrorEvent
            embedding_model: Model the corpus was embedded with; query
                embedding tries it first
        """
        self.gateway = gateway
        self.retriever = retriever
        self.settings = settings or Settings()
        self.on_event = on_event
        self.embedding_model = embedding_model
        self._requests: dict[str, ConversationRequest] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def submit(
        self,
        question: str,
        provider: ProviderKind | None = None,
        request_id: str | None = None,
    ) -> str:
        """Start answering a question. Returns immediately.

        Must be called from a running event loop.

        Args:
            question: The user's question
            provider: Chat backend to use (default: the gateway's default)
            request_id: Caller-chosen id; a fresh uuid4 if omitted

        Returns:
            The request id.

        Raises:
            ValueError: If request_id belongs to a request still in flight.
        """
        request_id = request_id or str(uuid.uuid4())
        existing = self._requests.get(request_id)
        if existing is not None and not existing.status.is_terminal:
            raise ValueError(f"Request '{request_id}' is already in flight")

        request = ConversationRequest(request_id=request_id, question=question, provider=provider)
        self._requests[request_id] = request

        task = asyncio.get_running_loop().create_task(
            self._run(request), name=f"folio-request-{request_id}"
        )
        self._tasks[request_id] = task
        task.add_done_callback(lambda t: self._forget(request_id, t))
        logger.debug("Submitted request %s", request_id)
        return request_id

    def _forget(self, request_id: str, task: asyncio.Task[None]) -> None:
        # A reused id may already map to a newer task
        if self._tasks.get(request_id) is task:
            del self._tasks[request_id]

    def cancel(self, request_id: str) -> bool:
        """Cancel a pending or streaming request.

        The request becomes Cancelled and emits its terminal event
        immediately; the provider stream is then torn down.

        Returns:
            True if the request was cancelled, False if it was unknown or
            already terminal.
        """
        request = self._requests.get(request_id)
        if request is None or not self._finish(request, RequestStatus.CANCELLED):
            return False
        task = self._tasks.get(request_id)
        if task is not None:
            task.cancel()
        logger.debug("Cancelled request %s", request_id)
        return True

    def get(self, request_id: str) -> ConversationRequest | None:
        return self._requests.get(request_id)

    def active(self) -> list[ConversationRequest]:
        """Requests that have not reached a terminal state."""
        return [r for r in self._requests.values() if not r.status.is_terminal]

    async def wait(self, request_id: str) -> ConversationRequest | None:
        """Wait until a request's task (including stream teardown) finishes."""
        task = self._tasks.get(request_id)
        if task is not None:
            await asyncio.wait({task})
        return self._requests.get(request_id)

    async def aclose(self) -> None:
        """Cancel every live request and wait for their tasks."""
        for request in self.active():
            self.cancel(request.request_id)
        tasks = set(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks)

    def _emit(self, event: IncrementEvent | SourcesEvent | StatusEvent | ErrorEvent) -> None:
        if self.on_event is not None:
            self.on_event(event)

    def _finish(self, request: ConversationRequest, status: RequestStatus) -> bool:
        """Move to Done or Cancelled. No-op (False) if already terminal."""
        if request.status.is_terminal:
            return False
        request.status = status
        self._emit(
            StatusEvent(
                request_id=request.request_id,
                status=status,
                retrieval_empty=request.retrieval_empty,
            )
        )
        return True

    def _fail(self, request: ConversationRequest, message: str, kind: str) -> bool:
        """Move to Error. No-op (False) if already terminal."""
        if request.status.is_terminal:
            return False
        request.status = RequestStatus.ERROR
        request.error = message
        request.error_kind = kind
        logger.warning("Request %s failed (%s): %s", request.request_id, kind, message)
        self._emit(ErrorEvent(request_id=request.request_id, message=message, kind=kind))
        return True

    async def _run(self, request: ConversationRequest) -> None:
        try:
            await self._answer(request)
        except asyncio.CancelledError:
            raise
        except ProviderError as e:
            self._fail(request, str(e), e.kind)
        except sqlite3.Error as e:
            self._fail(request, f"Storage error: {e}", "storage")
        except FolioError as e:
            self._fail(request, str(e), "internal")
        except Exception as e:
            logger.exception("Request %s crashed", request.request_id)
            self._fail(request, str(e), "internal")

    async def _document_titles(self, chunks: list[Chunk]) -> dict[str, str]:
        """Look up each cited document's title once."""
        registry = self.retriever.registry
        if registry is None or not chunks:
            return {}
        document_ids = sorted({c.document_id for c in chunks})
        return await asyncio.to_thread(registry.get_titles, document_ids)

    async def _answer(self, request: ConversationRequest) -> None:
        profile = self.gateway.resolve(request.provider)

        vector = None
        try:
            vector = await self.gateway.aembed_query(
                request.question, preferred=request.provider, model=self.embedding_model
            )
        except EmbeddingUnavailable as e:
            logger.warning(
                "Request %s: %s; using sparse retrieval only", request.request_id, e
            )

        try:
            results = await self.retriever.aretrieve(
                request.question, vector, self.settings.retrieval_limit, raise_if_empty=True
            )
        except RetrievalEmpty:
            logger.info("Request %s: no context matched", request.request_id)
            results = []
        chunks = [r.chunk for r in results]
        request.retrieval_empty = not chunks
        cited = chunks[: self.settings.source_limit]
        titles = await self._document_titles(cited)
        request.sources = [
            SourceReference.from_chunk(c, titles.get(c.document_id, "")) for c in cited
        ]
        if request.status.is_terminal:
            return
        self._emit(SourcesEvent(request_id=request.request_id, sources=request.sources))

        handle = self.gateway.stream_chat(
            profile,
            self.settings.system_prompt,
            chunks,
            request.question,
            _RequestSink(self, request),
        )
        try:
            await handle.wait()
        except asyncio.CancelledError:
            handle.cancel()
            await handle.wait()
            raise
