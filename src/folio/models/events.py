"""Events emitted by the RequestManager.

Every event carries its request id so a caller juggling several
concurrent questions can demultiplex them.
"""

from collections.abc import Callable
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from folio.models.request import RequestStatus
from folio.models.results import SourceReference


class IncrementEvent(BaseModel):
    """A piece of answer text, in generation order."""

    type: Literal["increment"] = "increment"
    request_id: str
    text: str


class SourcesEvent(BaseModel):
    """The context chunks the answer is grounded on."""

    type: Literal["sources"] = "sources"
    request_id: str
    sources: list[SourceReference]


class StatusEvent(BaseModel):
    """Terminal Done or Cancelled signal.

    retrieval_empty distinguishes "no answer possible" (nothing matched)
    from a normal grounded answer.
    """

    type: Literal["status"] = "status"
    request_id: str
    status: Literal[RequestStatus.DONE, RequestStatus.CANCELLED]
    retrieval_empty: bool = False


class ErrorEvent(BaseModel):
    """Terminal Error signal."""

    type: Literal["error"] = "error"
    request_id: str
    message: str
    kind: str = "provider"


RequestEvent = Annotated[
    IncrementEvent | SourcesEvent | StatusEvent | ErrorEvent,
    Field(discriminator="type"),
]

EventCallback = Callable[[IncrementEvent | SourcesEvent | StatusEvent | ErrorEvent], None]


def is_terminal_event(event: IncrementEvent | SourcesEvent | StatusEvent | ErrorEvent) -> bool:
    return isinstance(event, StatusEvent | ErrorEvent)
