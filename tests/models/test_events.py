# tests/models/test_events.py
"""Tests for request models and events."""

from pydantic import TypeAdapter

from folio.models import (
    ConversationRequest,
    ErrorEvent,
    IncrementEvent,
    RequestEvent,
    RequestStatus,
    SourcesEvent,
    StatusEvent,
    is_terminal_event,
)


class TestRequestStatus:
    def test_terminal_states(self):
        assert not RequestStatus.PENDING.is_terminal
        assert not RequestStatus.STREAMING.is_terminal
        assert RequestStatus.DONE.is_terminal
        assert RequestStatus.CANCELLED.is_terminal
        assert RequestStatus.ERROR.is_terminal


class TestConversationRequest:
    def test_defaults(self):
        request = ConversationRequest(request_id="r1", question="How?")
        assert request.status is RequestStatus.PENDING
        assert request.answer == ""
        assert request.sources == []
        assert request.provider is None
        assert request.created_at.tzinfo is not None


class TestEvents:
    def test_terminal_events(self):
        assert is_terminal_event(StatusEvent(request_id="r1", status=RequestStatus.DONE))
        assert is_terminal_event(ErrorEvent(request_id="r1", message="boom"))
        assert not is_terminal_event(IncrementEvent(request_id="r1", text="hi"))
        assert not is_terminal_event(SourcesEvent(request_id="r1", sources=[]))

    def test_discriminated_by_type(self):
        adapter = TypeAdapter(RequestEvent)

        event = adapter.validate_python(
            {"type": "status", "request_id": "r1", "status": "cancelled"}
        )

        assert isinstance(event, StatusEvent)
        assert event.status is RequestStatus.CANCELLED
        assert event.retrieval_empty is False

    def test_serializes_for_transport(self):
        event = ErrorEvent(request_id="r1", message="Rate limit exceeded", kind="rate_limit")
        assert event.model_dump() == {
            "type": "error",
            "request_id": "r1",
            "message": "Rate limit exceeded",
            "kind": "rate_limit",
        }
