"""Tests for the agent runtime."""

import pytest

from hackmatch.agents.base import AgentRuntime, AgentState
from hackmatch.events import EventType, PlatformEvent


class RecordingHandler:
    """Handler that records the events it receives."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.events_received = []

    async def __call__(self, event: PlatformEvent) -> None:
        self.events_received.append(event)
        if self.fail:
            raise RuntimeError("handler failed")


class TestAgentState:
    """Test agent state model."""

    def test_agent_state_creation(self):
        state = AgentState(
            name="TestAgent",
            description="test",
            subscribed_types=[EventType.TEAM_FORMED],
            published_types=[]
        )

        assert state.name == "TestAgent"
        assert state.is_running is False
        assert state.processed_count == 0
        assert state.last_activity is None
        assert state.created_at is not None


class TestAgentRuntime:
    """Test runtime lifecycle, dispatch and publishing."""

    @pytest.fixture
    def runtime(self, bus):
        return AgentRuntime(
            name="TestAgent",
            description="Agent used in tests",
            bus=bus,
            subscribed_types=[EventType.TEAM_FORMED, EventType.TEAM_MEMBER_ADDED],
            published_types=[EventType.NOTIFICATION_SEND]
        )

    @pytest.fixture
    def handler(self):
        return RecordingHandler()

    def test_runtime_initialization(self, runtime):
        assert runtime.name == "TestAgent"
        assert not runtime.is_running
        assert runtime.get_status()["description"] == "Agent used in tests"

    async def test_runtime_lifecycle(self, runtime, handler, bus):
        assert await runtime.start(handler)
        assert runtime.is_running
        assert runtime.state.started_at is not None
        assert bus.get_listener_count(EventType.TEAM_FORMED) == 1
        assert bus.get_listener_count(EventType.TEAM_MEMBER_ADDED) == 1

        assert await runtime.stop()
        assert not runtime.is_running
        assert runtime.state.started_at is None
        assert bus.get_listener_count(EventType.TEAM_FORMED) == 0

    async def test_start_and_stop_are_idempotent(self, runtime, handler, bus):
        assert await runtime.start(handler)
        assert not await runtime.start(handler)
        assert bus.get_listener_count(EventType.TEAM_FORMED) == 1

        assert await runtime.stop()
        assert not await runtime.stop()

    async def test_events_are_forwarded_while_running(self, runtime, handler, bus):
        await runtime.start(handler)

        event = await bus.publish(PlatformEvent(type=EventType.TEAM_FORMED, source="test"))

        assert handler.events_received == [event]
        assert runtime.state.processed_count == 1
        assert runtime.state.last_activity is not None

    async def test_no_events_after_stop(self, runtime, handler, bus):
        await runtime.start(handler)
        await runtime.stop()

        await bus.publish(PlatformEvent(type=EventType.TEAM_FORMED, source="test"))
        assert handler.events_received == []

    async def test_unsubscribed_types_are_ignored(self, runtime, handler):
        await runtime.start(handler)

        await runtime.handle_event(
            PlatformEvent(type=EventType.AGENT_STARTED, source="test").stamped()
        )
        assert handler.events_received == []
        assert runtime.state.processed_count == 0

    async def test_duplicate_event_ids_are_processed_once(self, runtime, handler):
        await runtime.start(handler)
        event = PlatformEvent(type=EventType.TEAM_FORMED, source="test").stamped()

        await runtime.handle_event(event)
        await runtime.handle_event(event)

        assert len(handler.events_received) == 1
        assert runtime.state.processed_count == 1

    async def test_handler_errors_become_system_errors(self, runtime, bus):
        await runtime.start(RecordingHandler(fail=True))

        await bus.publish(PlatformEvent(type=EventType.TEAM_FORMED, source="test"))

        errors = bus.get_event_history(EventType.SYSTEM_ERROR)
        assert len(errors) == 1
        assert errors[0].data["handler_name"] == "TestAgent.handle_event"

    async def test_publish_declared_type(self, runtime, bus):
        event = await runtime.publish(
            EventType.NOTIFICATION_SEND,
            {"user_id": "u1", "notification": {"type": "t", "title": "t", "message": "m"}},
            user_id="u1"
        )

        assert event is not None
        assert event.source == "TestAgent"
        assert event.user_id == "u1"
        assert bus.get_event_history()[0].id == event.id

    async def test_publish_undeclared_type_is_refused(self, runtime, bus):
        event = await runtime.publish(EventType.TEAM_FORMED, {"team_id": "t1"})

        assert event is None
        assert bus.get_event_history() == []

    def test_validate_payload(self, runtime):
        event = PlatformEvent(type=EventType.TEAM_FORMED, source="test", data={"a": 1, "b": None})

        assert runtime.validate_payload(event, ["a", "b"])
        assert not runtime.validate_payload(event, ["a", "c"])
        assert not runtime.validate_payload(
            PlatformEvent(type=EventType.TEAM_FORMED, source="test"), ["a"]
        )
