"""Tests for the in-process event bus."""

import asyncio
from datetime import datetime, timezone

import pytest

from hackmatch.events import EventBus, EventType, PlatformEvent


def make_event(event_type: EventType = EventType.TEAM_FORMED, **kwargs) -> PlatformEvent:
    return PlatformEvent(type=event_type, source="test", **kwargs)


class TestEventBusLifecycle:
    """Test start, drain and stop."""

    async def test_start_and_stop(self, bus):
        assert not bus.is_running

        await bus.start()
        assert bus.is_running
        assert bus.get_statistics()["running"] is True

        await bus.stop()
        assert not bus.is_running

    async def test_stop_drops_subscriptions(self, bus):
        received = []
        bus.subscribe(EventType.TEAM_FORMED, received.append)
        await bus.start()
        await bus.stop()

        await bus.publish(make_event())
        assert received == []
        assert bus.get_listener_count(EventType.TEAM_FORMED) == 0

    async def test_drain_waits_for_fire_and_forget(self, bus):
        received = []

        async def slow_handler(event):
            await asyncio.sleep(0.01)
            received.append(event.id)

        bus.subscribe(EventType.TEAM_FORMED, slow_handler)
        tasks = [bus.publish_nowait(make_event()) for _ in range(3)]

        await bus.drain()

        assert all(task.done() for task in tasks)
        assert len(received) == 3


class TestEventBusPublish:
    """Test publishing and handler isolation."""

    async def test_publish_stamps_event(self, bus):
        event = await bus.publish(make_event())

        assert event.id
        assert event.timestamp is not None
        assert event.version == "1.0"
        assert bus.get_event_history()[0] == event

    async def test_event_ids_are_unique(self, bus):
        events = [await bus.publish(make_event()) for _ in range(20)]

        assert len({e.id for e in events}) == 20

    async def test_duplicate_caller_id_is_replaced(self, bus):
        first = await bus.publish(make_event(id="same"))
        second = await bus.publish(make_event(id="same"))

        assert first.id == "same"
        assert second.id != "same"

    async def test_publish_waits_for_handlers(self, bus):
        received = []

        async def handler(event):
            await asyncio.sleep(0)
            received.append(event)

        bus.subscribe(EventType.TEAM_FORMED, handler)
        event = await bus.publish(make_event())

        assert received == [event]

    async def test_sync_handlers_are_supported(self, bus):
        received = []
        bus.subscribe(EventType.TEAM_FORMED, received.append)

        await bus.publish(make_event())
        assert len(received) == 1

    async def test_handlers_only_receive_their_type(self, bus):
        received = []
        bus.subscribe(EventType.TEAM_FORMED, received.append)

        await bus.publish(make_event(EventType.AGENT_STARTED))
        assert received == []

    async def test_global_listener_receives_everything(self, bus):
        received = []
        bus.subscribe_to_all(received.append)

        await bus.publish(make_event(EventType.TEAM_FORMED))
        await bus.publish(make_event(EventType.AGENT_STARTED))

        assert [e.type for e in received] == [EventType.TEAM_FORMED, EventType.AGENT_STARTED]

        bus.unsubscribe_from_all(received.append)
        await bus.publish(make_event())
        assert len(received) == 2

    async def test_failing_handler_does_not_affect_siblings(self, bus):
        received = []
        errors = []

        async def failing_handler(event):
            raise RuntimeError("boom")

        bus.subscribe(EventType.TEAM_FORMED, failing_handler)
        bus.subscribe(EventType.TEAM_FORMED, received.append)
        bus.subscribe(EventType.SYSTEM_ERROR, errors.append)

        event = await bus.publish(make_event(correlation_id="corr-1"))

        assert received == [event]
        assert len(errors) == 1
        error = errors[0]
        assert error.data["error"] == "boom"
        assert "failing_handler" in error.data["handler_name"]
        assert error.data["original_event"]["id"] == event.id
        assert error.correlation_id == "corr-1"

    async def test_handler_cannot_rewrite_shared_payload(self, bus):
        received = []

        def rewrite_user(event):
            event.data["user_id"] = "mallory"

        def append_skill(event):
            event.data["skills"].append("Forgery")

        bus.subscribe(EventType.RESUME_PARSED, rewrite_user)
        bus.subscribe(EventType.RESUME_PARSED, append_skill)
        bus.subscribe(EventType.RESUME_PARSED, received.append)

        data = {"user_id": "alice", "skills": ["Python"]}
        await bus.publish(make_event(EventType.RESUME_PARSED, data=data))

        assert received[0].data["user_id"] == "alice"
        assert received[0].data["skills"] == ("Python",)
        stored = bus.get_event_history(EventType.RESUME_PARSED)[0]
        assert stored.data["user_id"] == "alice"
        assert stored.data["skills"] == ("Python",)
        assert len(bus.get_event_history(EventType.SYSTEM_ERROR)) == 2

        data["user_id"] = "mallory"
        assert stored.data["user_id"] == "alice"

    async def test_failing_error_handler_is_not_republished(self, bus):
        calls = []

        def failing_error_handler(event):
            calls.append(event)
            raise RuntimeError("still broken")

        bus.subscribe(EventType.SYSTEM_ERROR, failing_error_handler)

        await bus.publish(make_event(EventType.SYSTEM_ERROR, data={"error": "x"}))

        assert len(calls) == 1
        assert len(bus.get_event_history(EventType.SYSTEM_ERROR)) == 1

    async def test_publish_batch(self, bus):
        events = [make_event(), make_event(EventType.AGENT_STARTED), make_event()]

        published = await bus.publish_batch(events)

        assert len(published) == 3
        assert bus.get_statistics()["total_events"] == 3


class TestEventBusSubscriptions:
    """Test subscription bookkeeping."""

    def test_duplicate_subscription_is_noop(self, bus):
        handler = lambda event: None
        bus.subscribe(EventType.TEAM_FORMED, handler)
        bus.subscribe(EventType.TEAM_FORMED, handler)

        assert bus.get_listener_count(EventType.TEAM_FORMED) == 1

    def test_unsubscribe_drops_empty_sets(self, bus):
        handler = lambda event: None
        bus.subscribe(EventType.TEAM_FORMED, handler)
        assert EventType.TEAM_FORMED in bus.get_event_types()

        bus.unsubscribe(EventType.TEAM_FORMED, handler)
        assert EventType.TEAM_FORMED not in bus.get_event_types()

    def test_unsubscribe_unknown_handler(self, bus):
        bus.unsubscribe(EventType.TEAM_FORMED, lambda event: None)
        assert bus.get_listener_count(EventType.TEAM_FORMED) == 0


class TestEventBusHistory:
    """Test history retention and queries."""

    async def test_history_capacity_evicts_oldest(self):
        bus = EventBus(history_capacity=5)
        events = [await bus.publish(make_event()) for _ in range(8)]

        history = bus.get_event_history(limit=100)
        assert len(history) == 5
        assert {e.id for e in history} == {e.id for e in events[3:]}

    async def test_evicted_id_can_be_reused(self):
        bus = EventBus(history_capacity=1)
        await bus.publish(make_event(id="a"))
        await bus.publish(make_event(id="b"))

        reused = await bus.publish(make_event(id="a"))
        assert reused.id == "a"

    async def test_history_is_newest_first(self, bus):
        first = await bus.publish(make_event())
        second = await bus.publish(make_event())

        history = bus.get_event_history()
        assert [e.id for e in history] == [second.id, first.id]

    async def test_history_follows_publish_order_not_timestamps(self):
        bus = EventBus(history_capacity=2)
        first = await bus.publish(make_event())
        backdated = await bus.publish(make_event(timestamp=datetime(2020, 1, 1, tzinfo=timezone.utc)))

        history = bus.get_event_history()
        assert history[0].id == backdated.id
        assert [e.id for e in history] == [backdated.id, first.id]

        latest = await bus.publish(make_event())
        assert [e.id for e in bus.get_event_history()] == [latest.id, backdated.id]

    async def test_history_filter_and_limit(self, bus):
        for _ in range(3):
            await bus.publish(make_event(EventType.TEAM_FORMED))
        await bus.publish(make_event(EventType.AGENT_STARTED))

        assert len(bus.get_event_history(EventType.TEAM_FORMED)) == 3
        assert len(bus.get_event_history(limit=2)) == 2

    async def test_envelope_queries(self, bus):
        await bus.publish(make_event(correlation_id="c1", user_id="u1", hackathon_id="h1", team_id="t1"))
        await bus.publish(make_event(correlation_id="c2", user_id="u2", hackathon_id="h1"))

        assert len(bus.get_events_by_correlation("c1")) == 1
        assert len(bus.get_events_by_user("u2")) == 1
        assert len(bus.get_events_by_hackathon("h1")) == 2
        assert len(bus.get_events_by_team("t1")) == 1

    async def test_clear_history(self, bus):
        await bus.publish(make_event())
        bus.clear_event_history()

        assert bus.get_event_history() == []

    async def test_statistics(self, bus):
        bus.subscribe(EventType.TEAM_FORMED, lambda event: None)
        bus.subscribe_to_all(lambda event: None)
        await bus.publish(make_event(EventType.TEAM_FORMED))
        await bus.publish(make_event(EventType.TEAM_FORMED))
        await bus.publish(make_event(EventType.AGENT_STARTED))

        stats = bus.get_statistics()
        assert stats["total_events"] == 3
        assert stats["events_by_type"] == {"team_formed": 2, "agent_started": 1}
        assert stats["recent_event_rate"] == 3
        assert stats["handler_count"] == 1
        assert stats["global_listener_count"] == 1
