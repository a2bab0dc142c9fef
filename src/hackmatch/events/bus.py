"""In-process event bus with bounded history and isolated handlers."""

import asyncio
import inspect
import uuid
from collections import deque
from datetime import timedelta
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Set

import structlog

from ..config import get_settings
from .models import EVENT_VERSION, EventType, PlatformEvent, utcnow


EventHandler = Callable[[PlatformEvent], Any]


def _handler_name(handler: EventHandler) -> str:
    owner = getattr(handler, "__self__", None)
    owner_name = getattr(owner, "name", None)
    if isinstance(owner_name, str):
        return f"{owner_name}.{getattr(handler, '__name__', 'handler')}"
    return getattr(handler, "__qualname__", type(handler).__name__)


class EventBus:
    """Publish/subscribe broker for a single process.

    ``publish`` returns once every handler registered for the event has
    settled. A failing handler is logged and turned into a ``SYSTEM_ERROR``
    event; it never affects sibling handlers or the publisher.
    """

    def __init__(
        self,
        history_capacity: Optional[int] = None,
        recent_window_seconds: Optional[float] = None
    ):
        """Initialize the event bus.

        Args:
            history_capacity: Maximum number of retained events
            recent_window_seconds: Window for the recent event rate statistic
        """
        bus_settings = get_settings().bus
        self.history_capacity = history_capacity or bus_settings.history_capacity
        self.recent_window = timedelta(
            seconds=recent_window_seconds or bus_settings.recent_window_seconds
        )
        self.logger = structlog.get_logger().bind(component="EventBus")

        # Event handlers: event_type -> set of handler callables
        self._handlers: Dict[EventType, Set[EventHandler]] = {}
        self._global_handlers: Set[EventHandler] = set()

        self._history: Deque[PlatformEvent] = deque()
        self._retained_ids: Set[str] = set()

        # Fire-and-forget publishes awaited by drain()
        self._pending: Set[asyncio.Task] = set()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the event bus."""
        if self._running:
            self.logger.warning("Event bus already running")
            return
        self._running = True
        self.logger.info("Event bus started", history_capacity=self.history_capacity)

    async def drain(self) -> None:
        """Wait until every fire-and-forget publish has completed."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def stop(self) -> None:
        """Drain pending publishes and drop all subscriptions."""
        if not self._running:
            self.logger.warning("Event bus not running")
        await self.drain()
        self._handlers.clear()
        self._global_handlers.clear()
        self._running = False
        self.logger.info("Event bus stopped")

    async def publish(self, event: PlatformEvent) -> PlatformEvent:
        """Publish an event and wait for all of its handlers.

        Args:
            event: The event to publish; missing id, timestamp and version
                are filled in

        Returns:
            The stamped event as stored in the history
        """
        event = self._stamp(event)
        self._store(event)

        if self._global_handlers:
            await self._dispatch(list(self._global_handlers), event)

        handlers = self._handlers.get(event.type)
        if handlers:
            await self._dispatch(list(handlers), event)

        self.logger.debug(
            "Event published",
            event_type=event.type.value,
            event_id=event.id,
            source=event.source
        )
        return event

    def publish_nowait(self, event: PlatformEvent) -> "asyncio.Task[PlatformEvent]":
        """Schedule a publish without waiting for it.

        Ordering between several fire-and-forget publishes is not guaranteed;
        call :meth:`drain` to wait for them.
        """
        task = asyncio.get_running_loop().create_task(self.publish(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def publish_batch(self, events: Iterable[PlatformEvent]) -> List[PlatformEvent]:
        """Publish several events independently.

        Returns:
            The stamped events that were published successfully
        """
        results = await asyncio.gather(
            *(self.publish(event) for event in events),
            return_exceptions=True
        )
        published = []
        for result in results:
            if isinstance(result, BaseException):
                self.logger.error("Failed to publish event in batch", error=str(result))
            else:
                published.append(result)
        return published

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe a handler to one event type; repeated calls are no-ops."""
        self._handlers.setdefault(event_type, set()).add(handler)
        self.logger.debug(
            "Handler subscribed",
            event_type=event_type.value,
            handler_count=len(self._handlers[event_type])
        )

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Remove a handler from one event type."""
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        handlers.discard(handler)
        if not handlers:
            del self._handlers[event_type]
        self.logger.debug(
            "Handler unsubscribed",
            event_type=event_type.value,
            remaining_handlers=len(self._handlers.get(event_type, ()))
        )

    def subscribe_to_all(self, handler: EventHandler) -> None:
        """Subscribe a handler to every event regardless of type."""
        self._global_handlers.add(handler)
        self.logger.debug("Global handler subscribed", handler_count=len(self._global_handlers))

    def unsubscribe_from_all(self, handler: EventHandler) -> None:
        """Remove a handler subscribed to every event; unknown handlers are ignored."""
        self._global_handlers.discard(handler)
        self.logger.debug("Global handler unsubscribed", remaining_handlers=len(self._global_handlers))

    def get_event_history(
        self,
        event_type: Optional[EventType] = None,
        limit: int = 100
    ) -> List[PlatformEvent]:
        """Get retained events, most recently published first.

        Args:
            event_type: Only return events of this type
            limit: Maximum number of events to return
        """
        events = [
            event for event in reversed(self._history)
            if event_type is None or event.type == event_type
        ]
        return events[:limit]

    def get_events_by_correlation(self, correlation_id: str) -> List[PlatformEvent]:
        return [e for e in self._history if e.correlation_id == correlation_id]

    def get_events_by_user(self, user_id: str) -> List[PlatformEvent]:
        return [e for e in self._history if e.user_id == user_id]

    def get_events_by_hackathon(self, hackathon_id: str) -> List[PlatformEvent]:
        return [e for e in self._history if e.hackathon_id == hackathon_id]

    def get_events_by_team(self, team_id: str) -> List[PlatformEvent]:
        return [e for e in self._history if e.team_id == team_id]

    def clear_event_history(self) -> None:
        self._history.clear()
        self._retained_ids.clear()

    def get_event_types(self) -> List[EventType]:
        """Event types that currently have at least one handler."""
        return list(self._handlers.keys())

    def get_listener_count(self, event_type: EventType) -> int:
        return len(self._handlers.get(event_type, ()))

    def get_statistics(self) -> Dict[str, Any]:
        """Get event bus statistics.

        Returns:
            Dictionary with statistics
        """
        events_by_type: Dict[str, int] = {}
        for event in self._history:
            events_by_type[event.type.value] = events_by_type.get(event.type.value, 0) + 1

        cutoff = utcnow() - self.recent_window
        recent = sum(1 for event in self._history if event.timestamp > cutoff)

        return {
            "total_events": len(self._history),
            "events_by_type": events_by_type,
            "recent_event_rate": recent,
            "handler_count": sum(len(handlers) for handlers in self._handlers.values()),
            "global_listener_count": len(self._global_handlers),
            "running": self._running,
        }

    def _stamp(self, event: PlatformEvent) -> PlatformEvent:
        if event.id and event.id in self._retained_ids:
            new_id = str(uuid.uuid4())
            self.logger.warning(
                "Duplicate event id replaced",
                event_id=event.id,
                new_event_id=new_id
            )
            return event.stamped(event_id=new_id)
        if event.is_stamped:
            return event
        return event.stamped()

    def _store(self, event: PlatformEvent) -> None:
        while len(self._history) >= self.history_capacity:
            evicted = self._history.popleft()
            self._retained_ids.discard(evicted.id)
        self._history.append(event)
        self._retained_ids.add(event.id)

    async def _dispatch(self, handlers: List[EventHandler], event: PlatformEvent) -> None:
        await asyncio.gather(
            *(self._safe_handle(handler, event) for handler in handlers),
            return_exceptions=True
        )

    async def _safe_handle(self, handler: EventHandler, event: PlatformEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            handler_name = _handler_name(handler)
            self.logger.error(
                "Handler error",
                event_type=event.type.value,
                event_id=event.id,
                handler=handler_name,
                error=str(e)
            )
            if event.type == EventType.SYSTEM_ERROR:
                # Errors raised while handling an error event are only logged
                return
            await self.publish(PlatformEvent(
                type=EventType.SYSTEM_ERROR,
                source="EventBus",
                version=EVENT_VERSION,
                correlation_id=event.correlation_id,
                data={
                    "error": str(e),
                    "handler_name": handler_name,
                    "original_event": event.model_dump(mode="json"),
                },
            ))
