"""Agent contract and the runtime helper every agent is composed with."""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from ..events import EventBus, EventType, PlatformEvent
from ..events.models import utcnow


PROCESSED_EVENT_RETENTION = timedelta(hours=1)


class AgentState(BaseModel):
    """Agent descriptor."""

    name: str
    description: str
    subscribed_types: List[EventType]
    published_types: List[EventType]
    is_running: bool = False
    processed_count: int = 0
    last_activity: Optional[datetime] = None
    started_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)


@runtime_checkable
class Agent(Protocol):
    """What the supervisor needs from an agent."""

    @property
    def name(self) -> str: ...

    @property
    def is_running(self) -> bool: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def handle(self, event: PlatformEvent) -> None: ...

    def get_status(self) -> Dict[str, Any]: ...


class AgentRuntime:
    """Lifecycle, subscription and publishing plumbing for one agent.

    The runtime registers a single dispatch callable on the bus for every
    subscribed event type. While running, it forwards those events to the
    agent handler and keeps the processed counter and last activity time.
    """

    def __init__(
        self,
        name: str,
        description: str,
        bus: EventBus,
        subscribed_types: List[EventType],
        published_types: List[EventType]
    ):
        """Initialize the runtime.

        Args:
            name: Agent name, also used as the ``source`` of published events
            description: Human readable description
            bus: Event bus the agent is attached to
            subscribed_types: Event types forwarded to the agent
            published_types: Event types the agent may publish
        """
        self.name = name
        self.bus = bus
        self.logger = structlog.get_logger().bind(agent=name)

        self.state = AgentState(
            name=name,
            description=description,
            subscribed_types=list(subscribed_types),
            published_types=list(published_types)
        )

        self._handler: Optional[Callable[[PlatformEvent], Awaitable[None]]] = None
        # event id -> time processed
        self._processed_ids: Dict[str, datetime] = {}

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    async def start(self, handler: Callable[[PlatformEvent], Awaitable[None]]) -> bool:
        """Attach ``handler`` to the subscribed event types.

        Returns:
            False if the agent was already running
        """
        if self.state.is_running:
            self.logger.warning("Agent already running")
            return False

        self._handler = handler
        for event_type in self.state.subscribed_types:
            self.bus.subscribe(event_type, self.handle_event)

        self.state.is_running = True
        self.state.started_at = utcnow()
        self.logger.info(
            "Agent started",
            event_types=[t.value for t in self.state.subscribed_types]
        )
        return True

    async def stop(self) -> bool:
        """Detach from the bus.

        Returns:
            False if the agent was not running
        """
        if not self.state.is_running:
            self.logger.warning("Agent not running")
            return False

        for event_type in self.state.subscribed_types:
            self.bus.unsubscribe(event_type, self.handle_event)

        self.state.is_running = False
        self.state.started_at = None
        self.logger.info("Agent stopped")
        return True

    async def handle_event(self, event: PlatformEvent) -> None:
        """Bus-facing entry point; exceptions from the handler propagate to the bus."""
        if not self.state.is_running or self._handler is None:
            return
        if event.type not in self.state.subscribed_types:
            return

        now = utcnow()
        self._forget_processed(now)
        if event.id in self._processed_ids:
            self.logger.debug("Skipping already processed event", event_id=event.id)
            return
        self._processed_ids[event.id] = now

        self.state.processed_count += 1
        self.state.last_activity = now
        self.logger.debug("Handling event", event_type=event.type.value, source=event.source)

        await self._handler(event)

    def _forget_processed(self, now: datetime) -> None:
        cutoff = now - PROCESSED_EVENT_RETENTION
        stale = [event_id for event_id, seen in self._processed_ids.items() if seen < cutoff]
        for event_id in stale:
            del self._processed_ids[event_id]

    async def publish(
        self,
        event_type: EventType,
        data: Dict[str, Any],
        **envelope: Any
    ) -> Optional[PlatformEvent]:
        """Publish an event with this agent as source and wait for its handlers.

        Args:
            event_type: Type of event to publish
            data: Event payload data
            **envelope: Optional envelope fields (user_id, team_id, ...)

        Returns:
            The published event, or None if the type is not declared
        """
        if event_type not in self.state.published_types:
            self.logger.warning("Refusing to publish undeclared event type", event_type=event_type.value)
            return None

        event = PlatformEvent(type=event_type, source=self.name, data=data, **envelope)
        return await self.bus.publish(event)

    def validate_payload(self, event: PlatformEvent, required_fields: List[str]) -> bool:
        """Check that the event data carries every required field."""
        if not event.data:
            return False
        return all(field in event.data for field in required_fields)

    def get_status(self) -> Dict[str, Any]:
        """Get current agent descriptor."""
        return self.state.model_dump()
