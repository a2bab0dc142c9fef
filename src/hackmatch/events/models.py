"""Event models for agent communication."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


EVENT_VERSION = "1.0"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def freeze(value: Any) -> Any:
    """Read-only copy of a JSON-like value: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Plain dict/list copy of a value produced by :func:`freeze`."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


class EventType(str, Enum):
    """Event types exchanged on the bus."""

    # Resume events
    RESUME_UPLOADED = "resume_uploaded"
    RESUME_PARSED = "resume_parsed"
    RESUME_PARSING_FAILED = "resume_parsing_failed"

    # Matching events
    TEAM_SUGGESTION_REQUESTED = "team_suggestion_requested"
    TEAM_SUGGESTIONS_GENERATED = "team_suggestions_generated"

    # Team events
    TEAM_FORMATION_REQUEST = "team_formation_request"
    TEAM_FORMED = "team_formed"
    TEAM_MEMBER_ADDED = "team_member_added"

    # Communication events
    NOTIFICATION_SEND = "notification_send"

    # Agent events
    AGENT_STARTED = "agent_started"
    AGENT_STOPPED = "agent_stopped"

    # System events
    SYSTEM_ERROR = "system_error"
    SYSTEM_HEALTH_CHECK = "system_health_check"


class PlatformEvent(BaseModel):
    """Immutable event envelope.

    ``id``, ``timestamp`` and ``version`` may be left empty by the producer;
    the bus stamps them when the event is published.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    type: EventType = Field(..., description="Type of event")
    source: str = Field(..., description="Name of the component that created the event")
    data: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Event payload data, read-only once the event exists"
    )
    id: Optional[str] = Field(default=None, description="Unique event ID")
    timestamp: Optional[datetime] = Field(default=None, description="Publish time")
    version: Optional[str] = Field(default=None, description="Envelope version")
    correlation_id: Optional[str] = Field(default=None, description="Correlation ID for event tracking")
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    hackathon_id: Optional[str] = None

    @field_validator("data", mode="after")
    @classmethod
    def _freeze_data(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(value)

    @field_serializer("data")
    def _serialize_data(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return thaw(value)

    @property
    def is_stamped(self) -> bool:
        return bool(self.id and self.timestamp and self.version)

    def stamped(self, event_id: Optional[str] = None) -> "PlatformEvent":
        """Return a copy with id, timestamp and version filled in."""
        return self.model_copy(update={
            "id": event_id or self.id or str(uuid.uuid4()),
            "timestamp": self.timestamp or utcnow(),
            "version": self.version or EVENT_VERSION,
        })


def create_user_event(
    event_type: EventType,
    user_id: str,
    data: Dict[str, Any],
    **options: Any
) -> PlatformEvent:
    """Create an event about a user."""
    fields: Dict[str, Any] = {"source": "UserService", "user_id": user_id}
    fields.update(options)
    return PlatformEvent(type=event_type, data=data, **fields)


def create_team_event(
    event_type: EventType,
    team_id: str,
    data: Dict[str, Any],
    **options: Any
) -> PlatformEvent:
    """Create an event about a team."""
    fields: Dict[str, Any] = {"source": "TeamService", "team_id": team_id}
    fields.update(options)
    return PlatformEvent(type=event_type, data=data, **fields)


def create_agent_event(
    event_type: EventType,
    agent_name: str,
    data: Dict[str, Any],
    **options: Any
) -> PlatformEvent:
    """Create an event about an agent; the agent name is merged into the data."""
    fields: Dict[str, Any] = {"source": "AgentManager"}
    fields.update(options)
    return PlatformEvent(type=event_type, data={"agent": agent_name, **data}, **fields)
