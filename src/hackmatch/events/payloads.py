"""Typed payloads for each event type.

``PAYLOAD_MODELS`` is the closed mapping from :class:`EventType` to the model
describing ``PlatformEvent.data`` for that type.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from .models import EventType, PlatformEvent, thaw
from ..data.models import ParsedResume, SuggestionBundle, TeamComposition, TeamRole


class EventPayload(BaseModel):
    """Base class for event payloads; unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")


class ResumeUploadedPayload(EventPayload):
    user_id: str
    resume_id: Optional[str] = None
    resume_url: Optional[str] = None
    original_content: Optional[str] = None


class ResumeParsedPayload(EventPayload):
    user_id: str
    parsed_resume: ParsedResume


class ResumeParsingFailedPayload(EventPayload):
    user_id: str
    error: str


class SuggestionRequestedPayload(EventPayload):
    user_id: str
    hackathon_id: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    preferred_skills: List[str] = Field(default_factory=list)
    team_size: Optional[int] = None
    exclude_team_ids: List[str] = Field(default_factory=list)


class SuggestionsGeneratedPayload(EventPayload):
    user_id: str
    suggestions: SuggestionBundle


class TeamFormationRequestPayload(EventPayload):
    requester_id: str
    hackathon_id: str
    desired_team_size: int
    team_name: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    preferred_skills: List[str] = Field(default_factory=list)
    project_description: Optional[str] = None
    target_users: Optional[List[str]] = None
    auto_invite: bool = False


class TeamFormedPayload(EventPayload):
    team_id: str
    hackathon_id: str
    requester_id: str
    members: List[str]
    team_composition: TeamComposition


class TeamMemberAddedPayload(EventPayload):
    team_id: str
    user_id: str
    role: TeamRole


class Notification(BaseModel):
    type: str
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationSendPayload(EventPayload):
    user_id: str
    notification: Notification


class AgentLifecyclePayload(EventPayload):
    agent: str


class SystemErrorPayload(EventPayload):
    error: str
    handler_name: Optional[str] = None
    original_event: Optional[Dict[str, Any]] = None


class HealthCheckPayload(EventPayload):
    message: str = ""
    target_agent: Optional[str] = None
    requested_at: Optional[datetime] = None


PAYLOAD_MODELS: Dict[EventType, Type[EventPayload]] = {
    EventType.RESUME_UPLOADED: ResumeUploadedPayload,
    EventType.RESUME_PARSED: ResumeParsedPayload,
    EventType.RESUME_PARSING_FAILED: ResumeParsingFailedPayload,
    EventType.TEAM_SUGGESTION_REQUESTED: SuggestionRequestedPayload,
    EventType.TEAM_SUGGESTIONS_GENERATED: SuggestionsGeneratedPayload,
    EventType.TEAM_FORMATION_REQUEST: TeamFormationRequestPayload,
    EventType.TEAM_FORMED: TeamFormedPayload,
    EventType.TEAM_MEMBER_ADDED: TeamMemberAddedPayload,
    EventType.NOTIFICATION_SEND: NotificationSendPayload,
    EventType.AGENT_STARTED: AgentLifecyclePayload,
    EventType.AGENT_STOPPED: AgentLifecyclePayload,
    EventType.SYSTEM_ERROR: SystemErrorPayload,
    EventType.SYSTEM_HEALTH_CHECK: HealthCheckPayload,
}


def parse_payload(event: PlatformEvent) -> EventPayload:
    """Validate ``event.data`` against the payload model for its type.

    Raises:
        pydantic.ValidationError: If the data does not match the model
    """
    return PAYLOAD_MODELS[event.type].model_validate(thaw(event.data))
