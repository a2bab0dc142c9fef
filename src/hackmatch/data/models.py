"""Data models for profiles, matching and team composition."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class TeamRole(str, Enum):
    """Role of a member inside a team."""
    LEADER = "leader"
    MEMBER = "member"


class Experience(BaseModel):
    """A single work experience entry."""

    title: str = ""
    company: str = ""
    years: Optional[Union[str, float]] = None
    description: Optional[str] = None


class Education(BaseModel):
    """A single education entry."""

    degree: str = ""
    institution: str = ""
    year: Optional[int] = None


class ParsedResume(BaseModel):
    """Structured record extracted from a resume."""

    skills: List[str] = Field(default_factory=list)
    experience: List[Experience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)


class SkillProfile(BaseModel):
    """Merged user profile used for compatibility scoring."""

    user_id: str
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    experience: List[Experience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)


class MatchingCriteria(BaseModel):
    """Criteria for a suggestion request."""

    user_id: str
    hackathon_id: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    preferred_skills: List[str] = Field(default_factory=list)
    team_size: int = 4
    exclude_team_ids: List[str] = Field(default_factory=list)


class TeamMember(BaseModel):
    """A member (or candidate) of a team composition."""

    user_id: str
    username: str = ""
    first_name: str = ""
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    role: TeamRole = TeamRole.MEMBER
    contribution_score: float = 0.0


class TeamComposition(BaseModel):
    """A scored team; computed during optimization, never persisted."""

    members: List[TeamMember]
    skill_coverage: float = Field(..., ge=0.0, le=1.0)
    diversity_score: float = Field(..., ge=0.0, le=1.0)
    compatibility_score: float = Field(..., ge=0.0, le=1.0)
    total_score: float = Field(..., ge=0.0, le=1.0)

    @property
    def leader(self) -> Optional[TeamMember]:
        return next((m for m in self.members if m.role == TeamRole.LEADER), None)

    @property
    def non_leaders(self) -> List[TeamMember]:
        return [m for m in self.members if m.role != TeamRole.LEADER]


class TeamFormationRequest(BaseModel):
    """Request to form a team around a requester."""

    requester_id: str
    hackathon_id: str
    desired_team_size: int
    team_name: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    preferred_skills: List[str] = Field(default_factory=list)
    project_description: Optional[str] = None
    target_users: Optional[List[str]] = None
    auto_invite: bool = False


class OpenTeam(BaseModel):
    """An existing team that still has room for members."""

    team_id: str
    team_name: str = ""
    hackathon_id: Optional[str] = None
    member_count: int = 0
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)


class UserSuggestion(BaseModel):
    """Suggested teammate with its matching score."""

    matching_score: float
    suggested_users: List[SkillProfile]


class TeamSuggestion(BaseModel):
    """Suggested team to join with its matching score."""

    team_id: str
    team_name: str = ""
    members_count: int = 0
    matching_score: float


class SuggestionBundle(BaseModel):
    """All suggestions generated for one request."""

    user_suggestions: List[UserSuggestion] = Field(default_factory=list)
    team_suggestions: List[TeamSuggestion] = Field(default_factory=list)
    generated_at: datetime
    criteria: MatchingCriteria
