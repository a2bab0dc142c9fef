"""Data models and lookup tables."""

from .models import (
    Education,
    Experience,
    MatchingCriteria,
    OpenTeam,
    ParsedResume,
    SkillProfile,
    TeamComposition,
    TeamFormationRequest,
    TeamMember,
    TeamRole,
    TeamSuggestion,
    UserSuggestion,
)
from .tables import SkillTableError, SkillTables

__all__ = [
    "Education",
    "Experience",
    "MatchingCriteria",
    "OpenTeam",
    "ParsedResume",
    "SkillProfile",
    "SkillTableError",
    "SkillTables",
    "TeamComposition",
    "TeamFormationRequest",
    "TeamMember",
    "TeamRole",
    "TeamSuggestion",
    "UserSuggestion",
]
