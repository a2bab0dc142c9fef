"""Agents that react to platform events."""

from .base import Agent, AgentRuntime, AgentState
from .manager import AgentManager
from .profile_parsing import ProfileParsingAgent, ResumeParser
from .skill_matching import SkillMatchingAgent, SkillScorer
from .team_forming import TeamFormingAgent

__all__ = [
    "Agent",
    "AgentRuntime",
    "AgentState",
    "AgentManager",
    "ProfileParsingAgent",
    "ResumeParser",
    "SkillMatchingAgent",
    "SkillScorer",
    "TeamFormingAgent",
]
