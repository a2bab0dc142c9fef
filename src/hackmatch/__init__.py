"""
HackMatch: event-driven teammate matching and team formation for hackathons.
"""

__version__ = "0.1.0"

from .agents import AgentManager, ProfileParsingAgent, SkillMatchingAgent, TeamFormingAgent
from .events import EventBus, EventType, PlatformEvent
from .config import Settings, get_settings
from .log_config import configure_logging

__all__ = [
    "AgentManager",
    "ProfileParsingAgent",
    "SkillMatchingAgent",
    "TeamFormingAgent",
    "EventBus",
    "EventType",
    "PlatformEvent",
    "Settings",
    "get_settings",
    "configure_logging",
]
