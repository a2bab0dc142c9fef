"""Pytest configuration and fixtures."""

import random

import pytest

from hackmatch.config import (
    AgentSettings,
    EventBusSettings,
    FormationSettings,
    MatchingSettings,
    MonitoringSettings,
    Settings,
)
from hackmatch.data.models import SkillProfile
from hackmatch.data.tables import SkillTables
from hackmatch.events import EventBus
from hackmatch.store import InMemoryPlatformStore


HACKATHON_ID = "hack-2024"


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        environment="test",
        bus=EventBusSettings(history_capacity=1000),
        matching=MatchingSettings(),
        formation=FormationSettings(random_seed=42),
        agents=AgentSettings(restart_delay=0.0, inactivity_threshold=300.0),
        monitoring=MonitoringSettings(log_level="DEBUG")
    )


@pytest.fixture
def bus() -> EventBus:
    """Create an event bus with a small history."""
    return EventBus(history_capacity=1000)


@pytest.fixture
def tables() -> SkillTables:
    """Bundled skill tables."""
    return SkillTables.load()


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def profiles() -> list:
    """A small pool of participants with varied skills."""
    return [
        SkillProfile(
            user_id="alice",
            username="alice",
            first_name="Alice",
            skills=["JavaScript", "React", "Node.js"],
            interests=["web", "ai", "education"]
        ),
        SkillProfile(
            user_id="bob",
            username="bob",
            first_name="Bob",
            skills=["Python", "Machine Learning", "SQL"],
            interests=["ai", "healthcare"]
        ),
        SkillProfile(
            user_id="carol",
            username="carol",
            first_name="Carol",
            skills=["Figma", "UI/UX", "CSS"],
            interests=["web", "design"]
        ),
        SkillProfile(
            user_id="dave",
            username="dave",
            first_name="Dave",
            skills=["AWS", "Docker", "Kubernetes"],
            interests=["ai", "cloud"]
        ),
        SkillProfile(
            user_id="erin",
            username="erin",
            first_name="Erin",
            skills=["Java", "PostgreSQL", "GraphQL"],
            interests=["fintech", "web"]
        ),
        SkillProfile(
            user_id="frank",
            username="frank",
            first_name="Frank",
            skills=["TypeScript", "Vue.js", "MongoDB"],
            interests=["education", "gaming"]
        ),
    ]


@pytest.fixture
def store(profiles) -> InMemoryPlatformStore:
    """In-memory store populated with the participant pool."""
    platform_store = InMemoryPlatformStore()
    for profile in profiles:
        platform_store.add_profile(profile)
    return platform_store


@pytest.fixture
def hackathon_id() -> str:
    return HACKATHON_ID
