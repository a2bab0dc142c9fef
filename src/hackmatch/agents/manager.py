"""Agent supervisor: registration, lifecycle and health reporting."""

import asyncio
import random
from typing import Any, Dict, List, Optional

import structlog

from .base import Agent
from .profile_parsing import ProfileParsingAgent
from .skill_matching import SkillMatchingAgent
from .team_forming import TeamFormingAgent
from ..collaborators import Notifier, ProfileDirectory, ResumeStore, TeamRepository
from ..config import Settings, get_settings
from ..data.tables import SkillTables
from ..events import EventBus, EventType, PlatformEvent
from ..events.models import create_agent_event, utcnow


class AgentManager:
    """Owns the agents attached to one event bus."""

    def __init__(self, bus: EventBus, settings: Optional[Settings] = None):
        """Initialize the agent manager.

        Args:
            bus: Event bus the managed agents are attached to
            settings: Application settings
        """
        self.bus = bus
        self.settings = settings or get_settings()
        self.logger = structlog.get_logger().bind(component="AgentManager")

        # Registry of agents: name -> agent instance
        self._agents: Dict[str, Agent] = {}
        self._lock = asyncio.Lock()

        self.error_count = 0
        self.last_error: Optional[Dict[str, Any]] = None
        self._watching_errors = False

    @classmethod
    def create_default(
        cls,
        bus: EventBus,
        directory: ProfileDirectory,
        teams: TeamRepository,
        resumes: ResumeStore,
        notifier: Optional[Notifier] = None,
        settings: Optional[Settings] = None,
        tables: Optional[SkillTables] = None,
        rng: Optional[random.Random] = None
    ) -> "AgentManager":
        """Build a manager with the profile parsing, skill matching and team forming agents.

        Args:
            bus: Event bus shared by all agents
            directory: Profile directory collaborator
            teams: Team repository collaborator
            resumes: Parsed resume store
            notifier: Optional notification delivery collaborator
            settings: Application settings
            tables: Skill lookup tables
            rng: Random source for the team optimizer

        Returns:
            Manager with the three agents registered but not started
        """
        settings = settings or get_settings()
        manager = cls(bus, settings)

        manager.register_agent(ProfileParsingAgent(bus, resumes))
        manager.register_agent(SkillMatchingAgent(
            bus,
            directory,
            tables=tables,
            settings=settings.matching
        ))
        manager.register_agent(TeamFormingAgent(
            bus,
            directory,
            teams,
            notifier=notifier,
            settings=settings.formation,
            rng=rng,
            candidate_pool_limit=settings.matching.candidate_pool_limit
        ))
        return manager

    def register_agent(self, agent: Agent) -> None:
        """Register an agent; an agent with the same name is replaced.

        Args:
            agent: Agent instance to register
        """
        if agent.name in self._agents:
            self.logger.warning("Replacing registered agent", agent=agent.name)
        self._agents[agent.name] = agent
        self.logger.info("Agent registered", agent=agent.name)

    def get_agent(self, name: str) -> Optional[Agent]:
        return self._agents.get(name)

    def has_agent(self, name: str) -> bool:
        return name in self._agents

    def get_agent_names(self) -> List[str]:
        return sorted(self._agents.keys())

    def get_agent_count(self) -> int:
        return len(self._agents)

    async def start_all_agents(self) -> None:
        """Start every registered agent that is not running."""
        self._watch_errors()

        names = [name for name, agent in self._agents.items() if not agent.is_running]
        if not names:
            return

        results = await asyncio.gather(
            *(self.start_agent(name) for name in names),
            return_exceptions=True
        )
        started = sum(1 for result in results if result is True)
        self.logger.info("All agents started", count=started, failed=len(names) - started)

    async def stop_all_agents(self) -> None:
        """Stop every running agent."""
        names = [name for name, agent in self._agents.items() if agent.is_running]
        if names:
            results = await asyncio.gather(
                *(self.stop_agent(name) for name in names),
                return_exceptions=True
            )
            stopped = sum(1 for result in results if result is True)
            self.logger.info("All agents stopped", count=stopped, failed=len(names) - stopped)

        self._unwatch_errors()

    async def start_agent(self, name: str) -> bool:
        """Start one agent.

        Args:
            name: Name of the agent to start

        Returns:
            True if the agent was started, False if unknown, already running or failing
        """
        agent = self._agents.get(name)
        if agent is None:
            self.logger.warning("Agent not found", agent=name)
            return False
        if agent.is_running:
            self.logger.warning("Agent already running", agent=name)
            return False

        async with self._lock:
            try:
                await agent.start()
            except Exception as e:
                self.logger.error("Failed to start agent", agent=name, error=str(e))
                return False

        await self.bus.publish(create_agent_event(EventType.AGENT_STARTED, name, {}))
        return True

    async def stop_agent(self, name: str) -> bool:
        """Stop one agent.

        Args:
            name: Name of the agent to stop

        Returns:
            True if the agent was stopped, False if unknown, not running or failing
        """
        agent = self._agents.get(name)
        if agent is None:
            self.logger.warning("Agent not found", agent=name)
            return False
        if not agent.is_running:
            self.logger.warning("Agent not running", agent=name)
            return False

        async with self._lock:
            try:
                await agent.stop()
            except Exception as e:
                self.logger.error("Failed to stop agent", agent=name, error=str(e))
                return False

        await self.bus.publish(create_agent_event(EventType.AGENT_STOPPED, name, {}))
        return True

    async def restart_agent(self, name: str) -> bool:
        """Stop an agent if it is running, wait the restart delay and start it again."""
        if name not in self._agents:
            self.logger.warning("Agent not found", agent=name)
            return False

        self.logger.info("Restarting agent", agent=name)
        if self._agents[name].is_running and not await self.stop_agent(name):
            return False

        await asyncio.sleep(self.settings.agents.restart_delay)
        return await self.start_agent(name)

    def get_agent_status(self, name: str) -> Optional[Dict[str, Any]]:
        """Agent descriptor plus ``uptime`` in seconds (None when stopped)."""
        agent = self._agents.get(name)
        if agent is None:
            return None

        status = agent.get_status()
        started_at = status.get("started_at")
        status["uptime"] = (utcnow() - started_at).total_seconds() if started_at else None
        return status

    def get_all_agent_statuses(self) -> List[Dict[str, Any]]:
        return [self.get_agent_status(name) for name in self.get_agent_names()]

    def get_running_agents(self) -> List[str]:
        return [name for name in self.get_agent_names() if self._agents[name].is_running]

    def get_stopped_agents(self) -> List[str]:
        return [name for name in self.get_agent_names() if not self._agents[name].is_running]

    def get_system_health(self) -> Dict[str, Any]:
        """Summarize agent health.

        An agent is unhealthy when it is stopped, or when it is running but
        has not handled an event within the inactivity threshold.

        Returns:
            Dictionary with ``healthy`` flag, counts and a list of issues
        """
        now = utcnow()
        threshold = self.settings.agents.inactivity_threshold
        issues: List[Dict[str, Any]] = []

        for name in self.get_agent_names():
            agent = self._agents[name]
            if not agent.is_running:
                issues.append({"agent": name, "issue": "stopped"})
                continue

            status = agent.get_status()
            last_seen = status.get("last_activity") or status.get("started_at")
            if last_seen is not None:
                idle = (now - last_seen).total_seconds()
                if idle > threshold:
                    issues.append({"agent": name, "issue": "inactive", "idle_seconds": idle})

        return {
            "healthy": not issues,
            "total_agents": len(self._agents),
            "running_agents": len(self.get_running_agents()),
            "issues": issues,
            "error_count": self.error_count,
            "checked_at": now.isoformat(),
        }

    async def trigger_test_event(self, target_agent: Optional[str] = None) -> PlatformEvent:
        """Publish a ``SYSTEM_HEALTH_CHECK`` event.

        Args:
            target_agent: Optional agent the check is addressed to

        Returns:
            The published event
        """
        event = PlatformEvent(
            type=EventType.SYSTEM_HEALTH_CHECK,
            source="AgentManager",
            data={
                "message": "Health check",
                "target_agent": target_agent,
                "requested_at": utcnow().isoformat(),
            }
        )
        return await self.bus.publish(event)

    async def cleanup(self) -> None:
        """Stop every agent and forget them."""
        await self.stop_all_agents()
        self._agents.clear()
        self.logger.info("Agent manager cleaned up")

    def get_stats(self) -> Dict[str, Any]:
        """Get manager statistics.

        Returns:
            Dictionary with manager statistics
        """
        processed = {
            name: agent.get_status().get("processed_count", 0)
            for name, agent in self._agents.items()
        }
        return {
            "total_agents": len(self._agents),
            "running_agents": len(self.get_running_agents()),
            "stopped_agents": len(self.get_stopped_agents()),
            "processed_events": processed,
            "error_count": self.error_count,
            "bus": self.bus.get_statistics(),
        }

    def _watch_errors(self) -> None:
        if not self._watching_errors:
            self.bus.subscribe(EventType.SYSTEM_ERROR, self._on_system_error)
            self._watching_errors = True

    def _unwatch_errors(self) -> None:
        if self._watching_errors:
            self.bus.unsubscribe(EventType.SYSTEM_ERROR, self._on_system_error)
            self._watching_errors = False

    async def _on_system_error(self, event: PlatformEvent) -> None:
        self.error_count += 1
        self.last_error = {
            "error": event.data.get("error"),
            "handler_name": event.data.get("handler_name"),
            "timestamp": event.timestamp.isoformat() if event.timestamp else None,
        }
        self.logger.error(
            "System error reported",
            handler=event.data.get("handler_name"),
            error=event.data.get("error"),
            error_count=self.error_count
        )
