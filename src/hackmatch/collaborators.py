"""Interfaces of the external systems the agents depend on.

Implementations own their own timeout and retry policy. Agents treat any
exception raised here as a dependency failure: it is logged and the current
operation degrades to an empty result.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .data.models import OpenTeam, ParsedResume, SkillProfile, TeamRole


@runtime_checkable
class ProfileDirectory(Protocol):
    """Read access to participant profiles."""

    async def fetch_candidates(
        self,
        exclude_user_id: str,
        hackathon_id: Optional[str],
        filters: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Participants without a team for the hackathon.

        Each record carries at least ``user_id``, ``skills`` and ``interests``.
        Supported filters: ``target_users`` (list of ids) and ``limit``.
        """
        ...

    async def fetch_user_profile(self, user_id: str) -> Optional[SkillProfile]:
        """Structured profile merged with the parsed resume, if any."""
        ...

    async def fetch_open_teams(
        self,
        user_id: str,
        hackathon_id: Optional[str],
        exclude_team_ids: List[str],
        max_members: int,
        limit: int
    ) -> List[OpenTeam]:
        """Teams the user is not part of with fewer than ``max_members`` members."""
        ...

    async def update_profile_skills(self, user_id: str, skills: List[str]) -> None:
        ...


@runtime_checkable
class TeamRepository(Protocol):
    """Write access to teams and memberships."""

    async def create_team(self, name: str, hackathon_id: str, creator_id: str) -> str:
        """Create a team and register the creator as its leader.

        Returns:
            The new team id
        """
        ...

    async def add_team_member(self, team_id: str, user_id: str, role: TeamRole) -> None:
        ...

    async def check_existing_membership(self, user_id: str, hackathon_id: str) -> Optional[str]:
        """Team id of the user's team for the hackathon, or None."""
        ...


@runtime_checkable
class ResumeStore(Protocol):
    async def store_parsed_resume(self, user_id: str, parsed: ParsedResume) -> None:
        ...


@runtime_checkable
class Notifier(Protocol):
    async def send_notification(self, user_id: str, payload: Dict[str, Any]) -> None:
        """Deliver a notification; delivery is best effort."""
        ...
