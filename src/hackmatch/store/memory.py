"""In-memory implementation of the collaborator interfaces."""

import asyncio
import uuid
from typing import Any, Dict, List, Optional, Tuple

import structlog

from ..data.models import OpenTeam, ParsedResume, SkillProfile, TeamRole


class InMemoryPlatformStore:
    """Process-local profile directory, team repository, resume store and notifier.

    Useful for local runs and tests; nothing survives a restart.
    """

    def __init__(self):
        self.logger = structlog.get_logger().bind(component="InMemoryPlatformStore")

        self._profiles: Dict[str, SkillProfile] = {}
        self._resumes: Dict[str, ParsedResume] = {}
        # team_id -> {"name", "hackathon_id", "members": {user_id: role}}
        self._teams: Dict[str, Dict[str, Any]] = {}
        self.notifications: List[Tuple[str, Dict[str, Any]]] = []

        self._lock = asyncio.Lock()

    def add_profile(self, profile: SkillProfile) -> None:
        self._profiles[profile.user_id] = profile

    def get_team(self, team_id: str) -> Optional[Dict[str, Any]]:
        return self._teams.get(team_id)

    def get_resume(self, user_id: str) -> Optional[ParsedResume]:
        return self._resumes.get(user_id)

    def _team_of(self, user_id: str, hackathon_id: str) -> Optional[str]:
        for team_id, team in self._teams.items():
            if team["hackathon_id"] == hackathon_id and user_id in team["members"]:
                return team_id
        return None

    # ProfileDirectory

    async def fetch_candidates(
        self,
        exclude_user_id: str,
        hackathon_id: Optional[str],
        filters: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        target_users = filters.get("target_users")
        limit = filters.get("limit", 50)

        async with self._lock:
            candidates = []
            for profile in self._profiles.values():
                if profile.user_id == exclude_user_id:
                    continue
                if hackathon_id and self._team_of(profile.user_id, hackathon_id):
                    continue
                if target_users and profile.user_id not in target_users:
                    continue
                candidates.append({
                    "user_id": profile.user_id,
                    "username": profile.username,
                    "first_name": profile.first_name,
                    "skills": list(profile.skills),
                    "interests": list(profile.interests),
                })
        return candidates[:limit]

    async def fetch_user_profile(self, user_id: str) -> Optional[SkillProfile]:
        async with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                return None
            merged = profile.model_copy(deep=True)
            resume = self._resumes.get(user_id)

        if resume:
            merged.experience = list(resume.experience)
            merged.education = list(resume.education)
            # Prefer the resume skills when they are more comprehensive
            if len(resume.skills) > len(merged.skills):
                merged.skills = list(resume.skills)
        return merged

    async def fetch_open_teams(
        self,
        user_id: str,
        hackathon_id: Optional[str],
        exclude_team_ids: List[str],
        max_members: int,
        limit: int
    ) -> List[OpenTeam]:
        async with self._lock:
            teams = []
            for team_id, team in self._teams.items():
                if hackathon_id and team["hackathon_id"] != hackathon_id:
                    continue
                if team_id in exclude_team_ids or user_id in team["members"]:
                    continue
                if len(team["members"]) >= max_members:
                    continue

                skills: List[str] = []
                interests: List[str] = []
                for member_id in team["members"]:
                    profile = self._profiles.get(member_id)
                    if profile is None:
                        continue
                    skills.extend(s for s in profile.skills if s not in skills)
                    interests.extend(i for i in profile.interests if i not in interests)

                teams.append(OpenTeam(
                    team_id=team_id,
                    team_name=team["name"],
                    hackathon_id=team["hackathon_id"],
                    member_count=len(team["members"]),
                    skills=skills,
                    interests=interests,
                ))

        teams.sort(key=lambda t: t.member_count)
        return teams[:limit]

    async def update_profile_skills(self, user_id: str, skills: List[str]) -> None:
        async with self._lock:
            profile = self._profiles.get(user_id)
            if profile is None:
                raise KeyError(f"Unknown user: {user_id}")
            profile.skills = list(skills)

    # TeamRepository

    async def create_team(self, name: str, hackathon_id: str, creator_id: str) -> str:
        team_id = str(uuid.uuid4())
        async with self._lock:
            self._teams[team_id] = {
                "name": name,
                "hackathon_id": hackathon_id,
                "members": {creator_id: TeamRole.LEADER},
            }
        self.logger.debug("Team created", team_id=team_id, name=name)
        return team_id

    async def add_team_member(self, team_id: str, user_id: str, role: TeamRole) -> None:
        async with self._lock:
            team = self._teams.get(team_id)
            if team is None:
                raise KeyError(f"Unknown team: {team_id}")
            team["members"][user_id] = role

    async def check_existing_membership(self, user_id: str, hackathon_id: str) -> Optional[str]:
        async with self._lock:
            return self._team_of(user_id, hackathon_id)

    # ResumeStore

    async def store_parsed_resume(self, user_id: str, parsed: ParsedResume) -> None:
        async with self._lock:
            self._resumes[user_id] = parsed

    # Notifier

    async def send_notification(self, user_id: str, payload: Dict[str, Any]) -> None:
        self.notifications.append((user_id, payload))
