"""Team forming agent: optimizer-driven team creation with a manual fallback."""

import random
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .base import AgentRuntime
from ..collaborators import Notifier, ProfileDirectory, TeamRepository
from ..config import FormationSettings, get_settings
from ..data.models import TeamComposition, TeamFormationRequest, TeamMember, TeamRole
from ..events import EventBus, EventType, PlatformEvent
from ..events.payloads import TeamFormationRequestPayload, parse_payload
from ..formation import GeneticTeamOptimizer


class TeamFormingAgent:
    """Creates balanced teams using a genetic search over available participants."""

    NAME = "TeamFormingAgent"

    def __init__(
        self,
        bus: EventBus,
        directory: ProfileDirectory,
        teams: TeamRepository,
        notifier: Optional[Notifier] = None,
        settings: Optional[FormationSettings] = None,
        rng: Optional[random.Random] = None,
        candidate_pool_limit: Optional[int] = None
    ):
        """Initialize team forming agent.

        Args:
            bus: Event bus to attach to
            directory: Profile directory collaborator
            teams: Team repository collaborator
            notifier: Optional notification delivery collaborator
            settings: Formation settings
            rng: Random source for the optimizer (seeded from settings if omitted)
            candidate_pool_limit: Maximum candidates considered per request
        """
        self.settings = settings or get_settings().formation
        self.directory = directory
        self.teams = teams
        self.notifier = notifier
        self.candidate_pool_limit = candidate_pool_limit or get_settings().matching.candidate_pool_limit

        self.optimizer = GeneticTeamOptimizer(
            rng=rng or random.Random(self.settings.random_seed),
            population_size=self.settings.population_size,
            generations=self.settings.generations,
            mutation_rate=self.settings.mutation_rate
        )

        self.runtime = AgentRuntime(
            name=self.NAME,
            description=(
                "Assists in creating balanced and effective teams using "
                "optimization algorithms and team dynamics analysis"
            ),
            bus=bus,
            subscribed_types=[EventType.TEAM_FORMATION_REQUEST, EventType.TEAM_SUGGESTIONS_GENERATED],
            published_types=[
                EventType.TEAM_FORMED,
                EventType.TEAM_MEMBER_ADDED,
                EventType.NOTIFICATION_SEND
            ]
        )
        self.logger = self.runtime.logger

    @property
    def name(self) -> str:
        return self.runtime.name

    @property
    def is_running(self) -> bool:
        return self.runtime.is_running

    async def start(self) -> None:
        if await self.runtime.start(self.handle):
            self.logger.info("Ready to create optimal teams")

    async def stop(self) -> None:
        await self.runtime.stop()

    def get_status(self) -> Dict[str, Any]:
        return self.runtime.get_status()

    async def handle(self, event: PlatformEvent) -> None:
        if event.type == EventType.TEAM_FORMATION_REQUEST:
            await self._handle_formation_request(event)
        elif event.type == EventType.TEAM_SUGGESTIONS_GENERATED:
            self._log_suggestions(event)
        else:
            self.logger.warning("Unhandled event type", event_type=event.type.value)

    async def _handle_formation_request(self, event: PlatformEvent) -> None:
        if not self.runtime.validate_payload(event, ["requester_id", "hackathon_id", "desired_team_size"]):
            self.logger.error("Invalid team formation request payload")
            return
        try:
            payload: TeamFormationRequestPayload = parse_payload(event)
        except ValidationError as e:
            self.logger.error("Invalid team formation request payload", error=str(e))
            return

        request = TeamFormationRequest.model_validate(payload.model_dump())
        await self.form_team(request, correlation_id=event.correlation_id)

    async def form_team(
        self,
        request: TeamFormationRequest,
        correlation_id: Optional[str] = None
    ) -> Optional[str]:
        """Run one formation request to completion.

        Returns:
            The id of the created team, or None when no team was created
        """
        log = self.logger.bind(requester_id=request.requester_id, hackathon_id=request.hackathon_id)
        log.info("Processing team formation request")

        size = request.desired_team_size
        if size < self.settings.min_team_size or size > self.settings.max_team_size:
            log.error(
                "Invalid team size",
                desired_team_size=size,
                min_team_size=self.settings.min_team_size,
                max_team_size=self.settings.max_team_size
            )
            return None

        try:
            existing_team = await self.teams.check_existing_membership(
                request.requester_id, request.hackathon_id
            )
        except Exception as e:
            # Unknown membership counts as an existing team; a requester is never placed twice
            log.error("Failed to check existing team membership", error=str(e))
            return None
        if existing_team:
            log.info("Requester already has a team", team_id=existing_team)
            return None

        candidates = await self._get_available_candidates(request)
        needed_members = size - 1
        if len(candidates) < needed_members:
            log.error("Insufficient candidates", found=len(candidates), needed=needed_members)
            return None

        leader = await self._get_requester(request.requester_id)
        if leader is None:
            log.error("Requester profile not found")
            return None

        team = self.optimizer.optimize(
            leader,
            candidates,
            needed_members,
            request.required_skills,
            request.preferred_skills
        )

        envelope = {
            "user_id": request.requester_id,
            "hackathon_id": request.hackathon_id,
            "correlation_id": correlation_id,
        }

        if team.total_score < self.settings.auto_form_threshold:
            log.info("Optimal team score too low, suggesting manual formation", total_score=team.total_score)
            await self._suggest_manual_formation(request, candidates, envelope)
            return None

        team_id = await self._create_team(request, team)
        if team_id is None:
            return None
        envelope["team_id"] = team_id

        if request.auto_invite:
            if not await self._add_members(team_id, team, envelope):
                return None
        else:
            await self._send_invitations(team_id, team, request, envelope)

        await self.runtime.publish(
            EventType.TEAM_FORMED,
            {
                "team_id": team_id,
                "hackathon_id": request.hackathon_id,
                "requester_id": request.requester_id,
                "members": [m.user_id for m in team.members],
                "team_composition": team.model_dump(mode="json"),
            },
            **envelope
        )
        log.info("Team formed", team_id=team_id, member_count=len(team.members), total_score=team.total_score)
        return team_id

    async def _get_available_candidates(self, request: TeamFormationRequest) -> List[TeamMember]:
        filters: Dict[str, Any] = {"limit": self.candidate_pool_limit}
        if request.target_users:
            filters["target_users"] = list(request.target_users)

        try:
            rows = await self.directory.fetch_candidates(
                request.requester_id, request.hackathon_id, filters
            )
            return [
                TeamMember.model_validate({**row, "role": TeamRole.MEMBER, "contribution_score": 0.0})
                for row in rows[:self.candidate_pool_limit]
            ]
        except Exception as e:
            self.logger.error("Failed to get available candidates", error=str(e))
            return []

    async def _get_requester(self, user_id: str) -> Optional[TeamMember]:
        try:
            profile = await self.directory.fetch_user_profile(user_id)
        except Exception as e:
            self.logger.error("Failed to get requester profile", user_id=user_id, error=str(e))
            return None
        if profile is None:
            return None
        return TeamMember(
            user_id=profile.user_id,
            username=profile.username,
            first_name=profile.first_name,
            skills=profile.skills,
            interests=profile.interests,
            role=TeamRole.LEADER
        )

    async def _create_team(self, request: TeamFormationRequest, team: TeamComposition) -> Optional[str]:
        leader = team.leader
        team_name = request.team_name or f"Team {leader.first_name or leader.username or leader.user_id}"
        try:
            team_id = await self.teams.create_team(team_name, request.hackathon_id, request.requester_id)
        except Exception as e:
            self.logger.error("Failed to create team", error=str(e))
            return None

        self.logger.info("Team created", team_id=team_id, team_name=team_name)
        return team_id

    async def _add_members(self, team_id: str, team: TeamComposition, envelope: Dict[str, Any]) -> bool:
        for member in team.non_leaders:
            try:
                await self.teams.add_team_member(team_id, member.user_id, member.role)
            except Exception as e:
                self.logger.error(
                    "Failed to add member to team",
                    team_id=team_id,
                    user_id=member.user_id,
                    error=str(e)
                )
                return False

            await self.runtime.publish(
                EventType.TEAM_MEMBER_ADDED,
                {"team_id": team_id, "user_id": member.user_id, "role": member.role.value},
                **envelope
            )
            self.logger.info("Member added", team_id=team_id, user_id=member.user_id)
        return True

    async def _send_invitations(
        self,
        team_id: str,
        team: TeamComposition,
        request: TeamFormationRequest,
        envelope: Dict[str, Any]
    ) -> None:
        invitees = team.non_leaders
        for member in invitees:
            await self._notify(member.user_id, {
                "type": "team_invitation",
                "title": "Team Invitation",
                "message": "You've been invited to join a team for the hackathon!",
                "data": {
                    "team_id": team_id,
                    "hackathon_id": request.hackathon_id,
                    "invited_by": request.requester_id,
                    "team_name": request.team_name,
                    "project_description": request.project_description,
                },
            }, envelope)

        self.logger.info("Team invitations sent", team_id=team_id, count=len(invitees))

    async def _suggest_manual_formation(
        self,
        request: TeamFormationRequest,
        candidates: List[TeamMember],
        envelope: Dict[str, Any]
    ) -> None:
        top = candidates[:self.settings.manual_suggestion_limit]
        await self._notify(request.requester_id, {
            "type": "manual_team_formation_suggestion",
            "title": "Team Formation Suggestions",
            "message": (
                "Automatic team formation found limited matches. "
                "Here are some manual suggestions."
            ),
            "data": {
                "candidates": [c.model_dump(mode="json") for c in top],
                "hackathon_id": request.hackathon_id,
                "required_skills": request.required_skills,
                "preferred_skills": request.preferred_skills,
            },
        }, envelope)

    async def _notify(self, user_id: str, notification: Dict[str, Any], envelope: Dict[str, Any]) -> None:
        await self.runtime.publish(
            EventType.NOTIFICATION_SEND,
            {"user_id": user_id, "notification": notification},
            **{**envelope, "user_id": user_id}
        )

        if self.notifier is None:
            return
        try:
            await self.notifier.send_notification(user_id, notification)
        except Exception as e:
            self.logger.warning("Notification delivery failed", user_id=user_id, error=str(e))

    def _log_suggestions(self, event: PlatformEvent) -> None:
        suggestions = event.data.get("suggestions") or {}
        self.logger.info(
            "Received team suggestions",
            user_id=event.data.get("user_id"),
            user_suggestions=len(suggestions.get("user_suggestions") or []),
            team_suggestions=len(suggestions.get("team_suggestions") or [])
        )
