"""Skill matching agent: compatibility scoring and teammate suggestions."""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .base import AgentRuntime
from ..collaborators import ProfileDirectory
from ..config import MatchingSettings, get_settings
from ..data.models import (
    Experience,
    MatchingCriteria,
    OpenTeam,
    SkillProfile,
    SuggestionBundle,
    TeamSuggestion,
    UserSuggestion,
)
from ..data.tables import SkillTables
from ..events import EventBus, EventType, PlatformEvent
from ..events.models import utcnow
from ..events.payloads import ResumeParsedPayload, SuggestionRequestedPayload, parse_payload


# Weights of the pairwise compatibility blend; they sum to 1
SKILL_WEIGHT = 0.4
INTEREST_WEIGHT = 0.2
EXPERIENCE_WEIGHT = 0.25
DIVERSITY_WEIGHT = 0.15

REQUIRED_SKILL_POINTS = 15
OVERLAP_POINTS = 2
MAX_OVERLAP_FOR_BONUS = 3
TEAM_SIZE_REFERENCE = 6


class SkillScorer:
    """Pure scoring functions over skill profiles."""

    def __init__(self, tables: SkillTables):
        self.tables = tables

    def normalize_skills(self, skills: List[str]) -> List[str]:
        """Map raw skill names to canonical names, dropping duplicates.

        Order of first appearance is kept. Normalizing an already
        canonical list returns it unchanged.
        """
        normalized: List[str] = []
        for skill in skills:
            canonical = self.tables.canonical(skill)
            if canonical and canonical not in normalized:
                normalized.append(canonical)
        return normalized

    def skill_compatibility(
        self,
        skills1: List[str],
        skills2: List[str],
        required_skills: Optional[List[str]] = None
    ) -> float:
        """Score how well two skill sets complement each other.

        Returns:
            Score in [0, 1]; 0 when there is nothing to score
        """
        normalized1 = self.normalize_skills(skills1)
        normalized2 = self.normalize_skills(skills2)

        score = 0.0
        max_score = 0.0

        # Complementary skills, weighted by how valuable they are
        unique1 = [s for s in normalized1 if s not in normalized2]
        unique2 = [s for s in normalized2 if s not in normalized1]
        for skill in unique1 + unique2:
            score += self.tables.weight(skill) * 0.1
            max_score += 10 * 0.1

        if required_skills:
            combined = set(normalized1) | set(normalized2)
            for required in self.normalize_skills(required_skills):
                if required in combined:
                    score += REQUIRED_SKILL_POINTS
                max_score += REQUIRED_SKILL_POINTS

        # Some common ground helps, too much overlap earns nothing
        overlap = [s for s in normalized1 if s in normalized2]
        if 0 < len(overlap) <= MAX_OVERLAP_FOR_BONUS:
            score += len(overlap) * OVERLAP_POINTS
            max_score += MAX_OVERLAP_FOR_BONUS * OVERLAP_POINTS

        if max_score <= 0:
            return 0.0
        return max(0.0, min(score / max_score, 1.0))

    def interest_alignment(self, interests1: List[str], interests2: List[str]) -> float:
        """Jaccard similarity of interests plus a bonus per shared interest."""
        if not interests1 or not interests2:
            return 0.5

        set1 = {i.lower().strip() for i in interests1}
        set2 = {i.lower().strip() for i in interests2}
        total = len(set1 | set2)
        if total == 0:
            return 0.5

        common = len(set1 & set2)
        jaccard = common / total
        bonus = min(common * 0.1, 0.3)
        return min(jaccard + bonus, 1.0)

    def experience_compatibility(self, exp1: List[Experience], exp2: List[Experience]) -> float:
        """Ratio of distinct experience domains to experience entries."""
        if not exp1 or not exp2:
            return 0.5

        domains = [
            self.tables.domain_of(entry.title or entry.company or "")
            for entry in [*exp1, *exp2]
        ]
        return len(set(domains)) / len(domains)

    def diversity_bonus(self, user1: SkillProfile, user2: SkillProfile) -> float:
        """Reward different education backgrounds and skill categories."""
        diversity = 0.0

        degrees1 = [e.degree.lower() for e in user1.education]
        degrees2 = [e.degree.lower() for e in user2.education]
        if degrees1 and degrees2:
            shared = any(d1 in d2 or d2 in d1 for d1 in degrees1 for d2 in degrees2)
            if not shared:
                diversity += 0.3

        categories1 = self.tables.categorize(user1.skills)
        categories2 = self.tables.categorize(user2.skills)
        max_categories = max(len(categories1), len(categories2))
        if max_categories > 0:
            total_categories = len(set(categories1) | set(categories2))
            diversity += (total_categories / max_categories) * 0.7

        return min(diversity, 1.0)

    def compatibility_score(
        self,
        user1: SkillProfile,
        user2: SkillProfile,
        criteria: MatchingCriteria
    ) -> float:
        """Weighted blend of skill, interest, experience and diversity scores."""
        skill = self.skill_compatibility(user1.skills, user2.skills, criteria.required_skills)
        interest = self.interest_alignment(user1.interests, user2.interests)
        experience = self.experience_compatibility(user1.experience, user2.experience)
        diversity = self.diversity_bonus(user1, user2)

        return (
            skill * SKILL_WEIGHT
            + interest * INTEREST_WEIGHT
            + experience * EXPERIENCE_WEIGHT
            + diversity * DIVERSITY_WEIGHT
        )

    def team_compatibility(self, user: SkillProfile, team: OpenTeam) -> float:
        """Score how well a user fits an existing team.

        The weighted sum is divided by 3 on top of its own weights, so
        scores stay well below 1.
        """
        user_skills = self.normalize_skills(user.skills)
        team_skills = self.normalize_skills(team.skills)

        contribution = sum(
            self.tables.weight(skill) for skill in user_skills if skill not in team_skills
        )
        interest = self.interest_alignment(user.interests, team.interests)
        size_slack = max(0.0, (TEAM_SIZE_REFERENCE - team.member_count) / TEAM_SIZE_REFERENCE)

        return (contribution * 0.1 + interest * 0.4 + size_slack * 0.5) / 3


class SkillMatchingAgent:
    """Finds compatible teammates and open teams for a participant."""

    NAME = "SkillMatchingAgent"

    def __init__(
        self,
        bus: EventBus,
        directory: ProfileDirectory,
        tables: Optional[SkillTables] = None,
        settings: Optional[MatchingSettings] = None
    ):
        """Initialize skill matching agent.

        Args:
            bus: Event bus to attach to
            directory: Profile directory collaborator
            tables: Skill lookup tables (loaded from settings when omitted)
            settings: Matching settings
        """
        self.settings = settings or get_settings().matching
        self.directory = directory
        self.scorer = SkillScorer(tables or SkillTables.load(self.settings.skill_tables_path))

        self.runtime = AgentRuntime(
            name=self.NAME,
            description=(
                "Identifies potential teammates based on skill compatibility "
                "and project requirements"
            ),
            bus=bus,
            subscribed_types=[EventType.TEAM_SUGGESTION_REQUESTED, EventType.RESUME_PARSED],
            published_types=[EventType.TEAM_SUGGESTIONS_GENERATED]
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
            self.logger.info("Ready to generate team suggestions")

    async def stop(self) -> None:
        await self.runtime.stop()

    def get_status(self) -> Dict[str, Any]:
        return self.runtime.get_status()

    async def handle(self, event: PlatformEvent) -> None:
        if event.type == EventType.TEAM_SUGGESTION_REQUESTED:
            await self._handle_suggestion_request(event)
        elif event.type == EventType.RESUME_PARSED:
            await self._handle_resume_parsed(event)
        else:
            self.logger.warning("Unhandled event type", event_type=event.type.value)

    async def _handle_suggestion_request(self, event: PlatformEvent) -> None:
        if not self.runtime.validate_payload(event, ["user_id"]):
            self.logger.error("Invalid team suggestion request payload")
            return
        try:
            request: SuggestionRequestedPayload = parse_payload(event)
        except ValidationError as e:
            self.logger.error("Invalid team suggestion request payload", error=str(e))
            return

        criteria = MatchingCriteria(
            user_id=request.user_id,
            hackathon_id=request.hackathon_id,
            required_skills=request.required_skills,
            preferred_skills=request.preferred_skills,
            team_size=request.team_size or self.settings.default_team_size,
            exclude_team_ids=request.exclude_team_ids
        )

        self.logger.info("Generating team suggestions", user_id=criteria.user_id)
        profile = await self._get_user_profile(criteria.user_id)
        if profile is None:
            self.logger.error("User profile not found", user_id=criteria.user_id)
            return

        user_suggestions, team_suggestions = await asyncio.gather(
            self.generate_user_suggestions(profile, criteria),
            self.generate_team_suggestions(profile, criteria)
        )

        bundle = SuggestionBundle(
            user_suggestions=user_suggestions,
            team_suggestions=team_suggestions,
            generated_at=utcnow(),
            criteria=criteria
        )
        await self.runtime.publish(
            EventType.TEAM_SUGGESTIONS_GENERATED,
            {"user_id": criteria.user_id, "suggestions": bundle.model_dump(mode="json")},
            user_id=criteria.user_id,
            hackathon_id=criteria.hackathon_id,
            correlation_id=event.correlation_id
        )

        self.logger.info(
            "Team suggestions generated",
            user_id=criteria.user_id,
            user_suggestions=len(user_suggestions),
            team_suggestions=len(team_suggestions)
        )

    async def generate_user_suggestions(
        self,
        profile: SkillProfile,
        criteria: MatchingCriteria
    ) -> List[UserSuggestion]:
        """Score candidate teammates and keep the best matches."""
        limit = self.settings.candidate_pool_limit
        try:
            rows = await self.directory.fetch_candidates(
                criteria.user_id,
                criteria.hackathon_id,
                {"limit": limit}
            )

            suggestions = []
            for row in rows[:limit]:
                candidate = await self.directory.fetch_user_profile(row["user_id"])
                if candidate is None:
                    candidate = SkillProfile.model_validate(row)

                score = self.scorer.compatibility_score(profile, candidate, criteria)
                if score > self.settings.user_score_threshold:
                    suggestions.append(UserSuggestion(
                        matching_score=score,
                        suggested_users=[candidate]
                    ))
        except Exception as e:
            self.logger.error("Failed to generate user suggestions", error=str(e))
            return []

        suggestions.sort(key=lambda s: s.matching_score, reverse=True)
        return suggestions[:self.settings.max_user_suggestions]

    async def generate_team_suggestions(
        self,
        profile: SkillProfile,
        criteria: MatchingCriteria
    ) -> List[TeamSuggestion]:
        """Score open teams the user could join."""
        try:
            teams = await self.directory.fetch_open_teams(
                criteria.user_id,
                criteria.hackathon_id,
                criteria.exclude_team_ids,
                criteria.team_size,
                self.settings.open_team_limit
            )
        except Exception as e:
            self.logger.error("Failed to generate team suggestions", error=str(e))
            return []

        suggestions = []
        for team in teams[:self.settings.open_team_limit]:
            score = self.scorer.team_compatibility(profile, team)
            if score > self.settings.team_score_threshold:
                suggestions.append(TeamSuggestion(
                    team_id=team.team_id,
                    team_name=team.team_name,
                    members_count=team.member_count,
                    matching_score=score
                ))

        suggestions.sort(key=lambda s: s.matching_score, reverse=True)
        return suggestions[:self.settings.max_team_suggestions]

    async def _get_user_profile(self, user_id: str) -> Optional[SkillProfile]:
        try:
            return await self.directory.fetch_user_profile(user_id)
        except Exception as e:
            self.logger.error("Failed to get user profile", user_id=user_id, error=str(e))
            return None

    async def _handle_resume_parsed(self, event: PlatformEvent) -> None:
        if not self.runtime.validate_payload(event, ["user_id", "parsed_resume"]):
            self.logger.error("Invalid resume parsed payload")
            return
        try:
            payload: ResumeParsedPayload = parse_payload(event)
        except ValidationError as e:
            self.logger.error("Invalid resume parsed payload", error=str(e))
            return

        skills = payload.parsed_resume.skills
        if not skills:
            return
        try:
            await self.directory.update_profile_skills(payload.user_id, skills)
        except Exception as e:
            self.logger.error("Failed to update skill profile", user_id=payload.user_id, error=str(e))
            return

        self.logger.info("Skill profile updated", user_id=payload.user_id, skill_count=len(skills))
