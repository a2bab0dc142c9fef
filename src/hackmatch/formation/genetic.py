"""Genetic algorithm search for a high fitness team composition.

The leader is fixed; an individual is the list of the remaining members.
All randomness comes from the injected ``random.Random`` so a seeded
optimizer always returns the same team for the same input.
"""

import random
from typing import List, Optional, Set

import structlog

from ..data.models import TeamComposition, TeamMember, TeamRole


SKILL_COVERAGE_WEIGHT = 0.4
DIVERSITY_WEIGHT = 0.3
COMPATIBILITY_WEIGHT = 0.3

REQUIRED_SKILL_POINTS = 10
PREFERRED_SKILL_POINTS = 5
SKILL_VARIETY_POINTS = 10


class GeneticTeamOptimizer:
    """Selection, crossover and mutation over candidate subteams."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        population_size: int = 20,
        generations: int = 10,
        mutation_rate: float = 0.1
    ):
        """Initialize the optimizer.

        Args:
            rng: Random source; a fresh unseeded ``random.Random`` if omitted
            population_size: Individuals per generation
            generations: Number of selection rounds
            mutation_rate: Probability of mutating each offspring
        """
        self.rng = rng or random.Random()
        self.population_size = population_size
        self.generations = generations
        self.mutation_rate = mutation_rate
        self.logger = structlog.get_logger().bind(component="GeneticTeamOptimizer")

    def optimize(
        self,
        leader: TeamMember,
        candidates: List[TeamMember],
        needed_members: int,
        required_skills: List[str],
        preferred_skills: List[str]
    ) -> TeamComposition:
        """Search for the best team around ``leader``.

        Args:
            leader: Fixed team leader, excluded from the search
            candidates: Pool the remaining members are drawn from
            needed_members: Number of members to pick besides the leader
            required_skills: Skills the team must cover
            preferred_skills: Skills the team should cover

        Returns:
            Highest fitness composition of the final population

        Raises:
            ValueError: If the pool is smaller than ``needed_members``
        """
        if len(candidates) < needed_members:
            raise ValueError(
                f"Need {needed_members} candidates, only {len(candidates)} available"
            )

        leader = leader.model_copy(update={"role": TeamRole.LEADER})
        candidates = [c.model_copy(update={"role": TeamRole.MEMBER}) for c in candidates]

        def fitness(subteam: List[TeamMember]) -> TeamComposition:
            return self.evaluate_team_composition([leader, *subteam], required_skills, preferred_skills)

        population = self.initial_population(candidates, needed_members)
        survivor_count = max(1, self.population_size // 2)

        for generation in range(self.generations):
            evaluated = sorted(
                (fitness(subteam) for subteam in population),
                key=lambda composition: composition.total_score,
                reverse=True
            )
            survivors = evaluated[:survivor_count]

            # Elitism: survivors pass into the next generation unchanged
            population = [survivor.non_leaders for survivor in survivors]

            while len(population) < self.population_size:
                parent1 = self.rng.choice(survivors)
                parent2 = self.rng.choice(survivors)
                offspring = self.crossover(
                    parent1.non_leaders,
                    parent2.non_leaders,
                    candidates,
                    needed_members
                )
                if self.rng.random() < self.mutation_rate:
                    self.mutate(offspring, candidates)
                population.append(offspring)

            self.logger.debug(
                "Generation evaluated",
                generation=generation,
                best_score=survivors[0].total_score
            )

        final = [fitness(subteam) for subteam in population]
        best = max(final, key=lambda composition: composition.total_score)
        return self.assign_contributions(best)

    def initial_population(self, candidates: List[TeamMember], team_size: int) -> List[List[TeamMember]]:
        """Random permutations of the pool, truncated to ``team_size``."""
        population = []
        for _ in range(self.population_size):
            shuffled = list(candidates)
            self.rng.shuffle(shuffled)
            population.append(shuffled[:team_size])
        return population

    def crossover(
        self,
        parent1: List[TeamMember],
        parent2: List[TeamMember],
        candidates: List[TeamMember],
        team_size: int
    ) -> List[TeamMember]:
        """Mix two parents into one offspring of distinct members."""
        offspring: List[TeamMember] = []
        used_ids: Set[str] = set()

        genes = [*parent1, *parent2]
        self.rng.shuffle(genes)
        for member in genes:
            if len(offspring) >= team_size:
                break
            if member.user_id not in used_ids:
                offspring.append(member)
                used_ids.add(member.user_id)

        while len(offspring) < team_size:
            available = [c for c in candidates if c.user_id not in used_ids]
            if not available:
                break
            member = self.rng.choice(available)
            offspring.append(member)
            used_ids.add(member.user_id)

        return offspring

    def mutate(self, team: List[TeamMember], candidates: List[TeamMember]) -> None:
        """Replace one random member with an unused candidate, in place."""
        if not team:
            return
        index = self.rng.randrange(len(team))
        used_ids = {member.user_id for member in team}
        available = [c for c in candidates if c.user_id not in used_ids]
        if available:
            team[index] = self.rng.choice(available)

    def evaluate_team_composition(
        self,
        team: List[TeamMember],
        required_skills: List[str],
        preferred_skills: List[str]
    ) -> TeamComposition:
        """Score a full team (leader included)."""
        skill_coverage = self.skill_coverage(team, required_skills, preferred_skills)
        diversity = self.diversity_score(team)
        compatibility = self.compatibility_score(team)

        total = (
            skill_coverage * SKILL_COVERAGE_WEIGHT
            + diversity * DIVERSITY_WEIGHT
            + compatibility * COMPATIBILITY_WEIGHT
        )
        return TeamComposition(
            members=list(team),
            skill_coverage=skill_coverage,
            diversity_score=diversity,
            compatibility_score=compatibility,
            total_score=min(total, 1.0)
        )

    @staticmethod
    def skill_coverage(
        team: List[TeamMember],
        required_skills: List[str],
        preferred_skills: List[str]
    ) -> float:
        team_skills = {skill.lower() for member in team for skill in member.skills}

        score = 0.0
        max_score = 0.0
        for skill in required_skills:
            if skill.lower() in team_skills:
                score += REQUIRED_SKILL_POINTS
            max_score += REQUIRED_SKILL_POINTS
        for skill in preferred_skills:
            if skill.lower() in team_skills:
                score += PREFERRED_SKILL_POINTS
            max_score += PREFERRED_SKILL_POINTS

        score += min(len(team_skills) * 0.5, SKILL_VARIETY_POINTS)
        max_score += SKILL_VARIETY_POINTS

        return score / max_score if max_score > 0 else 0.0

    @staticmethod
    def diversity_score(team: List[TeamMember]) -> float:
        if len(team) <= 1:
            return 0.0

        all_skills = [skill for member in team for skill in member.skills]
        skill_diversity = len(set(all_skills)) / max(len(all_skills), 1)

        all_interests = [interest for member in team for interest in member.interests]
        interest_diversity = len(set(all_interests)) / max(len(all_interests), 1)

        # First names stand in for background diversity
        name_diversity = len({member.first_name for member in team}) / len(team)

        return min(skill_diversity * 0.4 + interest_diversity * 0.3 + name_diversity * 0.3, 1.0)

    @staticmethod
    def compatibility_score(team: List[TeamMember]) -> float:
        if len(team) <= 1:
            return 1.0

        total = 0.0
        pairs = 0
        for i, member1 in enumerate(team):
            for member2 in team[i + 1:]:
                common_interests = [x for x in member1.interests if x in member2.interests]
                common_skills = [s for s in member1.skills if s in member2.skills]

                interest_fit = min(len(common_interests) * 0.2, 1.0)
                skill_fit = max(0.0, 1 - len(common_skills) * 0.1)
                total += (interest_fit + skill_fit) / 2
                pairs += 1

        return total / pairs

    @staticmethod
    def assign_contributions(composition: TeamComposition) -> TeamComposition:
        """Set each member's share of the skills only they bring to the team."""
        skill_sets = [{skill.lower() for skill in m.skills} for m in composition.members]
        team_skills = set().union(*skill_sets) if skill_sets else set()

        members = []
        for index, member in enumerate(composition.members):
            others = set().union(*(s for j, s in enumerate(skill_sets) if j != index))
            exclusive = skill_sets[index] - others
            share = len(exclusive) / len(team_skills) if team_skills else 0.0
            members.append(member.model_copy(update={"contribution_score": share}))

        return composition.model_copy(update={"members": members})
