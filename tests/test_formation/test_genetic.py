"""Tests for the genetic team optimizer."""

import random

import pytest

from hackmatch.data.models import TeamMember, TeamRole
from hackmatch.formation import GeneticTeamOptimizer


def member(user_id: str, skills, interests=(), first_name=None) -> TeamMember:
    return TeamMember(
        user_id=user_id,
        username=user_id,
        first_name=first_name or user_id.title(),
        skills=list(skills),
        interests=list(interests)
    )


@pytest.fixture
def leader() -> TeamMember:
    return member("lead", ["JavaScript", "React"], ["web", "ai"])


@pytest.fixture
def candidates() -> list:
    return [
        member("py", ["Python", "Machine Learning"], ["ai"]),
        member("ops", ["AWS", "Docker"], ["cloud"]),
        member("ux", ["Figma", "CSS"], ["web", "design"]),
        member("db", ["PostgreSQL", "SQL"], ["fintech"]),
        member("java", ["Java", "Spring"], ["enterprise"]),
        member("mobile", ["Swift", "Kotlin"], ["gaming"]),
    ]


class TestGeneticTeamOptimizer:
    """Test team search."""

    def test_optimize_returns_requested_team_size(self, leader, candidates):
        optimizer = GeneticTeamOptimizer(rng=random.Random(7))

        team = optimizer.optimize(leader, candidates, 3, ["Python"], ["AWS"])

        assert len(team.members) == 4
        assert team.leader.user_id == "lead"
        assert len({m.user_id for m in team.members}) == 4
        assert all(m.role == TeamRole.MEMBER for m in team.non_leaders)
        assert 0.0 <= team.total_score <= 1.0

    def test_optimize_is_deterministic_with_seed(self, leader, candidates):
        first = GeneticTeamOptimizer(rng=random.Random(99)).optimize(leader, candidates, 2, ["Python"], [])
        second = GeneticTeamOptimizer(rng=random.Random(99)).optimize(leader, candidates, 2, ["Python"], [])

        assert [m.user_id for m in first.members] == [m.user_id for m in second.members]
        assert first.total_score == second.total_score

    def test_optimize_prefers_required_skills(self, leader, candidates):
        optimizer = GeneticTeamOptimizer(rng=random.Random(3), population_size=60, generations=20)

        team = optimizer.optimize(leader, candidates, 2, ["Python", "AWS"], [])

        assert {m.user_id for m in team.non_leaders} == {"py", "ops"}

    def test_optimize_insufficient_candidates(self, leader, candidates):
        optimizer = GeneticTeamOptimizer(rng=random.Random(1))

        with pytest.raises(ValueError):
            optimizer.optimize(leader, candidates[:2], 3, [], [])

    def test_optimize_does_not_mutate_inputs(self, leader, candidates):
        leader_before = leader.model_copy()
        GeneticTeamOptimizer(rng=random.Random(5)).optimize(leader, candidates, 2, [], [])

        assert leader == leader_before
        assert all(c.contribution_score == 0.0 for c in candidates)

    def test_contributions_assigned(self, leader, candidates):
        team = GeneticTeamOptimizer(rng=random.Random(11)).optimize(leader, candidates, 2, [], [])

        # Every member brings distinct skills in this pool
        assert sum(m.contribution_score for m in team.members) == pytest.approx(1.0)


class TestTeamScores:
    """Test fitness components."""

    def test_single_member_team(self, leader):
        assert GeneticTeamOptimizer.diversity_score([leader]) == 0.0
        assert GeneticTeamOptimizer.compatibility_score([leader]) == 1.0

    def test_skill_coverage(self, leader, candidates):
        team = [leader, candidates[0]]

        coverage = GeneticTeamOptimizer.skill_coverage(team, ["python", "Go"], ["React"])

        # 10 + 0 required, 5 preferred, 4 skills * 0.5 variety
        assert coverage == pytest.approx((10 + 5 + 2) / (20 + 5 + 10))

    def test_skill_coverage_without_requirements(self, leader):
        assert GeneticTeamOptimizer.skill_coverage([leader], [], []) == pytest.approx(1.0 / 10)

    def test_compatibility_penalizes_shared_skills(self):
        a = member("a", ["Python", "SQL"], ["ai"])
        b = member("b", ["Python", "SQL"], ["ai"])
        c = member("c", ["Go"], ["ai"])

        shared = GeneticTeamOptimizer.compatibility_score([a, b])
        distinct = GeneticTeamOptimizer.compatibility_score([a, c])

        assert shared == pytest.approx((0.2 + 0.8) / 2)
        assert distinct == pytest.approx((0.2 + 1.0) / 2)

    def test_diversity_score(self):
        a = member("a", ["Python"], ["ai"], first_name="Sam")
        b = member("b", ["Python"], ["ai"], first_name="Sam")

        assert GeneticTeamOptimizer.diversity_score([a, b]) == pytest.approx(0.5 * 0.4 + 0.5 * 0.3 + 0.5 * 0.3)

    def test_evaluate_clamps_total(self, leader, candidates):
        optimizer = GeneticTeamOptimizer(rng=random.Random(0))

        team = optimizer.evaluate_team_composition([leader, *candidates], [], [])

        assert team.total_score <= 1.0
        assert team.total_score == pytest.approx(
            team.skill_coverage * 0.4 + team.diversity_score * 0.3 + team.compatibility_score * 0.3
        )

    def test_crossover_produces_distinct_members(self, candidates):
        optimizer = GeneticTeamOptimizer(rng=random.Random(2))

        offspring = optimizer.crossover(candidates[:3], candidates[1:4], candidates, 3)

        assert len(offspring) == 3
        assert len({m.user_id for m in offspring}) == 3

    def test_mutate_swaps_in_unused_candidate(self, candidates):
        optimizer = GeneticTeamOptimizer(rng=random.Random(4))
        team = list(candidates[:2])

        optimizer.mutate(team, candidates)

        assert len(team) == 2
        assert len({m.user_id for m in team}) == 2
        assert any(m.user_id not in ("py", "ops") for m in team)
