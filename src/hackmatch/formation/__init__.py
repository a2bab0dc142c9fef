"""Team composition search."""

from .genetic import GeneticTeamOptimizer

__all__ = ["GeneticTeamOptimizer"]
