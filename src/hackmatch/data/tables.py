"""Skill weight, synonym, category and domain lookup tables.

The tables are configuration data: the bundled ``skill_tables.json`` is used
unless a different file is supplied (see ``MatchingSettings.skill_tables_path``).
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr, ValidationError


DEFAULT_TABLES_PATH = Path(__file__).with_name("skill_tables.json")


class SkillTableError(ValueError):
    """Raised when a skill table file cannot be loaded."""


class SkillTables(BaseModel):
    """Lookup tables used by skill normalization and scoring."""

    default_weight: int = 3
    weights: Dict[str, int] = Field(default_factory=dict)
    synonyms: Dict[str, List[str]] = Field(default_factory=dict)
    categories: Dict[str, List[str]] = Field(default_factory=dict)
    domains: List[str] = Field(default_factory=list)

    _alias_index: Dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        # Canonical names resolve to themselves; on conflicts the first
        # canonical in table order wins.
        index: Dict[str, str] = {}
        for canonical, aliases in self.synonyms.items():
            for name in [canonical, *aliases]:
                index.setdefault(name.strip().lower(), canonical)
        self._alias_index = index

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "SkillTables":
        """Load tables from a JSON file.

        Args:
            path: JSON file to read; the bundled tables when omitted

        Raises:
            SkillTableError: If the file is missing or malformed
        """
        source = Path(path) if path else DEFAULT_TABLES_PATH
        try:
            raw = json.loads(source.read_text(encoding="utf-8"))
            return cls.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise SkillTableError(f"Cannot load skill tables from {source}: {e}") from e

    def canonical(self, skill: str) -> str:
        """Resolve a raw skill name to its canonical spelling."""
        trimmed = skill.strip()
        return self._alias_index.get(trimmed.lower(), trimmed)

    def weight(self, skill: str) -> int:
        return self.weights.get(skill, self.default_weight)

    def categorize(self, skills: List[str]) -> List[str]:
        """Categories with at least one exact skill match, in table order."""
        return [
            category for category, members in self.categories.items()
            if any(skill in members for skill in skills)
        ]

    def domain_of(self, text: str) -> str:
        """First domain keyword contained in ``text``, else ``"general"``."""
        lowered = text.lower()
        for domain in self.domains:
            if domain in lowered:
                return domain
        return "general"
