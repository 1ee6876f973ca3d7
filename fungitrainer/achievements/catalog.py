from __future__ import annotations

"""Achievement definitions (Pydantic) and the YAML-backed catalog."""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..config.config import load_yaml

DEFAULT_CATALOG = Path(__file__).resolve().parent.parent / "config" / "achievements.yml"

TIME_WINDOWS = {"night_owl", "early_bird"}


class RequirementType(str, Enum):
    FIRST_CORRECT = "first_correct"
    STREAK = "streak"
    GENUS_ACCURACY = "genus_accuracy"
    MODULE_COMPLETE = "module_complete"
    DNA_SPECIALIST = "dna_specialist"
    TIME_BASED = "time_based"
    TOTAL_CORRECT = "total_correct"
    PERFECT_SESSION = "perfect_session"
    MODULES_COMPLETE = "modules_complete"
    TOXIC_SPECIES = "toxic_species"
    MARATHON_DURATION = "marathon_duration"


NUMERIC_REQUIREMENTS = {
    RequirementType.STREAK,
    RequirementType.DNA_SPECIALIST,
    RequirementType.TOTAL_CORRECT,
    RequirementType.PERFECT_SESSION,
    RequirementType.TOXIC_SPECIES,
    RequirementType.MARATHON_DURATION,
}

# Rules that accumulate a raw counter across events before they qualify.
COUNTER_REQUIREMENTS = {
    RequirementType.DNA_SPECIALIST,
    RequirementType.TOTAL_CORRECT,
    RequirementType.TOXIC_SPECIES,
    RequirementType.MODULES_COMPLETE,
}


class AchievementDefinition(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    category: str = "general"
    requirement_type: RequirementType
    requirement_value: Union[int, str, List[str]] = 1
    points: int = Field(default=0, ge=0)
    rarity: str = "common"
    min_attempts: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("achievement id must not be blank")
        return v.strip()

    @model_validator(mode="after")
    def _value_matches_type(self) -> "AchievementDefinition":
        if self.requirement_type is RequirementType.MODULES_COMPLETE:
            modules = self.requirement_value
            if not isinstance(modules, list) or not modules or not all(str(m).strip() for m in modules):
                raise ValueError(f"{self.id}: requirement_value must be a non-empty list of module ids")
            return self
        if isinstance(self.requirement_value, list):
            raise ValueError(f"{self.id}: a list requirement_value is only valid for modules_complete")
        if self.requirement_type in NUMERIC_REQUIREMENTS:
            try:
                value = int(self.requirement_value)
            except (TypeError, ValueError):
                raise ValueError(f"{self.id}: requirement_value must be numeric for {self.requirement_type.value}")
            if value < 1:
                raise ValueError(f"{self.id}: requirement_value must be >= 1")
        elif self.requirement_type is RequirementType.TIME_BASED:
            if str(self.requirement_value) not in TIME_WINDOWS:
                raise ValueError(f"{self.id}: time window must be one of {sorted(TIME_WINDOWS)}")
        return self

    @property
    def threshold(self) -> int:
        """Numeric target: the value itself, or the number of distinct modules."""
        if isinstance(self.requirement_value, list):
            return len(self.module_ids)
        return int(self.requirement_value)

    @property
    def module_ids(self) -> Tuple[str, ...]:
        if not isinstance(self.requirement_value, list):
            return ()
        return tuple(dict.fromkeys(str(m).strip() for m in self.requirement_value))

    @property
    def accumulates(self) -> bool:
        return self.requirement_type in COUNTER_REQUIREMENTS


class AchievementCatalog:
    """Read-only list of definitions, optionally filtered by category."""

    def __init__(self, definitions: Iterable[AchievementDefinition]) -> None:
        self._defs: Dict[str, AchievementDefinition] = {}
        for d in definitions:
            if d.id in self._defs:
                raise ValueError(f"duplicate achievement id: {d.id}")
            self._defs[d.id] = d

    def __len__(self) -> int:
        return len(self._defs)

    def __iter__(self):
        return iter(self._defs.values())

    def get(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self._defs.get(achievement_id)

    def list_achievements(self, category: Optional[str] = None) -> List[AchievementDefinition]:
        defs = list(self._defs.values())
        if category is None:
            return defs
        return [d for d in defs if d.category == category]

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "AchievementCatalog":
        return cls(AchievementDefinition.model_validate(r) for r in records)


def load_catalog(path: Optional[str | Path] = None) -> AchievementCatalog:
    """Load a catalog YAML file (``achievements:`` list); package default when None."""
    data = load_yaml(Path(path) if path else DEFAULT_CATALOG)
    records = data.get("achievements", []) if isinstance(data, dict) else data
    return AchievementCatalog.from_records(records or [])
