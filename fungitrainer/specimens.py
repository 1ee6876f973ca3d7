from __future__ import annotations

"""Specimen catalog: read-only lookup of specimen records loaded from a YAML deck."""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .config.config import load_yaml
from .models import SpecimenRecord

# quality_score bands: easy >= 0.7, medium [0.4, 0.7), hard < 0.4
EASY_MIN_QUALITY = 0.7
MEDIUM_MIN_QUALITY = 0.4


class SpecimenSource(Protocol):
    def get_specimen(self, specimen_id: str) -> SpecimenRecord: ...


def _matches_difficulty(s: SpecimenRecord, difficulty: str) -> bool:
    if difficulty == "all":
        return True
    if s.quality_score is None:
        return False
    if difficulty == "easy":
        return s.quality_score >= EASY_MIN_QUALITY
    if difficulty == "medium":
        return MEDIUM_MIN_QUALITY <= s.quality_score < EASY_MIN_QUALITY
    if difficulty == "hard":
        return s.quality_score < MEDIUM_MIN_QUALITY
    raise ValueError(f"Unknown difficulty: {difficulty}")


class SpecimenCatalog:
    def __init__(self, specimens: Iterable[SpecimenRecord]) -> None:
        self._by_id: Dict[str, SpecimenRecord] = {}
        for s in specimens:
            self._by_id[s.id] = s

    def __len__(self) -> int:
        return len(self._by_id)

    def get_specimen(self, specimen_id: str) -> SpecimenRecord:
        try:
            return self._by_id[str(specimen_id)]
        except KeyError:
            raise KeyError(f"Unknown specimen id: {specimen_id}") from None

    def all(self) -> List[SpecimenRecord]:
        return list(self._by_id.values())

    def filter(self, difficulty: str = "all", genus: Optional[str] = None) -> List[SpecimenRecord]:
        out = [s for s in self._by_id.values() if _matches_difficulty(s, difficulty)]
        if genus:
            out = [s for s in out if s.genus.lower() == genus.lower()]
        return out

    def species_names(self) -> List[str]:
        return sorted({s.species_name for s in self._by_id.values() if s.species_name})

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "SpecimenCatalog":
        return cls(SpecimenRecord.from_dict(r) for r in records)


def load_deck(path: str | Path) -> SpecimenCatalog:
    """Load a deck file: either a list of specimens or ``{specimens: [...]}``."""
    data = load_yaml(Path(path))
    records = data.get("specimens", []) if isinstance(data, dict) else data
    return SpecimenCatalog.from_records(records or [])
