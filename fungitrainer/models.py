from __future__ import annotations

"""Specimen records shared by the grader, stats and achievement rules."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SpecimenRecord:
    """One catalogued specimen. Read-only input owned by the specimen catalog."""

    id: str
    species_name: str
    genus: str
    family: str
    common_name: Optional[str] = None
    dna_sequenced: bool = False
    quality_score: Optional[float] = None
    is_toxic: bool = False

    @property
    def is_complete(self) -> bool:
        """True when every field needed for grading is non-blank."""
        return all(str(v or "").strip() for v in (self.species_name, self.genus, self.family))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpecimenRecord":
        qs = data.get("quality_score")
        return cls(
            id=str(data["id"]),
            species_name=str(data.get("species_name") or ""),
            genus=str(data.get("genus") or ""),
            family=str(data.get("family") or ""),
            common_name=data.get("common_name") or None,
            dna_sequenced=bool(data.get("dna_sequenced", False)),
            quality_score=float(qs) if qs is not None else None,
            is_toxic=bool(data.get("is_toxic", False)),
        )
