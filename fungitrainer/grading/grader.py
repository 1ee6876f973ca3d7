from __future__ import annotations

"""Answer grading: tiered partial credit for a free-text taxonomic guess.

Tier order is significant. Species and common-name checks run before the
substring-based genus/family checks so that a full binomial is never scored
as a genus-only answer. Genus and family are never fuzzy-matched.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..matching.similarity import normalize, similarity
from ..models import SpecimenRecord


class MatchTier(str, Enum):
    EXACT_SPECIES = "species_exact"
    FUZZY_SPECIES = "species_fuzzy"
    COMMON_NAME = "common_name"
    GENUS_PLUS_EPITHET = "genus_partial"
    GENUS_ONLY = "genus_only"
    FAMILY_ONLY = "family_only"
    NO_MATCH = "none"


BASE_SCORES: Dict[MatchTier, int] = {
    MatchTier.EXACT_SPECIES: 100,
    MatchTier.FUZZY_SPECIES: 95,
    MatchTier.COMMON_NAME: 90,
    MatchTier.GENUS_PLUS_EPITHET: 60,
    MatchTier.GENUS_ONLY: 50,
    MatchTier.FAMILY_ONLY: 30,
    MatchTier.NO_MATCH: 0,
}

CORRECT_TIERS = frozenset({MatchTier.EXACT_SPECIES, MatchTier.FUZZY_SPECIES, MatchTier.COMMON_NAME})


@dataclass(frozen=True)
class GradingPolicy:
    """Tunables for grading; defaults match the shipped config."""

    fuzzy_threshold: float = 0.85
    penalty_per_hint: int = 5
    max_penalty: int = 40

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "GradingPolicy":
        g = cfg.get("grading", {}) or {}
        return cls(
            fuzzy_threshold=float(g.get("fuzzy_threshold", 0.85)),
            penalty_per_hint=int(g.get("penalty_per_hint", 5)),
            max_penalty=int(g.get("max_penalty", 40)),
        )


DEFAULT_POLICY = GradingPolicy()


@dataclass(frozen=True)
class GradingResult:
    """Outcome of one grading attempt. Never mutated after creation."""

    is_correct: bool
    match_tier: MatchTier
    base_score: int
    hint_penalty: int
    final_score: int
    hints_used: int = 0
    feedback: str = ""

    @property
    def feedback_tier(self) -> MatchTier:
        return self.match_tier

    def as_dict(self) -> Dict[str, Any]:
        return {
            "is_correct": self.is_correct,
            "match_tier": self.match_tier.value,
            "base_score": self.base_score,
            "hint_penalty": self.hint_penalty,
            "final_score": self.final_score,
            "hints_used": self.hints_used,
        }


def hint_penalty(hints_used: int, policy: GradingPolicy = DEFAULT_POLICY) -> int:
    """Penalty for hints revealed before the attempt, capped at ``max_penalty``."""
    return min(max(int(hints_used), 0) * policy.penalty_per_hint, policy.max_penalty)


def final_score(base_score: int, hints_used: int, policy: GradingPolicy = DEFAULT_POLICY) -> int:
    return max(base_score - hint_penalty(hints_used, policy), 0)


def _feedback(tier: MatchTier, specimen: SpecimenRecord) -> str:
    if tier is MatchTier.EXACT_SPECIES:
        return "Perfect! Complete species identification!"
    if tier is MatchTier.FUZZY_SPECIES:
        return "Correct! (Minor spelling variation accepted)"
    if tier is MatchTier.COMMON_NAME:
        return "Correct! You identified it by common name!"
    if tier is MatchTier.GENUS_PLUS_EPITHET:
        return f'Good! Genus "{specimen.genus}" is correct, but wrong species epithet.'
    if tier is MatchTier.GENUS_ONLY:
        return f'Partial credit: Genus "{specimen.genus}" is correct. Need full species name.'
    if tier is MatchTier.FAMILY_ONLY:
        return f'You identified the family "{specimen.family}". Try to get more specific.'
    return "Not quite. Try using the hints!"


def classify(answer: str, specimen: SpecimenRecord, policy: GradingPolicy = DEFAULT_POLICY) -> MatchTier:
    """Return the first tier the answer reaches, in ladder order."""
    cleaned = normalize(answer)
    if not cleaned or not specimen.is_complete:
        return MatchTier.NO_MATCH
    species = normalize(specimen.species_name)
    genus = normalize(specimen.genus)
    family = normalize(specimen.family)
    common = normalize(specimen.common_name)

    if cleaned == species:
        return MatchTier.EXACT_SPECIES
    if similarity(cleaned, species) > policy.fuzzy_threshold:
        return MatchTier.FUZZY_SPECIES
    if common and cleaned == common:
        return MatchTier.COMMON_NAME
    if genus in cleaned and len(cleaned.split()) > 1:
        return MatchTier.GENUS_PLUS_EPITHET
    if cleaned == genus:
        return MatchTier.GENUS_ONLY
    if cleaned == family or family in cleaned:
        return MatchTier.FAMILY_ONLY
    return MatchTier.NO_MATCH


def grade(
    raw_answer: Optional[str],
    specimen: SpecimenRecord,
    hints_used: int = 0,
    policy: GradingPolicy = DEFAULT_POLICY,
) -> GradingResult:
    """Grade ``raw_answer`` against ``specimen``.

    Args:
        raw_answer: The user's free-text guess. Blank input grades as NO_MATCH.
        specimen: The specimen being identified.
        hints_used: Hints already revealed before this attempt.
        policy: Threshold and penalty settings.

    Returns:
        A fresh GradingResult. Never raises for bad input.
    """
    tier = classify(raw_answer or "", specimen, policy)
    base = BASE_SCORES[tier]
    penalty = hint_penalty(hints_used, policy)
    return GradingResult(
        is_correct=tier in CORRECT_TIERS,
        match_tier=tier,
        base_score=base,
        hint_penalty=penalty,
        final_score=max(base - penalty, 0),
        hints_used=max(int(hints_used), 0),
        feedback=_feedback(tier, specimen),
    )


def unanswered(specimen: SpecimenRecord, hints_used: int = 0, policy: GradingPolicy = DEFAULT_POLICY) -> GradingResult:
    """Zero-score result for an explicit "I don't know"."""
    return GradingResult(
        is_correct=False,
        match_tier=MatchTier.NO_MATCH,
        base_score=0,
        hint_penalty=hint_penalty(hints_used, policy),
        final_score=0,
        hints_used=max(int(hints_used), 0),
        feedback=f"The answer was {specimen.species_name}.",
    )
