from __future__ import annotations

"""Session stats: running totals, streaks, per-genus buckets and formatting.

A SessionStats belongs to one study session and must have a single writer;
callers that may submit concurrently for the same session serialise calls
to ``apply`` (see StudySession).
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..events import DomainEvent, GenusSessionComplete, StreakUpdated
from ..grading.grader import GradingResult
from ..models import SpecimenRecord


def _ratio(num: int, den: int) -> int:
    if den <= 0:
        return 0
    # half-up, so 2.5 -> 3
    return int(math.floor(num / den + 0.5))


@dataclass(frozen=True)
class SessionSummary:
    """Read-only snapshot handed to the caller when a session ends."""

    correct_count: int
    total_count: int
    cumulative_score: int
    current_streak: int
    longest_streak: int
    accuracy: int
    avg_score: int
    hints_used_total: int = 0
    perfect_scores: int = 0
    no_hint_correct: int = 0
    unique_specimens: int = 0
    per_genus: Dict[str, Dict[str, int]] = field(default_factory=dict)


@dataclass
class SessionStats:
    correct_count: int = 0
    total_count: int = 0
    cumulative_score: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    hints_used_total: int = 0
    perfect_scores: int = 0
    no_hint_correct: int = 0
    specimens_studied: Set[str] = field(default_factory=set)
    per_genus: Dict[str, Dict[str, int]] = field(default_factory=dict)
    per_family: Dict[str, Dict[str, int]] = field(default_factory=dict)

    @property
    def accuracy(self) -> int:
        return _ratio(100 * self.correct_count, self.total_count)

    @property
    def avg_score(self) -> int:
        return _ratio(self.cumulative_score, self.total_count)

    def snapshot(self) -> SessionSummary:
        return SessionSummary(
            correct_count=self.correct_count,
            total_count=self.total_count,
            cumulative_score=self.cumulative_score,
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            accuracy=self.accuracy,
            avg_score=self.avg_score,
            hints_used_total=self.hints_used_total,
            perfect_scores=self.perfect_scores,
            no_hint_correct=self.no_hint_correct,
            unique_specimens=len(self.specimens_studied),
            per_genus={g: dict(b) for g, b in self.per_genus.items()},
        )


def new_session_stats() -> SessionStats:
    """Create a new, empty stats structure."""
    return SessionStats()


def _bump(buckets: Dict[str, Dict[str, int]], key: str, correct: bool) -> None:
    bucket = buckets.setdefault(key, {"asked": 0, "correct": 0})
    bucket["asked"] += 1
    bucket["correct"] += 1 if correct else 0


def apply(stats: SessionStats, result: GradingResult, specimen: Optional[SpecimenRecord] = None) -> List[DomainEvent]:
    """Fold one resolved question into ``stats`` (in place).

    Only final results belong here: a wrong attempt that re-prompts is not
    a resolution. Returns a StreakUpdated event when the streak changed.
    """
    before = stats.current_streak
    stats.total_count += 1
    stats.cumulative_score += int(result.final_score)
    stats.hints_used_total += int(result.hints_used)
    if result.is_correct:
        stats.correct_count += 1
        stats.current_streak += 1
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)
        if result.hints_used == 0:
            stats.no_hint_correct += 1
        if result.final_score == 100:
            stats.perfect_scores += 1
    else:
        stats.current_streak = 0

    if specimen is not None:
        stats.specimens_studied.add(specimen.id)
        if specimen.genus:
            _bump(stats.per_genus, specimen.genus, result.is_correct)
        if specimen.family:
            _bump(stats.per_family, specimen.family, result.is_correct)

    if stats.current_streak != before:
        return [StreakUpdated(streak=stats.current_streak)]
    return []


def genus_events(stats: SessionStats, min_attempts: int = 1) -> List[GenusSessionComplete]:
    """One GenusSessionComplete per genus studied at least ``min_attempts`` times."""
    out = []
    for genus in sorted(stats.per_genus):
        bucket = stats.per_genus[genus]
        asked = int(bucket.get("asked", 0))
        if asked < max(min_attempts, 1):
            continue
        out.append(
            GenusSessionComplete(
                genus=genus,
                accuracy=_ratio(100 * int(bucket.get("correct", 0)), asked),
                attempts=asked,
            )
        )
    return out


def weak_areas(stats: SessionStats, min_attempts: int = 4) -> List[str]:
    """Families studied at least ``min_attempts`` times with below-session accuracy."""
    overall = stats.accuracy
    weak = []
    for family, bucket in stats.per_family.items():
        asked = int(bucket.get("asked", 0))
        if asked < min_attempts:
            continue
        if _ratio(100 * int(bucket.get("correct", 0)), asked) < overall:
            weak.append(family)
    return sorted(weak)


def format_summary(stats: SessionStats | SessionSummary) -> str:
    """Return a human-readable summary of stats."""
    lines = [
        f"Total: {stats.correct_count}/{stats.total_count} correct ({stats.accuracy}%)",
        f"Score: {stats.cumulative_score} (avg {stats.avg_score})",
        f"Longest streak: {stats.longest_streak}",
    ]
    for genus in sorted(stats.per_genus):
        b = stats.per_genus[genus]
        lines.append(f"{genus}: {b.get('correct', 0)}/{b.get('asked', 0)}")
    return "\n".join(lines)
