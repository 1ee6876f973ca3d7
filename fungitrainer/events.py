from __future__ import annotations

"""Domain events consumed by the achievement evaluator.

The set of event classes is closed: the evaluator dispatches on exactly
these types and rejects anything else. Every event carries an
``event_id``; redelivering the same event (same id) must not change
progress twice.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Union
from uuid import uuid4

from .grading.grader import GradingResult
from .models import SpecimenRecord

if TYPE_CHECKING:  # pragma: no cover
    from .stats.stats import SessionSummary


def _new_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class AnswerGraded:
    result: GradingResult
    specimen: SpecimenRecord
    event_id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class StreakUpdated:
    streak: int
    event_id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class GenusSessionComplete:
    genus: str
    accuracy: int
    attempts: int = 0
    event_id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class ModuleCompleted:
    module_id: str
    event_id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class Timestamped:
    hour: int
    event_id: str = field(default_factory=_new_id)

    @classmethod
    def at(cls, when: datetime) -> "Timestamped":
        return cls(hour=when.hour)


@dataclass(frozen=True)
class SessionCompleted:
    summary: "SessionSummary"
    duration_minutes: int = 0
    event_id: str = field(default_factory=_new_id)


DomainEvent = Union[AnswerGraded, StreakUpdated, GenusSessionComplete, ModuleCompleted, Timestamped, SessionCompleted]

EVENT_TYPES = (AnswerGraded, StreakUpdated, GenusSessionComplete, ModuleCompleted, Timestamped, SessionCompleted)
