from __future__ import annotations

"""Achievement rule evaluation.

``evaluate`` is pure: given one event, the catalog and the user's current
progress rows it says which achievements qualify or advance. The
``AchievementEvaluator`` then hands every decision to the progress store,
whose atomic upsert is the only place an award is actually made. The
progress snapshot read here may be stale; the store has the final word.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ..app.explain import trace as xtrace
from ..events import (
    EVENT_TYPES,
    AnswerGraded,
    DomainEvent,
    GenusSessionComplete,
    ModuleCompleted,
    SessionCompleted,
    StreakUpdated,
    Timestamped,
)
from ..storage.progress import AwardOutcome, ProgressStore
from ..storage.schema import ProgressRow
from .catalog import AchievementCatalog, AchievementDefinition, RequirementType

GENUS_ACCURACY_THRESHOLD = 90
# progress row holding the user's lifetime count of correct answers
CORRECT_ANSWERS_KEY = "__correct_answers__"
NIGHT_OWL_HOUR = 22
EARLY_BIRD_HOUR = 6


@dataclass(frozen=True)
class AwardDecision:
    """One achievement the event qualifies for or advances.

    ``earn`` marks an outright qualification. Counter rules carry
    ``increment``/``target`` and qualify once stored progress reaches target.
    """

    achievement_id: str
    points: int
    earn: bool = False
    increment: int = 0
    target: Optional[int] = None
    progress: int = 0
    dedup_key: Optional[str] = None

    @property
    def qualifies(self) -> bool:
        return self.earn or (self.target is not None and self.progress >= self.target)


@dataclass(frozen=True)
class Award:
    achievement_id: str
    name: str
    points: int
    earned_at: Optional[datetime]
    outcome: AwardOutcome


@dataclass(frozen=True)
class RuleContext:
    genus_accuracy_threshold: int = GENUS_ACCURACY_THRESHOLD
    prior_correct: int = 0


Rule = Callable[[AchievementDefinition, DomainEvent, Optional[ProgressRow], RuleContext], Optional[AwardDecision]]


def _earn(d: AchievementDefinition) -> AwardDecision:
    return AwardDecision(achievement_id=d.id, points=d.points, earn=True)


def _count(d: AchievementDefinition, row: Optional[ProgressRow], dedup_key: Optional[str] = None) -> AwardDecision:
    current = row.progress if row else 0
    return AwardDecision(
        achievement_id=d.id,
        points=d.points,
        increment=1,
        target=d.threshold,
        progress=current + 1,
        dedup_key=dedup_key,
    )


def _first_correct(d, event, row, ctx):
    if isinstance(event, AnswerGraded) and event.result.is_correct and ctx.prior_correct == 0:
        return _earn(d)
    return None


def _streak(d, event, row, _ctx):
    if isinstance(event, StreakUpdated) and event.streak >= d.threshold:
        return _earn(d)
    return None


def _genus_accuracy(d, event, row, ctx):
    if not isinstance(event, GenusSessionComplete):
        return None
    if event.genus.strip().lower() != str(d.requirement_value).strip().lower():
        return None
    if event.accuracy >= ctx.genus_accuracy_threshold and event.attempts >= d.min_attempts:
        return _earn(d)
    return None


def _module_complete(d, event, row, _ctx):
    if isinstance(event, ModuleCompleted) and event.module_id == str(d.requirement_value):
        return _earn(d)
    return None


def _dna_specialist(d, event, row, _ctx):
    if isinstance(event, AnswerGraded) and event.result.is_correct and event.specimen.dna_sequenced:
        return _count(d, row)
    return None


def _total_correct(d, event, row, _ctx):
    if isinstance(event, AnswerGraded) and event.result.is_correct:
        return _count(d, row)
    return None


def _time_based(d, event, row, _ctx):
    if not isinstance(event, Timestamped):
        return None
    window = str(d.requirement_value)
    if window == "night_owl" and event.hour >= NIGHT_OWL_HOUR:
        return _earn(d)
    if window == "early_bird" and event.hour < EARLY_BIRD_HOUR:
        return _earn(d)
    return None


def _perfect_session(d, event, row, _ctx):
    if not isinstance(event, SessionCompleted):
        return None
    s = event.summary
    if s.total_count >= d.threshold and s.correct_count == s.total_count:
        return _earn(d)
    return None


def _modules_complete(d, event, row, _ctx):
    # one step per distinct module, however often it is completed
    if isinstance(event, ModuleCompleted) and event.module_id in d.module_ids:
        return _count(d, row, dedup_key=f"module:{event.module_id}")
    return None


def _toxic_species(d, event, row, _ctx):
    if isinstance(event, AnswerGraded) and event.result.is_correct and event.specimen.is_toxic:
        return _count(d, row)
    return None


def _marathon_duration(d, event, row, _ctx):
    if isinstance(event, SessionCompleted) and event.duration_minutes >= d.threshold:
        return _earn(d)
    return None


RULES: Dict[RequirementType, Rule] = {
    RequirementType.FIRST_CORRECT: _first_correct,
    RequirementType.STREAK: _streak,
    RequirementType.GENUS_ACCURACY: _genus_accuracy,
    RequirementType.MODULE_COMPLETE: _module_complete,
    RequirementType.DNA_SPECIALIST: _dna_specialist,
    RequirementType.TIME_BASED: _time_based,
    RequirementType.TOTAL_CORRECT: _total_correct,
    RequirementType.PERFECT_SESSION: _perfect_session,
    RequirementType.MODULES_COMPLETE: _modules_complete,
    RequirementType.TOXIC_SPECIES: _toxic_species,
    RequirementType.MARATHON_DURATION: _marathon_duration,
}


def evaluate(
    event: DomainEvent,
    catalog: Iterable[AchievementDefinition],
    user_progress: Mapping[str, ProgressRow],
    genus_accuracy_threshold: int = GENUS_ACCURACY_THRESHOLD,
) -> List[AwardDecision]:
    """Return decisions for every unearned achievement the event touches.

    ``first_correct`` only qualifies while the user's recorded count of
    correct answers (the ``CORRECT_ANSWERS_KEY`` row) is still zero.

    Raises:
        TypeError: ``event`` is not one of the known domain event types.
    """
    if not isinstance(event, EVENT_TYPES):
        raise TypeError(f"unsupported event type: {type(event).__name__}")
    counter = user_progress.get(CORRECT_ANSWERS_KEY)
    ctx = RuleContext(
        genus_accuracy_threshold=genus_accuracy_threshold,
        prior_correct=counter.progress if counter else 0,
    )
    decisions = []
    for d in catalog:
        row = user_progress.get(d.id)
        if row is not None and row.earned:
            continue
        decision = RULES[d.requirement_type](d, event, row, ctx)
        if decision is not None:
            decisions.append(decision)
    return decisions


class AchievementEvaluator:
    """Applies rule decisions for one event through an idempotent progress store."""

    def __init__(
        self,
        catalog: AchievementCatalog,
        store: ProgressStore,
        genus_accuracy_threshold: int = GENUS_ACCURACY_THRESHOLD,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.genus_accuracy_threshold = genus_accuracy_threshold

    def process(self, user_id: str, event: DomainEvent, now: Optional[datetime] = None) -> List[Award]:
        """Evaluate ``event`` for ``user_id`` and persist the outcome.

        Safe to call again with the same event: already-earned achievements
        and already-applied event ids are no-ops. Storage errors propagate so
        the caller can replay the event later.
        """
        progress = self.store.list_progress(user_id)
        decisions = evaluate(event, self.catalog, progress, self.genus_accuracy_threshold)
        awards = []
        for dec in decisions:
            res = self.store.upsert_progress(
                user_id,
                dec.achievement_id,
                increment=dec.increment,
                target=dec.target,
                earn=dec.earn,
                event_id=dec.dedup_key or event.event_id,
                now=now,
            )
            xtrace(
                "achievement_upsert",
                {"user": user_id, "achievement": dec.achievement_id, "outcome": res.outcome.value, "earned": res.newly_earned},
            )
            if res.newly_earned:
                d = self.catalog.get(dec.achievement_id)
                awards.append(
                    Award(
                        achievement_id=dec.achievement_id,
                        name=d.name if d else dec.achievement_id,
                        points=dec.points,
                        earned_at=res.row.earned_at if res.row else None,
                        outcome=res.outcome,
                    )
                )
        if isinstance(event, AnswerGraded) and event.result.is_correct:
            # bumped after the award upserts; no event id, so it keeps no markers
            self.store.upsert_progress(user_id, CORRECT_ANSWERS_KEY, increment=1, now=now)
        return awards

    def process_all(self, user_id: str, events: Iterable[DomainEvent], now: Optional[datetime] = None) -> List[Award]:
        awards = []
        for event in events:
            awards.extend(self.process(user_id, event, now=now))
        return awards


def total_points(awards: Iterable[Award]) -> int:
    return sum(a.points for a in awards)
