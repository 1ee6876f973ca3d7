from __future__ import annotations

"""Study session: orchestrates grading, hint progression, stats and achievements.

One StudySession owns one SessionStats and the question in progress. Its
public mutators take a per-session lock, so double submits from concurrent
request threads are applied one after another. Sessions share nothing with
each other; achievement idempotency across sessions is the progress store's
job.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from ..achievements.evaluator import AchievementEvaluator, Award
from ..errors import SessionError
from ..events import AnswerGraded, DomainEvent, ModuleCompleted, SessionCompleted, Timestamped
from ..grading.grader import GradingPolicy
from ..models import SpecimenRecord
from ..policy.hint_machine import Decision, HintPolicy, QuestionAttempt
from ..stats.stats import SessionStats, SessionSummary, apply, genus_events
from ..storage.schema import SessionSummaryRow
from .explain import trace as xtrace


@dataclass(frozen=True)
class SessionContext:
    session_id: str
    user_id: str
    started_at: datetime
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RuntimeState:
    index: int = 0
    ended_at: Optional[datetime] = None


@dataclass(frozen=True)
class StepOutcome:
    decision: Decision
    awards: List[Award] = field(default_factory=list)


class StudySession:
    def __init__(
        self,
        user_id: str,
        evaluator: Optional[AchievementEvaluator] = None,
        cfg: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.user_id = user_id
        self.evaluator = evaluator
        self.cfg = cfg or {}
        self.grading = GradingPolicy.from_config(self.cfg)
        self.hint_policy = HintPolicy.from_config(self.cfg)
        self.genus_min_attempts = int((self.cfg.get("achievements", {}) or {}).get("genus_min_attempts", 1))
        self.ctx: Optional[SessionContext] = None
        self.state = RuntimeState()
        self.stats = SessionStats()
        self.current: Optional[QuestionAttempt] = None
        # events not yet accepted by the evaluator, oldest first
        self.pending: List[DomainEvent] = []
        self._ready: List[Award] = []
        self._lock = threading.Lock()

    def _award(self, events: List[DomainEvent]) -> List[Award]:
        if self.evaluator is None:
            return []
        self.pending.extend(events)
        return self._flush()

    def _flush(self) -> List[Award]:
        # an event leaves the queue only once process() has returned for it
        while self.pending:
            self._ready.extend(self.evaluator.process(self.user_id, self.pending[0]))
            self.pending.pop(0)
        awards, self._ready = self._ready, []
        return awards

    def retry_awards(self) -> List[Award]:
        """Re-deliver events left pending by a failed award write.

        The next step that produces events flushes them too; this also works
        after ``end()``.
        Storage errors propagate; the failed event stays queued.
        """
        with self._lock:
            if self.evaluator is None:
                return []
            return self._flush()

    def _require_active(self) -> SessionContext:
        if self.ctx is None:
            raise SessionError("session not started")
        if self.state.ended_at is not None:
            raise SessionError("session already ended")
        return self.ctx

    def _require_question(self) -> QuestionAttempt:
        self._require_active()
        if self.current is None or self.current.resolved:
            raise SessionError("no question in progress")
        return self.current

    def start(self, now: Optional[datetime] = None, params: Optional[Dict[str, Any]] = None) -> List[Award]:
        """Start the session; the start time feeds time-of-day achievements."""
        with self._lock:
            if self.ctx is not None:
                raise SessionError("session already started")
            started = now or datetime.now()
            self.ctx = SessionContext(
                session_id=str(uuid4()),
                user_id=self.user_id,
                started_at=started,
                params=dict(params or {}),
            )
            xtrace("session_started", {"session": self.ctx.session_id, "user": self.user_id})
            return self._award([Timestamped.at(started)])

    def begin_question(self, specimen: SpecimenRecord) -> QuestionAttempt:
        with self._lock:
            self._require_active()
            if self.current is not None and not self.current.resolved:
                raise SessionError(f"question {self.current.specimen.id} is still in progress")
            self.state.index += 1
            self.current = QuestionAttempt.start(specimen, self.grading, self.hint_policy)
            return self.current

    def _resolve(self, attempt: QuestionAttempt, decision: Decision) -> List[Award]:
        result = decision.result
        assert result is not None and attempt.resolved
        events: List[DomainEvent] = [AnswerGraded(result=result, specimen=attempt.specimen)]
        events.extend(apply(self.stats, result, attempt.specimen))
        xtrace("stats_updated", {"total": self.stats.total_count, "correct": self.stats.correct_count, "streak": self.stats.current_streak})
        return self._award(events)

    def submit(self, answer: str) -> StepOutcome:
        with self._lock:
            attempt = self._require_question()
            decision = attempt.submit(answer)
            awards = self._resolve(attempt, decision) if decision.resolved else []
            return StepOutcome(decision=decision, awards=awards)

    def request_hint(self) -> Decision:
        with self._lock:
            return self._require_question().request_hint()

    def dont_know(self) -> StepOutcome:
        with self._lock:
            attempt = self._require_question()
            decision = attempt.dont_know()
            return StepOutcome(decision=decision, awards=self._resolve(attempt, decision))

    def complete_module(self, module_id: str) -> List[Award]:
        with self._lock:
            self._require_active()
            return self._award([ModuleCompleted(module_id=module_id)])

    def end(self, now: Optional[datetime] = None) -> Tuple[SessionSummary, List[Award]]:
        """Close the session and return its summary plus end-of-session awards.

        A question still in progress is dropped without being counted.
        """
        with self._lock:
            self._require_active()
            self.state.ended_at = now or datetime.now()
            self.current = None
            summary = self.stats.snapshot()
            minutes = max(0, int((self.state.ended_at - self.ctx.started_at).total_seconds() // 60))
            events: List[DomainEvent] = list(genus_events(self.stats, self.genus_min_attempts))
            events.append(SessionCompleted(summary=summary, duration_minutes=minutes))
            xtrace("session_ended", {"session": self.ctx.session_id, "total": summary.total_count, "accuracy": summary.accuracy})
            return summary, self._award(events)

    def summary_row(self) -> SessionSummaryRow:
        """Summary in the persisted Parquet schema."""
        if self.ctx is None:
            raise SessionError("session not started")
        s = self.stats
        return SessionSummaryRow(
            session_id=self.ctx.session_id,
            user_id=self.user_id,
            session_start=self.ctx.started_at.astimezone(),
            total_count=s.total_count,
            correct_count=s.correct_count,
            cumulative_score=s.cumulative_score,
            longest_streak=s.longest_streak,
            accuracy=s.accuracy,
            avg_score=s.avg_score,
            hints_used=s.hints_used_total,
        )
