from __future__ import annotations

"""Per-question hint progression and attempt resolution.

A question starts ANSWERING. A wrong answer reveals one more hint and
re-prompts until no hint is left, at which point the question resolves
incorrect and the species guide is shown. Manual hint requests spend from
the same budget of four.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional

from ..app.explain import trace as xtrace
from ..errors import HintStateError
from ..grading.grader import DEFAULT_POLICY, GradingPolicy, GradingResult, grade, unanswered
from ..models import SpecimenRecord

MAX_HINTS = 4


@dataclass(frozen=True)
class HintPolicy:
    max_hints: int = MAX_HINTS

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "HintPolicy":
        return cls(max_hints=int((cfg.get("hints", {}) or {}).get("max_hints", MAX_HINTS)))


@dataclass
class HintState:
    auto_hint_level: int = 0
    manual_hint_level: int = 0
    max_hints: int = MAX_HINTS

    @property
    def hints_used(self) -> int:
        return self.auto_hint_level + self.manual_hint_level

    @property
    def exhausted(self) -> bool:
        return self.hints_used >= self.max_hints

    def check(self) -> None:
        if self.auto_hint_level < 0 or self.manual_hint_level < 0:
            raise HintStateError(f"negative hint level: {self!r}")
        if self.hints_used > self.max_hints:
            raise HintStateError(f"hint levels exceed {self.max_hints}: {self!r}")

    def reveal_auto(self) -> None:
        if self.exhausted:
            raise HintStateError("no hints left to reveal")
        self.auto_hint_level += 1
        self.check()

    def reveal_manual(self) -> bool:
        if self.exhausted:
            return False
        self.manual_hint_level += 1
        self.check()
        return True

    def reset(self) -> None:
        self.auto_hint_level = 0
        self.manual_hint_level = 0


class Phase(str, Enum):
    ANSWERING = "answering"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class Decision:
    """What the caller should do after an action.

    ``next``: resolved correct; ``retry``: clear the answer and re-prompt;
    ``reveal``: resolved incorrect, show the species guide; ``hint``: a
    manual hint was (or could not be) revealed.
    """

    action: Literal["next", "retry", "reveal", "hint"]
    hints_used: int
    result: Optional[GradingResult] = None
    show_guide: bool = False

    @property
    def resolved(self) -> bool:
        return self.action in ("next", "reveal")


@dataclass
class QuestionAttempt:
    specimen: SpecimenRecord
    grading: GradingPolicy = DEFAULT_POLICY
    hints: HintState = field(default_factory=HintState)
    phase: Phase = Phase.ANSWERING
    attempts: int = 0
    answer: str = ""
    final: Optional[GradingResult] = None
    show_guide: bool = False

    @classmethod
    def start(
        cls,
        specimen: SpecimenRecord,
        grading: GradingPolicy = DEFAULT_POLICY,
        hint_policy: HintPolicy = HintPolicy(),
    ) -> "QuestionAttempt":
        attempt = cls(specimen=specimen, grading=grading, hints=HintState(max_hints=hint_policy.max_hints))
        xtrace("question_started", {"specimen": specimen.id})
        return attempt

    @property
    def resolved(self) -> bool:
        return self.phase is Phase.RESOLVED

    def _require_answering(self, action: str) -> None:
        if self.resolved:
            raise HintStateError(f"{action} after question {self.specimen.id} was resolved")

    def _resolve(self, result: GradingResult, show_guide: bool) -> None:
        self.phase = Phase.RESOLVED
        self.final = result
        self.show_guide = show_guide
        xtrace(
            "question_resolved",
            {"specimen": self.specimen.id, "correct": result.is_correct, "score": result.final_score, "guide": show_guide},
        )

    def submit(self, answer: str) -> Decision:
        """Grade ``answer`` using the hints revealed so far and advance the machine."""
        self._require_answering("submit")
        self.attempts += 1
        self.answer = answer
        used = self.hints.hints_used
        result = grade(answer, self.specimen, used, self.grading)
        xtrace("graded", {"specimen": self.specimen.id, "attempt": self.attempts, **result.as_dict()})

        if result.is_correct:
            self._resolve(result, show_guide=False)
            return Decision(action="next", hints_used=used, result=result)

        if not self.hints.exhausted:
            self.hints.reveal_auto()
            self.answer = ""
            xtrace("hint_revealed", {"specimen": self.specimen.id, "auto": self.hints.auto_hint_level, "manual": self.hints.manual_hint_level})
            return Decision(action="retry", hints_used=self.hints.hints_used, result=result)

        self._resolve(result, show_guide=True)
        return Decision(action="reveal", hints_used=used, result=result, show_guide=True)

    def request_hint(self) -> Decision:
        """Reveal one manual hint if the budget allows; the phase is unchanged."""
        self._require_answering("hint request")
        revealed = self.hints.reveal_manual()
        if revealed:
            xtrace("hint_revealed", {"specimen": self.specimen.id, "auto": self.hints.auto_hint_level, "manual": self.hints.manual_hint_level})
        return Decision(action="hint", hints_used=self.hints.hints_used)

    def dont_know(self) -> Decision:
        self._require_answering("dont_know")
        used = self.hints.hints_used
        result = unanswered(self.specimen, used, self.grading)
        self._resolve(result, show_guide=True)
        return Decision(action="reveal", hints_used=used, result=result, show_guide=True)
