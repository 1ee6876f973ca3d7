"""fungitrainer: answer scoring, hint progression and achievement rules for
a mushroom-identification flashcard trainer."""

from __future__ import annotations

__version__ = "0.1.0"

from .achievements import AchievementCatalog, AchievementDefinition, AchievementEvaluator, RequirementType, evaluate, load_catalog
from .app.session_manager import StudySession
from .errors import ConfigError, FungiTrainerError, HintStateError, SessionError
from .events import (
    AnswerGraded,
    DomainEvent,
    GenusSessionComplete,
    ModuleCompleted,
    SessionCompleted,
    StreakUpdated,
    Timestamped,
)
from .grading.grader import GradingPolicy, GradingResult, MatchTier, grade
from .matching.similarity import levenshtein, similarity, suggest_corrections
from .models import SpecimenRecord
from .policy.hint_machine import Decision, HintState, QuestionAttempt
from .specimens import SpecimenCatalog, load_deck
from .stats.stats import SessionStats, SessionSummary, apply

__all__ = [
    "__version__",
    "AchievementCatalog",
    "AchievementDefinition",
    "AchievementEvaluator",
    "RequirementType",
    "evaluate",
    "load_catalog",
    "StudySession",
    "ConfigError",
    "FungiTrainerError",
    "HintStateError",
    "SessionError",
    "AnswerGraded",
    "DomainEvent",
    "GenusSessionComplete",
    "ModuleCompleted",
    "SessionCompleted",
    "StreakUpdated",
    "Timestamped",
    "GradingPolicy",
    "GradingResult",
    "MatchTier",
    "grade",
    "levenshtein",
    "similarity",
    "suggest_corrections",
    "SpecimenRecord",
    "Decision",
    "HintState",
    "QuestionAttempt",
    "SpecimenCatalog",
    "load_deck",
    "SessionStats",
    "SessionSummary",
    "apply",
]
