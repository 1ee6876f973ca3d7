"""Answer grading (tiered partial credit)."""

from .grader import GradingResult, MatchTier, grade  # noqa: F401
