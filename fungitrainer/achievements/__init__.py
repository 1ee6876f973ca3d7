from .catalog import (
    AchievementCatalog,
    AchievementDefinition,
    RequirementType,
    load_catalog,
)
from .evaluator import (
    AchievementEvaluator,
    Award,
    AwardDecision,
    evaluate,
    total_points,
)

__all__ = [
    "AchievementCatalog",
    "AchievementDefinition",
    "RequirementType",
    "load_catalog",
    "AchievementEvaluator",
    "Award",
    "AwardDecision",
    "evaluate",
    "total_points",
]
