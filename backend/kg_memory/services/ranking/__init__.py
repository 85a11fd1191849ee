"""Directive scoring, ranking and budget allocation."""

from .authority import RuleAuthorityIndex
from .budget import (
    CharTokenEstimator,
    TiktokenEstimator,
    TokenBudgetAllocator,
    TokenEstimator,
    estimator_for,
)
from .config import (
    ModeBoost,
    RankingConfig,
    ScoringWeights,
    SeverityMultipliers,
    TokenEstimation,
)
from .engine import RankingEngine, SeverityGroups
from .scoring import ScoreResult, calculate_score

__all__ = [
    "CharTokenEstimator",
    "ModeBoost",
    "RankingConfig",
    "RankingEngine",
    "RuleAuthorityIndex",
    "ScoreResult",
    "ScoringWeights",
    "SeverityGroups",
    "SeverityMultipliers",
    "TiktokenEstimator",
    "TokenBudgetAllocator",
    "TokenEstimation",
    "TokenEstimator",
    "calculate_score",
    "estimator_for",
]
