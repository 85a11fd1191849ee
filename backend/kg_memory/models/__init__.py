"""Domain records for directive retrieval."""

from .budget import BudgetAllocationResult
from .context import (
    DetectionDiagnostics,
    LayerAlternative,
    ProviderContext,
    TaskContext,
    clamp_confidence,
)
from .directive import SEVERITY_ORDER, Directive, ScoreBreakdown, ScoredDirective, Severity

__all__ = [
    "SEVERITY_ORDER",
    "BudgetAllocationResult",
    "DetectionDiagnostics",
    "Directive",
    "LayerAlternative",
    "ProviderContext",
    "ScoreBreakdown",
    "ScoredDirective",
    "Severity",
    "TaskContext",
    "clamp_confidence",
]
