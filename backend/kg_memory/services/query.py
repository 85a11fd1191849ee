"""Query pipeline: detect, score, adjust for mode, group, budget.

One call is stateless given its inputs; the ranking config and vocabulary
are read-only and shared between concurrent queries.
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from kg_memory.constants import DEFAULT_MAX_ITEMS, DEFAULT_TOKEN_BUDGET, WILDCARD_LAYER
from kg_memory.models import (
    BudgetAllocationResult,
    Directive,
    ScoredDirective,
    Severity,
    TaskContext,
)
from kg_memory.services.context_detection import ContextDetectionEngine, DetectionOptions
from kg_memory.services.ranking import RankingEngine, TokenBudgetAllocator
from kg_memory.services.telemetry import traced_span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryOptions:
    mode_slug: str | None = None
    max_items: int | None = None
    token_budget: int | None = None
    severity_filter: frozenset[Severity] = frozenset()
    # Keep only directives tagged for the detected layer (or untagged)
    strict_layer: bool = False


@dataclass(frozen=True)
class QueryDiagnostics:
    """Timings and provenance for one query."""

    query_time_ms: float
    context_detection_time_ms: float
    ranking_time_ms: float
    total_directives: int
    returned_directives: int
    confidence: float
    model_provider: str | None
    fallback_used: bool
    insufficient_context: bool = False
    budget_exhausted: bool = False
    tokens_used: int = 0
    budget_remaining: int = 0
    severity_counts: dict[str, int] = field(default_factory=dict)
    provider_errors: dict[str, str] = field(default_factory=dict)
    cache_hit: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "query_time_ms": round(self.query_time_ms, 2),
            "context_detection_time_ms": round(self.context_detection_time_ms, 2),
            "ranking_time_ms": round(self.ranking_time_ms, 2),
            "total_directives": self.total_directives,
            "returned_directives": self.returned_directives,
            "confidence": round(self.confidence, 3),
            "model_provider": self.model_provider,
            "fallback_used": self.fallback_used,
            "insufficient_context": self.insufficient_context,
            "budget_exhausted": self.budget_exhausted,
            "tokens_used": self.tokens_used,
            "budget_remaining": self.budget_remaining,
            "severity_counts": dict(self.severity_counts),
            "provider_errors": dict(self.provider_errors),
            "cache_hit": self.cache_hit,
        }


@dataclass(frozen=True)
class QueryResult:
    selected: tuple[ScoredDirective, ...]
    context: TaskContext
    diagnostics: QueryDiagnostics
    allocation: BudgetAllocationResult


def _ms_since(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _applies_to_layer(directive: Directive, layer: str) -> bool:
    return not directive.layers or WILDCARD_LAYER in directive.layers or layer in directive.layers


class QueryOrchestrator:
    """Runs the full retrieval pipeline for one task."""

    def __init__(
        self,
        detector: ContextDetectionEngine,
        ranking_engine: RankingEngine,
        allocator: TokenBudgetAllocator,
        default_token_budget: int = DEFAULT_TOKEN_BUDGET,
        default_max_items: int = DEFAULT_MAX_ITEMS,
    ):
        self._detector = detector
        self._ranking = ranking_engine
        self._allocator = allocator
        self._default_token_budget = default_token_budget
        self._default_max_items = default_max_items

    async def query(
        self,
        task_text: str,
        candidate_pool: Sequence[Directive],
        options: QueryOptions | None = None,
    ) -> QueryResult:
        """Select the directives that matter for ``task_text``.

        Never raises for an empty pool or zero matches; the selection is
        simply empty.
        """
        options = options or QueryOptions()
        query_start = time.perf_counter()

        with traced_span("kg_memory.query", {"candidates": len(candidate_pool)}) as span:
            detect_start = time.perf_counter()
            with traced_span("kg_memory.detect_context"):
                context = await self._detector.detect_context(
                    task_text, DetectionOptions(return_keywords=True)
                )
            detection_ms = _ms_since(detect_start)

            rank_start = time.perf_counter()
            with traced_span("kg_memory.rank"):
                candidates = [
                    d
                    for d in candidate_pool
                    if not options.severity_filter or d.severity in options.severity_filter
                ]
                if options.strict_layer and context.layer != WILDCARD_LAYER:
                    candidates = [d for d in candidates if _applies_to_layer(d, context.layer)]
                scored = self._ranking.score_directives(candidates, context)
                scored = self._ranking.apply_mode_adjustments(scored, options.mode_slug)
                groups = self._ranking.group_by_severity(scored)
                ordered = groups.flatten()

            with traced_span("kg_memory.allocate_budget"):
                allocation = self._allocator.allocate_budget_by_severity(
                    ordered,
                    self._default_token_budget
                    if options.token_budget is None
                    else options.token_budget,
                    max_items=self._default_max_items
                    if options.max_items is None
                    else options.max_items,
                )
            ranking_ms = _ms_since(rank_start)

            diagnostics = QueryDiagnostics(
                query_time_ms=_ms_since(query_start),
                context_detection_time_ms=detection_ms,
                ranking_time_ms=ranking_ms,
                total_directives=len(candidate_pool),
                returned_directives=allocation.items_included,
                confidence=context.confidence,
                model_provider=context.diagnostics.model_provider,
                fallback_used=context.diagnostics.fallback_used,
                insufficient_context=context.insufficient,
                budget_exhausted=allocation.hit_limit,
                tokens_used=allocation.total_tokens,
                budget_remaining=allocation.budget_remaining,
                severity_counts=groups.counts(),
                provider_errors=dict(context.diagnostics.provider_errors),
            )
            span.set_attribute("returned", allocation.items_included)
            span.set_attribute("layer", context.layer)

        logger.info(
            "Selected %d/%d directives (layer=%s, confidence=%.2f, provider=%s, %.1fms)",
            diagnostics.returned_directives,
            diagnostics.total_directives,
            context.layer,
            context.confidence,
            diagnostics.model_provider or "rule-based",
            diagnostics.query_time_ms,
        )
        return QueryResult(
            selected=allocation.selected,
            context=context,
            diagnostics=diagnostics,
            allocation=allocation,
        )
