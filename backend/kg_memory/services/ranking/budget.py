"""Token budget allocation for ranked directives.

Items are taken in the order given (callers pass MUST, then SHOULD, then
MAY) and included greedily while they fit. An item that does not fit is
skipped and the next one is tried, so a cheaper later item can still get
in. The budget is a hard ceiling: if nothing fits, nothing is selected.
"""

import logging
import math
from collections.abc import Sequence
from functools import lru_cache
from typing import Protocol

import tiktoken

from kg_memory.models import BudgetAllocationResult, ScoredDirective
from kg_memory.services.ranking.config import TokenEstimation

logger = logging.getLogger(__name__)


class TokenEstimator(Protocol):
    def estimate(self, text: str) -> int: ...


class CharTokenEstimator:
    """ceil(len(text) / chars_per_token) + per-item overhead."""

    def __init__(self, average_chars_per_token: float = 4.0, overhead_tokens: int = 20):
        self._chars_per_token = average_chars_per_token
        self._overhead = overhead_tokens

    def estimate(self, text: str) -> int:
        return math.ceil(len(text) / self._chars_per_token) + self._overhead


@lru_cache(maxsize=1)
def _encoding() -> tiktoken.Encoding:
    return tiktoken.get_encoding("cl100k_base")


class TiktokenEstimator:
    """cl100k_base token count plus per-item overhead."""

    def __init__(self, overhead_tokens: int = 20):
        self._overhead = overhead_tokens

    def estimate(self, text: str) -> int:
        return len(_encoding().encode(text)) + self._overhead


def estimator_for(token_estimation: TokenEstimation) -> TokenEstimator:
    if token_estimation.estimator == "tiktoken":
        return TiktokenEstimator(token_estimation.overhead_tokens)
    return CharTokenEstimator(
        token_estimation.average_chars_per_token, token_estimation.overhead_tokens
    )


class TokenBudgetAllocator:
    """Fits ranked directives into a token budget."""

    def __init__(self, estimator: TokenEstimator | None = None):
        self._estimator = estimator or CharTokenEstimator()

    def estimate(self, item: ScoredDirective) -> int:
        return self._estimator.estimate(item.text)

    def allocate_budget_by_severity(
        self,
        items: Sequence[ScoredDirective],
        budget: int,
        *,
        max_items: int | None = None,
    ) -> BudgetAllocationResult:
        """Select items in order while the running total stays within ``budget``.

        Args:
            items: Ranked directives, already grouped MUST/SHOULD/MAY.
            budget: Token ceiling; negative values are treated as 0.
            max_items: Stop including once this many items are selected.

        Returns:
            BudgetAllocationResult. ``total_tokens`` never exceeds ``budget``.
        """
        budget = max(0, budget)
        selected: list[ScoredDirective] = []
        skipped: list[str] = []
        total = 0

        for item in items:
            if max_items is not None and len(selected) >= max_items:
                break
            cost = self.estimate(item)
            if total + cost <= budget:
                selected.append(item)
                total += cost
            else:
                skipped.append(item.id)

        if skipped:
            logger.debug(
                "Budget %d: included %d/%d directives, skipped %d",
                budget,
                len(selected),
                len(items),
                len(skipped),
            )
        return BudgetAllocationResult(
            selected=tuple(selected),
            items_considered=len(items),
            items_included=len(selected),
            total_tokens=total,
            budget=budget,
            skipped_ids=tuple(skipped),
        )
