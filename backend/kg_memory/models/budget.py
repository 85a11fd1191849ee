"""Budget allocation result."""

from dataclasses import dataclass, field
from typing import Any

from kg_memory.models.directive import ScoredDirective


@dataclass(frozen=True)
class BudgetAllocationResult:
    """Outcome of fitting ranked directives into a token budget."""

    selected: tuple[ScoredDirective, ...] = ()
    items_considered: int = 0
    items_included: int = 0
    total_tokens: int = 0
    budget: int = 0
    skipped_ids: tuple[str, ...] = field(default=())

    @property
    def budget_remaining(self) -> int:
        return max(0, self.budget - self.total_tokens)

    @property
    def hit_limit(self) -> bool:
        """True when something was left out for lack of budget."""
        return bool(self.skipped_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items_considered": self.items_considered,
            "items_included": self.items_included,
            "total_tokens": self.total_tokens,
            "budget": self.budget,
            "budget_remaining": self.budget_remaining,
            "hit_limit": self.hit_limit,
        }
