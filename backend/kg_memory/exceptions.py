"""Error taxonomy for directive retrieval.

Provider failures are defined alongside the providers
(kg_memory.providers.base) and are recovered inside context detection.
Only configuration errors are fatal.
"""

from enum import Enum


class ErrorType(str, Enum):
    """Categories of failure surfaced in diagnostics and API error bodies."""

    MODEL_PROVIDER_UNAVAILABLE = "model_provider_unavailable"
    INSUFFICIENT_CONTEXT = "insufficient_context"
    INVALID_RANKING_CONFIG = "invalid_ranking_config"
    BUDGET_EXHAUSTED = "budget_exhausted"
    KNOWLEDGE_STORE_UNAVAILABLE = "knowledge_store_unavailable"
    INVALID_DIRECTIVE = "invalid_directive"


class KGMemoryError(Exception):
    """Base exception for the service."""

    error_type: ErrorType = ErrorType.KNOWLEDGE_STORE_UNAVAILABLE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error_type.value, "message": self.message}


class InvalidRankingConfig(KGMemoryError, ValueError):
    """Ranking configuration failed validation."""

    error_type = ErrorType.INVALID_RANKING_CONFIG

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid ranking configuration: " + "; ".join(self.errors))


class KnowledgeStoreUnavailable(KGMemoryError):
    """Directive source could not be read."""

    error_type = ErrorType.KNOWLEDGE_STORE_UNAVAILABLE


class InvalidDirectiveRecord(KGMemoryError, ValueError):
    """A directive record did not match the directive schema."""

    error_type = ErrorType.INVALID_DIRECTIVE

    def __init__(self, index: int, detail: str):
        self.index = index
        super().__init__(f"Directive record {index} is invalid: {detail}")
