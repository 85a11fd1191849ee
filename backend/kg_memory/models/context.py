"""Task context produced by context detection."""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kg_memory.constants import FLOOR_CONFIDENCE, LAYERS, WILDCARD_LAYER


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class LayerAlternative:
    """A runner-up layer from rule-based detection."""

    layer: str
    confidence: float
    indicators: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer": self.layer,
            "confidence": round(self.confidence, 3),
            "indicators": list(self.indicators),
        }


@dataclass(frozen=True)
class DetectionDiagnostics:
    """How a TaskContext was obtained."""

    model_provider: str | None = None
    fallback_used: bool = False
    provider_index: int | None = None
    detection_time_ms: float = 0.0
    provider_errors: dict[str, str] = field(default_factory=dict)
    indicators: tuple[str, ...] = ()
    alternatives: tuple[LayerAlternative, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_provider": self.model_provider,
            "fallback_used": self.fallback_used,
            "provider_index": self.provider_index,
            "detection_time_ms": round(self.detection_time_ms, 2),
            "provider_errors": dict(self.provider_errors),
            "indicators": list(self.indicators),
            "alternatives": [alt.to_dict() for alt in self.alternatives],
        }


@dataclass(frozen=True)
class TaskContext:
    """Structured interpretation of a task description.

    Confidence is clamped to [0, 1] on construction.
    """

    layer: str = WILDCARD_LAYER
    topics: frozenset[str] = frozenset()
    keywords: tuple[str, ...] = ()
    technologies: frozenset[str] = frozenset()
    confidence: float = FLOOR_CONFIDENCE
    diagnostics: DetectionDiagnostics = field(default_factory=DetectionDiagnostics)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))
        object.__setattr__(self, "topics", frozenset(self.topics))
        object.__setattr__(self, "technologies", frozenset(self.technologies))
        object.__setattr__(self, "keywords", tuple(self.keywords))

    @property
    def insufficient(self) -> bool:
        """True when detection could not interpret the task at all."""
        return self.layer == WILDCARD_LAYER and self.confidence <= FLOOR_CONFIDENCE

    @classmethod
    def floor(cls, diagnostics: DetectionDiagnostics | None = None) -> "TaskContext":
        return cls(
            layer=WILDCARD_LAYER,
            confidence=FLOOR_CONFIDENCE,
            diagnostics=diagnostics or DetectionDiagnostics(fallback_used=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer": self.layer,
            "topics": sorted(self.topics),
            "keywords": list(self.keywords),
            "technologies": sorted(self.technologies),
            "confidence": round(self.confidence, 3),
            "diagnostics": self.diagnostics.to_dict(),
        }


class ProviderContext(BaseModel):
    """Raw detection result returned by a model provider."""

    model_config = ConfigDict(extra="ignore")

    layer: str = WILDCARD_LAYER
    topics: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    confidence: float = 0.5

    @field_validator("layer", mode="before")
    @classmethod
    def _known_layer(cls, value: Any) -> str:
        layer = str(value or "").strip()
        return layer if layer in LAYERS else WILDCARD_LAYER

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        try:
            return clamp_confidence(float(value))
        except (TypeError, ValueError):
            return 0.5

    @field_validator("topics", "keywords", "technologies", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(v).strip().lower() for v in value if str(v).strip()]
