"""Directive records and scored results."""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    """Directive severity. MUST outranks SHOULD outranks MAY."""

    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.MUST: 0, Severity.SHOULD: 1, Severity.MAY: 2}

SEVERITY_ORDER: tuple[Severity, ...] = (Severity.MUST, Severity.SHOULD, Severity.MAY)


def _lower_set(value: Any) -> Any:
    if isinstance(value, str):
        value = [value]
    if isinstance(value, Iterable):
        return frozenset(str(v).strip().lower() for v in value if str(v).strip())
    return value


class Directive(BaseModel):
    """A single actionable instruction extracted from a rule document.

    Closed record: unknown fields are rejected at the boundary. Accepts the
    camelCase field names produced by the ingestion pipeline.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(..., min_length=1)
    rule_id: str = Field(default="", alias="ruleId")
    section: str = ""
    severity: Severity
    text: str = Field(..., min_length=1)
    rationale: str | None = None
    example: str | None = None
    anti_pattern: str | None = Field(default=None, alias="antiPattern")
    topics: frozenset[str] = frozenset()
    layers: frozenset[str] = frozenset()
    technologies: frozenset[str] = frozenset()
    when_to_apply: tuple[str, ...] = Field(default=(), alias="whenToApply")
    workspace: str | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("topics", "technologies", mode="before")
    @classmethod
    def _normalize_terms(cls, value: Any) -> Any:
        return _lower_set(value)

    @field_validator("layers", mode="before")
    @classmethod
    def _normalize_layers(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [value]
        return value

    @field_validator("when_to_apply", mode="before")
    @classmethod
    def _normalize_conditions(cls, value: Any) -> Any:
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


@dataclass(frozen=True)
class ScoreBreakdown:
    """Unweighted sub-scores, each in [0, 1]."""

    authority: float = 0.0
    layer_match: float = 0.0
    topic_overlap: float = 0.0
    severity_boost: float = 0.0
    semantic_similarity: float = 0.0
    when_to_apply: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "authority": round(self.authority, 3),
            "layer_match": round(self.layer_match, 3),
            "topic_overlap": round(self.topic_overlap, 3),
            "severity_boost": round(self.severity_boost, 3),
            "semantic_similarity": round(self.semantic_similarity, 3),
            "when_to_apply": round(self.when_to_apply, 3),
        }


@dataclass(frozen=True)
class ScoredDirective:
    """A directive with its relevance score and the sub-scores behind it."""

    directive: Directive
    score: float
    breakdown: ScoreBreakdown

    @property
    def id(self) -> str:
        return self.directive.id

    @property
    def severity(self) -> Severity:
        return self.directive.severity

    @property
    def text(self) -> str:
        return self.directive.text

    @property
    def topics(self) -> frozenset[str]:
        return self.directive.topics

    def with_score(self, score: float) -> "ScoredDirective":
        return replace(self, score=score)
