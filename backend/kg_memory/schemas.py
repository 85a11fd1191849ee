"""Request/response models for the directive and context endpoints.

Request fields accept both camelCase (as MCP clients send them) and
snake_case names.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kg_memory.constants import (
    MAX_ITEMS_LIMIT,
    MAX_TASK_TEXT_LENGTH,
    MAX_TOKEN_BUDGET,
    MIN_TOKEN_BUDGET,
)
from kg_memory.models import ScoredDirective, Severity, TaskContext

ModeSlug = Literal["architect", "code", "debug"]

# ============================================================================
# Query Schemas
# ============================================================================


class QueryOptionsRequest(BaseModel):
    """Optional limits for a directive query."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    max_items: int | None = Field(
        None, alias="maxItems", ge=1, le=MAX_ITEMS_LIMIT, description="Max directives returned"
    )
    token_budget: int | None = Field(
        None,
        alias="tokenBudget",
        ge=MIN_TOKEN_BUDGET,
        le=MAX_TOKEN_BUDGET,
        description="Token ceiling for the selection",
    )
    severity_filter: list[Severity] | None = Field(
        None, alias="severityFilter", description="Only consider these severities"
    )
    strict_layer: bool = Field(
        False, alias="strictLayer", description="Only directives tagged for the detected layer"
    )
    workspace: str | None = Field(None, description="Restrict candidates to a workspace")


class QueryDirectivesRequest(BaseModel):
    """Request schema for directive retrieval."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    task_description: str = Field(
        ...,
        alias="taskDescription",
        min_length=1,
        max_length=MAX_TASK_TEXT_LENGTH,
        description="Free-text description of the task",
    )
    mode_slug: ModeSlug | None = Field(None, alias="modeSlug", description="Agent mode")
    options: QueryOptionsRequest = Field(default_factory=QueryOptionsRequest)

    @field_validator("task_description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("taskDescription must not be blank")
        return value


class DirectiveResult(BaseModel):
    """A selected directive with its score explanation."""

    id: str
    rule_id: str
    section: str
    severity: Severity
    text: str
    rationale: str | None = None
    example: str | None = None
    anti_pattern: str | None = None
    topics: list[str]
    score: float
    breakdown: dict[str, float]
    citation: str = Field(..., description="Source reference: rule id and section")

    @classmethod
    def from_scored(cls, item: ScoredDirective) -> "DirectiveResult":
        d = item.directive
        citation = "#".join(part for part in (d.rule_id, d.section) if part) or d.id
        return cls(
            id=d.id,
            rule_id=d.rule_id,
            section=d.section,
            severity=d.severity,
            text=d.text,
            rationale=d.rationale,
            example=d.example,
            anti_pattern=d.anti_pattern,
            topics=sorted(d.topics),
            score=item.score,
            breakdown=item.breakdown.to_dict(),
            citation=citation,
        )


class ContextSummary(BaseModel):
    """Detected task context."""

    layer: str
    topics: list[str]
    technologies: list[str]
    keywords: list[str] = Field(default_factory=list)
    confidence: float

    @classmethod
    def from_context(cls, context: TaskContext) -> "ContextSummary":
        return cls(
            layer=context.layer,
            topics=sorted(context.topics),
            technologies=sorted(context.technologies),
            keywords=list(context.keywords),
            confidence=round(context.confidence, 3),
        )


class QueryDirectivesResponse(BaseModel):
    """Response schema for directive retrieval."""

    directives: list[DirectiveResult]
    context: ContextSummary
    diagnostics: dict[str, Any] = Field(..., description="Timings, provider and budget details")


# ============================================================================
# Context Detection Schemas
# ============================================================================


class DetectOptionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    return_keywords: bool = Field(False, alias="returnKeywords")
    confidence_threshold: float | None = Field(
        None,
        alias="confidenceThreshold",
        ge=0.0,
        le=1.0,
        description="Drop rule-based topic/technology hits below this confidence",
    )


class DetectContextRequest(BaseModel):
    """Request schema for context detection."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    text: str = Field(..., min_length=1, max_length=MAX_TASK_TEXT_LENGTH)
    options: DetectOptionsRequest = Field(default_factory=DetectOptionsRequest)


class DetectContextResponse(BaseModel):
    """Response schema for context detection."""

    layer: str
    topics: list[str]
    technologies: list[str]
    keywords: list[str]
    confidence: float
    indicators: list[str] = Field(default_factory=list)
    alternatives: list[dict[str, Any]] = Field(default_factory=list)
    diagnostics: dict[str, Any]

    @classmethod
    def from_context(cls, context: TaskContext) -> "DetectContextResponse":
        diagnostics = context.diagnostics.to_dict()
        return cls(
            layer=context.layer,
            topics=sorted(context.topics),
            technologies=sorted(context.technologies),
            keywords=list(context.keywords),
            confidence=round(context.confidence, 3),
            indicators=diagnostics.pop("indicators"),
            alternatives=diagnostics.pop("alternatives"),
            diagnostics=diagnostics,
        )


# ============================================================================
# Provider Schemas
# ============================================================================


class ProviderStatus(BaseModel):
    name: str
    available: bool
    kind: str
    latency_ms: float | None = None
    error: str | None = None


class ProvidersResponse(BaseModel):
    providers: list[ProviderStatus]
    chain: list[str] = Field(..., description="Provider order, primary first")
    timeout_seconds: float
