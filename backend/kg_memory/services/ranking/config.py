"""
Ranking configuration: scoring weights, severity multipliers, token estimation
and mode boosts.

A RankingConfig is validated once when built and treated as read-only
afterwards. Every violation is collected and raised together as
InvalidRankingConfig.
"""

import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Literal

from kg_memory.constants import MODE_ARCHITECT, MODE_CODE, MODE_DEBUG
from kg_memory.exceptions import InvalidRankingConfig
from kg_memory.models import Severity

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


@dataclass(frozen=True)
class ScoringWeights:
    """Weight applied to each sub-score. All must be positive."""

    authority: float = 10.0
    when_to_apply: float = 8.0
    layer_match: float = 7.0
    topic_overlap: float = 5.0
    severity_boost: float = 4.0
    semantic_similarity: float = 3.0

    def errors(self) -> list[str]:
        return [
            f"weights.{f.name} must be > 0, got {getattr(self, f.name)}"
            for f in fields(self)
            if not getattr(self, f.name) > 0
        ]

    @property
    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class SeverityMultipliers:
    """Per-severity boost in (0, 1], ordered MUST >= SHOULD >= MAY."""

    must: float = 1.0
    should: float = 0.7
    may: float = 0.4

    def for_severity(self, severity: Severity) -> float:
        if severity is Severity.MUST:
            return self.must
        if severity is Severity.SHOULD:
            return self.should
        return self.may

    def errors(self) -> list[str]:
        errors = [
            f"severity_multipliers.{f.name} must be in (0, 1], got {getattr(self, f.name)}"
            for f in fields(self)
            if not 0 < getattr(self, f.name) <= 1
        ]
        if not self.must >= self.should >= self.may:
            errors.append(
                "severity_multipliers must satisfy MUST >= SHOULD >= MAY, got "
                f"{self.must} / {self.should} / {self.may}"
            )
        return errors


@dataclass(frozen=True)
class TokenEstimation:
    """How directive token costs are estimated."""

    average_tokens_per_directive: int = 50
    overhead_tokens: int = 20
    average_chars_per_token: float = 4.0
    estimator: Literal["chars", "tiktoken"] = "chars"

    def errors(self) -> list[str]:
        errors = []
        if self.average_tokens_per_directive <= 0:
            errors.append("token_estimation.average_tokens_per_directive must be > 0")
        if self.overhead_tokens < 0:
            errors.append("token_estimation.overhead_tokens must be >= 0")
        if self.average_chars_per_token <= 0:
            errors.append("token_estimation.average_chars_per_token must be > 0")
        if self.estimator not in ("chars", "tiktoken"):
            errors.append(
                f"token_estimation.estimator must be chars or tiktoken, got {self.estimator}"
            )
        return errors


@dataclass(frozen=True)
class ModeBoost:
    """Boost for directives whose topics intersect ``topics``.

    New score = old score * multiplier + additive.
    """

    topics: frozenset[str]
    multiplier: float = 1.0
    additive: float = 0.0

    def errors(self, mode: str) -> list[str]:
        errors = []
        if self.multiplier <= 0:
            errors.append(f"mode_boosts.{mode}.multiplier must be > 0")
        if self.additive < 0:
            errors.append(f"mode_boosts.{mode}.additive must be >= 0")
        if not self.topics:
            errors.append(f"mode_boosts.{mode}.topics must not be empty")
        return errors


DEFAULT_MODE_BOOSTS: dict[str, ModeBoost] = {
    MODE_ARCHITECT: ModeBoost(frozenset({"architecture", "design", "patterns"}), 1.5),
    MODE_CODE: ModeBoost(frozenset({"testing", "coding-standards", "implementation"}), 1.3),
    MODE_DEBUG: ModeBoost(frozenset({"error-handling", "logging", "debugging"}), 1.5),
}


@dataclass(frozen=True)
class RankingConfig:
    """Everything the scorer, ranker and allocator read."""

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    severity_multipliers: SeverityMultipliers = field(default_factory=SeverityMultipliers)
    token_estimation: TokenEstimation = field(default_factory=TokenEstimation)
    mode_boosts: dict[str, ModeBoost] = field(default_factory=lambda: dict(DEFAULT_MODE_BOOSTS))
    max_candidates: int = 1000
    min_score: float = 0.0
    authority_mode: Literal["topic", "rule"] = "topic"

    def __post_init__(self) -> None:
        errors = self.weights.errors() + self.severity_multipliers.errors()
        errors += self.token_estimation.errors()
        for mode, boost in self.mode_boosts.items():
            errors += boost.errors(mode)
        if self.max_candidates <= 0:
            errors.append("max_candidates must be > 0")
        if self.min_score < 0:
            errors.append("min_score must be >= 0")
        if self.authority_mode not in ("topic", "rule"):
            errors.append(f"authority_mode must be topic or rule, got {self.authority_mode}")
        if errors:
            raise InvalidRankingConfig(errors)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "RankingConfig":
        """Build a config from a (possibly partial) mapping.

        Keys may be camelCase or snake_case; missing keys keep their defaults.

        Raises:
            InvalidRankingConfig: Unknown keys, wrong types or out-of-range values.
        """
        return cls().merged(data)

    def merged(self, overrides: dict[str, Any]) -> "RankingConfig":
        """Return a new config with ``overrides`` applied."""
        if not isinstance(overrides, dict):
            raise InvalidRankingConfig(["ranking configuration must be an object"])

        errors: list[str] = []
        changes: dict[str, Any] = {}
        sections = {
            "weights": self.weights,
            "severity_multipliers": self.severity_multipliers,
            "token_estimation": self.token_estimation,
        }

        for raw_key, value in overrides.items():
            key = _snake(raw_key)
            if key in sections:
                section = _merge_section(key, sections[key], value, errors)
                if section is not None:
                    changes[key] = section
            elif key == "mode_boosts":
                boosts = _merge_mode_boosts(self.mode_boosts, value, errors)
                if boosts is not None:
                    changes[key] = boosts
            elif key in ("max_candidates", "min_score", "authority_mode"):
                changes[key] = value
            else:
                errors.append(f"unknown ranking configuration key: {raw_key}")

        if errors:
            raise InvalidRankingConfig(errors)
        try:
            return replace(self, **changes)
        except TypeError as e:
            raise InvalidRankingConfig([str(e)]) from e


def _merge_section(name: str, current: Any, value: Any, errors: list[str]) -> Any:
    if not isinstance(value, dict):
        errors.append(f"{name} must be an object")
        return None

    known = {f.name for f in fields(current)}
    updates: dict[str, Any] = {}
    for raw_key, item in value.items():
        key = _snake(raw_key)
        if key not in known:
            errors.append(f"unknown key {name}.{raw_key}")
            continue
        if key != "estimator" and (isinstance(item, bool) or not isinstance(item, int | float)):
            errors.append(f"{name}.{raw_key} must be a number")
            continue
        updates[key] = item
    return replace(current, **updates)


def _merge_mode_boosts(
    current: dict[str, ModeBoost], value: Any, errors: list[str]
) -> dict[str, ModeBoost] | None:
    if not isinstance(value, dict):
        errors.append("mode_boosts must be an object")
        return None

    boosts = dict(current)
    for mode, override in value.items():
        if not isinstance(override, dict):
            errors.append(f"mode_boosts.{mode} must be an object")
            continue
        base = boosts.get(mode, ModeBoost(frozenset()))
        topics = override.get("topics", base.topics)
        if isinstance(topics, str):
            topics = [topics]
        try:
            boosts[mode] = ModeBoost(
                topics=frozenset(str(t).lower() for t in topics),
                multiplier=float(override.get("multiplier", base.multiplier)),
                additive=float(override.get("additive", base.additive)),
            )
        except (TypeError, ValueError):
            errors.append(f"mode_boosts.{mode} has a non-numeric multiplier or additive")
    return boosts
