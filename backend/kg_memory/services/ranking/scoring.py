"""
Multi-factor directive scoring.

Formula: score = round(sum(sub_score_i * weight_i), 2)

Sub-scores, each in [0, 1]:
- authority: a context topic matches a directive topic
- layer_match: static layer keywords appearing (as substrings) in directive
  text and topics, so plurals and inflections still count
- topic_overlap: task topics with a fuzzy match among the directive topics,
  over the larger topic set
- severity_boost: severity multiplier
- semantic_similarity: share of task keywords found in text and rationale
- when_to_apply: share of applicability conditions sharing a word with the task

"Fuzzy" means equal or a substring in either direction, case-insensitive.
All functions are pure.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from kg_memory.constants import WILDCARD_LAYER
from kg_memory.models import Directive, ScoreBreakdown, TaskContext
from kg_memory.services.context_detection.text import normalize, tokenize
from kg_memory.services.ranking.authority import RuleAuthorityIndex
from kg_memory.services.ranking.config import RankingConfig
from kg_memory.services.vocabulary import Vocabulary

# Condition words that mark a directive as applying everywhere
_LAYER_AGNOSTIC_WORDS = frozenset({"all", "any"})
# Words this short carry no signal in substring matching
_MIN_MATCH_LENGTH = 3


@dataclass(frozen=True)
class ScoreResult:
    score: float
    breakdown: ScoreBreakdown


def fuzzy_match(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    if not a or not b:
        return False
    return a == b or a in b or b in a


def _any_fuzzy(term: str, candidates: Iterable[str]) -> bool:
    return any(fuzzy_match(term, c) for c in candidates)


def authority_score(
    directive: Directive,
    context: TaskContext,
    authority_index: RuleAuthorityIndex | None = None,
    mode: str = "topic",
) -> float:
    """1.0 when the directive is authoritative for one of the task's topics.

    In "topic" mode the directive's own topics are checked. In "rule" mode
    the owning rule's declared authority topics are used when the index has
    them, falling back to the directive's topics otherwise.
    """
    topics: Iterable[str] = directive.topics
    if mode == "rule" and authority_index is not None:
        declared = authority_index.topics_for(directive.rule_id)
        if declared:
            topics = declared
    return 1.0 if any(_any_fuzzy(t, context.topics) for t in topics) else 0.0


def is_layer_agnostic(directive: Directive) -> bool:
    if WILDCARD_LAYER in directive.topics:
        return True
    return any(
        _LAYER_AGNOSTIC_WORDS.intersection(tokenize(condition))
        for condition in directive.when_to_apply
    )


def layer_match_score(directive: Directive, context: TaskContext, vocabulary: Vocabulary) -> float:
    if is_layer_agnostic(directive):
        return 0.5
    keywords = vocabulary.layer_keywords_for_scoring(context.layer)
    if not keywords:
        return 0.0
    haystack = " ".join([directive.text, *sorted(directive.topics)]).lower()
    return 1.0 if any(k in haystack for k in keywords) else 0.0


def topic_overlap_score(directive: Directive, context: TaskContext) -> float:
    if not directive.topics or not context.topics:
        return 0.0
    matches = sum(1 for topic in context.topics if _any_fuzzy(topic, directive.topics))
    return matches / max(len(directive.topics), len(context.topics))


def severity_boost(directive: Directive, config: RankingConfig) -> float:
    return config.severity_multipliers.for_severity(directive.severity)


def task_keywords(context: TaskContext) -> list[str]:
    """Distinct keyword words longer than two characters, in order."""
    words: list[str] = []
    for word in tokenize(" ".join(context.keywords)):
        if len(word) >= _MIN_MATCH_LENGTH and word not in words:
            words.append(word)
    return words


def semantic_similarity(directive: Directive, context: TaskContext) -> float:
    """Lexical stand-in for embedding similarity."""
    keywords = task_keywords(context)
    if not keywords:
        return 0.0
    content = normalize(f"{directive.text} {directive.rationale or ''}")
    return sum(1 for k in keywords if k in content) / len(keywords)


def when_to_apply_score(directive: Directive, context: TaskContext) -> float:
    keywords = task_keywords(context)
    if not directive.when_to_apply or not keywords:
        return 0.0
    matched = 0
    for condition in directive.when_to_apply:
        words = [w for w in tokenize(condition) if len(w) >= _MIN_MATCH_LENGTH]
        if any(_any_fuzzy(w, keywords) for w in words):
            matched += 1
    return matched / len(directive.when_to_apply)


def calculate_score(
    directive: Directive,
    context: TaskContext,
    config: RankingConfig,
    vocabulary: Vocabulary | None = None,
    authority_index: RuleAuthorityIndex | None = None,
) -> ScoreResult:
    """Score one directive against a task context. Deterministic."""
    vocabulary = vocabulary or Vocabulary.default()
    breakdown = ScoreBreakdown(
        authority=authority_score(directive, context, authority_index, config.authority_mode),
        layer_match=layer_match_score(directive, context, vocabulary),
        topic_overlap=topic_overlap_score(directive, context),
        severity_boost=severity_boost(directive, config),
        semantic_similarity=semantic_similarity(directive, context),
        when_to_apply=when_to_apply_score(directive, context),
    )
    w = config.weights
    total = (
        breakdown.authority * w.authority
        + breakdown.layer_match * w.layer_match
        + breakdown.topic_overlap * w.topic_overlap
        + breakdown.severity_boost * w.severity_boost
        + breakdown.semantic_similarity * w.semantic_similarity
        + breakdown.when_to_apply * w.when_to_apply
    )
    return ScoreResult(score=round(total, 2), breakdown=breakdown)
