"""Ranking: score candidates, apply mode boosts, group by severity.

All sorts are stable so equal scores keep candidate order.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from kg_memory.models import Directive, ScoredDirective, Severity, TaskContext
from kg_memory.services.ranking.authority import RuleAuthorityIndex
from kg_memory.services.ranking.config import RankingConfig
from kg_memory.services.ranking.scoring import calculate_score, fuzzy_match
from kg_memory.services.vocabulary import Vocabulary

logger = logging.getLogger(__name__)


@dataclass
class SeverityGroups:
    """Scored directives partitioned by severity, order preserved."""

    must: list[ScoredDirective] = field(default_factory=list)
    should: list[ScoredDirective] = field(default_factory=list)
    may: list[ScoredDirective] = field(default_factory=list)

    def flatten(self) -> list[ScoredDirective]:
        """MUST first, then SHOULD, then MAY."""
        return [*self.must, *self.should, *self.may]

    def counts(self) -> dict[str, int]:
        return {"MUST": len(self.must), "SHOULD": len(self.should), "MAY": len(self.may)}


def _by_score(scored: list[ScoredDirective]) -> list[ScoredDirective]:
    return sorted(scored, key=lambda s: s.score, reverse=True)


class RankingEngine:
    """Scores and orders directives for a task context."""

    def __init__(
        self,
        config: RankingConfig | None = None,
        vocabulary: Vocabulary | None = None,
        authority_index: RuleAuthorityIndex | None = None,
    ):
        self._config = config or RankingConfig()
        self._vocabulary = vocabulary or Vocabulary.default()
        self._authority_index = authority_index

    @property
    def config(self) -> RankingConfig:
        return self._config

    def score_directives(
        self,
        directives: Sequence[Directive],
        context: TaskContext,
        config: RankingConfig | None = None,
    ) -> list[ScoredDirective]:
        """Score every candidate, best first.

        Candidates beyond ``max_candidates`` are trimmed before scoring,
        keeping higher severities. Scores below ``min_score`` are dropped.
        """
        config = config or self._config
        candidates = list(directives)
        if len(candidates) > config.max_candidates:
            logger.info(
                "Trimming %d candidates to %d by severity", len(candidates), config.max_candidates
            )
            by_severity = sorted(range(len(candidates)), key=lambda i: candidates[i].severity.rank)
            # Survivors keep their input order so score ties stay stable
            keep = sorted(by_severity[: config.max_candidates])
            candidates = [candidates[i] for i in keep]

        scored = []
        for directive in candidates:
            result = calculate_score(
                directive, context, config, self._vocabulary, self._authority_index
            )
            if result.score >= config.min_score:
                scored.append(ScoredDirective(directive, result.score, result.breakdown))
        return _by_score(scored)

    def apply_mode_adjustments(
        self, scored: Sequence[ScoredDirective], mode: str | None
    ) -> list[ScoredDirective]:
        """Boost directives whose topics intersect the mode's topic set.

        Unknown or missing modes leave the ranking unchanged.
        """
        boost = self._config.mode_boosts.get(mode) if mode else None
        if boost is None:
            return list(scored)

        adjusted = []
        boosted = 0
        for item in scored:
            if any(fuzzy_match(t, b) for t in item.topics for b in boost.topics):
                item = item.with_score(round(item.score * boost.multiplier + boost.additive, 2))
                boosted += 1
            adjusted.append(item)
        logger.debug("Mode %s boosted %d/%d directives", mode, boosted, len(adjusted))
        return _by_score(adjusted)

    @staticmethod
    def group_by_severity(scored: Sequence[ScoredDirective]) -> SeverityGroups:
        groups = SeverityGroups()
        for item in scored:
            if item.severity is Severity.MUST:
                groups.must.append(item)
            elif item.severity is Severity.SHOULD:
                groups.should.append(item)
            else:
                groups.may.append(item)
        return groups
