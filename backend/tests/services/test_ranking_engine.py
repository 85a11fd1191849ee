"""Tests for RankingEngine ordering, mode boosts and severity grouping."""

import pytest

from kg_memory.models import ScoreBreakdown, ScoredDirective, Severity, TaskContext
from kg_memory.services.ranking import RankingConfig, RankingEngine
from kg_memory.services.ranking.config import SeverityMultipliers


@pytest.fixture
def engine() -> RankingEngine:
    return RankingEngine()


@pytest.fixture
def scored(directive_factory):
    def _scored(id: str, score: float, severity=Severity.SHOULD, topics=None) -> ScoredDirective:
        directive = directive_factory(id, severity=severity, topics=topics or [])
        return ScoredDirective(directive, score, ScoreBreakdown())

    return _scored


class TestScoreDirectives:
    def test_best_first_with_stable_ties(self, engine, sample_directives):
        """Equal scores keep candidate order."""
        result = engine.score_directives(sample_directives, TaskContext())

        # log-1 is layer-agnostic (+0.5 * 7); the rest score severity only
        assert [s.id for s in result] == ["log-1", "sec-1", "sec-2", "ui-1", "test-1", "ui-2"]
        assert [s.score for s in result] == [6.3, 4.0, 4.0, 2.8, 2.8, 1.6]

    def test_scores_carry_breakdown(self, engine, sample_directives):
        result = engine.score_directives(sample_directives, TaskContext())
        log = next(s for s in result if s.id == "log-1")
        assert log.breakdown.layer_match == 0.5
        assert log.breakdown.severity_boost == 0.7

    def test_max_candidates_keeps_higher_severity(self, sample_directives):
        engine = RankingEngine(RankingConfig(max_candidates=2))
        result = engine.score_directives(sample_directives, TaskContext())
        assert {s.id for s in result} == {"sec-1", "sec-2"}

    def test_max_candidates_keeps_input_order_for_ties(self, directive_factory):
        config = RankingConfig(
            max_candidates=3, severity_multipliers=SeverityMultipliers(1.0, 1.0, 1.0)
        )
        pool = [
            directive_factory("a", severity=Severity.SHOULD),
            directive_factory("b", severity=Severity.MAY),
            directive_factory("c", severity=Severity.MUST),
            directive_factory("d", severity=Severity.SHOULD),
        ]

        result = RankingEngine(config).score_directives(pool, TaskContext())

        assert {s.score for s in result} == {4.0}
        assert [s.id for s in result] == ["a", "c", "d"]

    def test_min_score_drops_weak_candidates(self, sample_directives):
        engine = RankingEngine(RankingConfig(min_score=3.0))
        result = engine.score_directives(sample_directives, TaskContext())
        assert [s.id for s in result] == ["log-1", "sec-1", "sec-2"]

    def test_per_call_config_override(self, engine, sample_directives):
        result = engine.score_directives(
            sample_directives, TaskContext(), config=RankingConfig(min_score=5.0)
        )
        assert [s.id for s in result] == ["log-1"]

    def test_empty_pool(self, engine):
        assert engine.score_directives([], TaskContext()) == []

    def test_topic_match_outranks_severity(self, engine, sample_directives):
        context = TaskContext(layer="1-Presentation", topics=frozenset({"styling"}))
        result = engine.score_directives(sample_directives, context)
        assert result[0].id in {"ui-1", "ui-2"}


class TestModeAdjustments:
    def test_debug_mode_boosts_logging(self, engine, scored):
        items = [
            scored("test-1", 10.0, topics=["testing"]),
            scored("log-1", 8.0, topics=["logging"]),
        ]

        result = engine.apply_mode_adjustments(items, "debug")

        assert [s.id for s in result] == ["log-1", "test-1"]
        assert result[0].score == 12.0
        assert result[1].score == 10.0

    def test_code_mode_boosts_testing(self, engine, scored):
        items = [scored("a", 10.0, topics=["testing"])]
        assert engine.apply_mode_adjustments(items, "code")[0].score == 13.0

    def test_fuzzy_topic_match(self, engine, scored):
        """'design' in the architect set matches a 'system-design' topic."""
        items = [scored("a", 10.0, topics=["system-design"])]
        assert engine.apply_mode_adjustments(items, "architect")[0].score == 15.0

    @pytest.mark.parametrize("mode", [None, "", "review"])
    def test_unknown_or_missing_mode_is_noop(self, engine, scored, mode):
        items = [scored("a", 5.0, topics=["logging"]), scored("b", 7.0, topics=["testing"])]
        assert engine.apply_mode_adjustments(items, mode) == items

    def test_additive_boost(self, scored):
        config = RankingConfig.from_mapping(
            {"modeBoosts": {"debug": {"multiplier": 1.0, "additive": 2.5}}}
        )
        items = [scored("a", 4.0, topics=["debugging"])]
        result = RankingEngine(config).apply_mode_adjustments(items, "debug")
        assert result[0].score == 6.5

    def test_original_items_untouched(self, engine, scored):
        items = [scored("a", 10.0, topics=["logging"])]
        engine.apply_mode_adjustments(items, "debug")
        assert items[0].score == 10.0


class TestGrouping:
    def test_groups_preserve_order(self, scored):
        items = [
            scored("s1", 9.0, Severity.SHOULD),
            scored("m1", 8.0, Severity.MUST),
            scored("y1", 7.0, Severity.MAY),
            scored("m2", 6.0, Severity.MUST),
            scored("s2", 5.0, Severity.SHOULD),
        ]

        groups = RankingEngine.group_by_severity(items)

        assert [s.id for s in groups.must] == ["m1", "m2"]
        assert [s.id for s in groups.should] == ["s1", "s2"]
        assert [s.id for s in groups.may] == ["y1"]
        assert [s.id for s in groups.flatten()] == ["m1", "m2", "s1", "s2", "y1"]
        assert groups.counts() == {"MUST": 2, "SHOULD": 2, "MAY": 1}

    def test_empty_groups(self):
        groups = RankingEngine.group_by_severity([])
        assert groups.flatten() == []
        assert groups.counts() == {"MUST": 0, "SHOULD": 0, "MAY": 0}
