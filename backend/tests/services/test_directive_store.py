"""Tests for directive loading and the in-memory store."""

import json
import logging

import pytest
from pydantic import ValidationError

from kg_memory.exceptions import InvalidDirectiveRecord, KnowledgeStoreUnavailable
from kg_memory.models import Severity
from kg_memory.services.directive_store import (
    DirectiveQuery,
    InMemoryDirectiveStore,
    load_directives,
    load_directives_file,
)

RECORD = {
    "id": "sec-1",
    "ruleId": "security-rules",
    "section": "Passwords",
    "severity": "must",
    "text": "Hash passwords before storing them",
    "topics": ["Security", " Authentication "],
    "whenToApply": "When storing credentials",
}


class TestLoadDirectives:
    def test_camel_case_record(self):
        (directive,) = load_directives([RECORD])

        assert directive.rule_id == "security-rules"
        assert directive.severity is Severity.MUST
        assert directive.topics == frozenset({"security", "authentication"})
        assert directive.when_to_apply == ("When storing credentials",)

    def test_invalid_record_reports_position(self):
        records = [RECORD, {**RECORD, "id": "bad", "severity": "SOMETIMES"}]

        with pytest.raises(InvalidDirectiveRecord) as exc_info:
            load_directives(records)

        assert exc_info.value.index == 1
        assert exc_info.value.to_dict()["error"] == "invalid_directive"

    @pytest.mark.parametrize(
        "override",
        [{"text": "   "}, {"text": ""}, {"priority": 3}],
        ids=["blank-text", "empty-text", "unknown-field"],
    )
    def test_rejected_records(self, override):
        with pytest.raises(InvalidDirectiveRecord):
            load_directives([{**RECORD, **override}])

    def test_directives_are_immutable(self):
        (directive,) = load_directives([RECORD])
        with pytest.raises(ValidationError):
            directive.text = "changed"


class TestInMemoryStore:
    @pytest.fixture
    def store(self, directive_factory) -> InMemoryDirectiveStore:
        return InMemoryDirectiveStore(
            [
                directive_factory("global", severity=Severity.MUST),
                directive_factory("ws-a", severity=Severity.SHOULD, workspace="a"),
                directive_factory("ws-b", severity=Severity.MAY, workspace="b"),
                directive_factory("ui", layers=["1-Presentation"]),
                directive_factory("anywhere", layers=["*"]),
            ]
        )

    @pytest.mark.asyncio
    async def test_empty_query_returns_all(self, store):
        result = await store.query_directives(DirectiveQuery())
        assert [d.id for d in result] == ["global", "ws-a", "ws-b", "ui", "anywhere"]

    @pytest.mark.asyncio
    async def test_workspace_filter_keeps_unscoped(self, store):
        result = await store.query_directives(DirectiveQuery(workspace="a"))
        assert [d.id for d in result] == ["global", "ws-a", "ui", "anywhere"]

    @pytest.mark.asyncio
    async def test_layer_filter(self, store):
        result = await store.query_directives(DirectiveQuery(layers=frozenset({"4-Persistence"})))
        assert "ui" not in [d.id for d in result]
        assert "anywhere" in [d.id for d in result]

    @pytest.mark.asyncio
    async def test_severity_filter(self, store):
        result = await store.query_directives(
            DirectiveQuery(severities=frozenset({Severity.SHOULD, Severity.MAY}))
        )
        assert [d.id for d in result] == ["ws-a", "ws-b"]

    @pytest.mark.asyncio
    async def test_limit(self, store):
        result = await store.query_directives(DirectiveQuery(limit=2))
        assert len(result) == 2

    @pytest.mark.asyncio
    async def test_limit_truncation_is_logged(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="kg_memory.services.directive_store"):
            result = await store.query_directives(DirectiveQuery(limit=2))

        assert [d.id for d in result] == ["global", "ws-a"]
        assert "Truncating 5 matching directives to limit 2" in caplog.text

    @pytest.mark.asyncio
    async def test_no_log_under_limit(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="kg_memory.services.directive_store"):
            await store.query_directives(DirectiveQuery(limit=10))

        assert "Truncating" not in caplog.text

    def test_len(self, store):
        assert len(store) == 5


class TestLoadDirectivesFile:
    def test_plain_list(self, tmp_path):
        path = tmp_path / "directives.json"
        path.write_text(json.dumps([RECORD]))

        snapshot = load_directives_file(path)

        assert [d.id for d in snapshot.directives] == ["sec-1"]
        assert len(snapshot.authority_index) == 0

    def test_object_with_rules(self, tmp_path):
        path = tmp_path / "directives.json"
        path.write_text(
            json.dumps(
                {
                    "directives": [RECORD],
                    "rules": [{"id": "security-rules", "authoritativeFor": ["Security", "auth"]}],
                }
            )
        )

        snapshot = load_directives_file(str(path))

        assert "security-rules" in snapshot.authority_index
        assert snapshot.authority_index.topics_for("security-rules") == frozenset(
            {"security", "auth"}
        )

    def test_missing_file(self, tmp_path):
        with pytest.raises(KnowledgeStoreUnavailable):
            load_directives_file(tmp_path / "missing.json")

    def test_not_json(self, tmp_path):
        path = tmp_path / "directives.json"
        path.write_text("{not json")
        with pytest.raises(KnowledgeStoreUnavailable):
            load_directives_file(path)

    def test_unexpected_layout(self, tmp_path):
        path = tmp_path / "directives.json"
        path.write_text(json.dumps({"directives": {"sec-1": RECORD}}))
        with pytest.raises(KnowledgeStoreUnavailable, match="layout"):
            load_directives_file(path)

    def test_invalid_record_in_file(self, tmp_path):
        path = tmp_path / "directives.json"
        path.write_text(json.dumps([{"id": "x", "severity": "MUST"}]))
        with pytest.raises(InvalidDirectiveRecord):
            load_directives_file(path)
