"""Rule-level authority topics.

A rule document may declare the topics it is authoritative for. The index
maps rule ids to those topics so the scorer can credit every directive of
an authoritative rule.
"""

from collections.abc import Iterable, Mapping


class RuleAuthorityIndex:
    """Immutable rule_id -> authoritative topics lookup."""

    def __init__(self, rules: Mapping[str, Iterable[str]] | None = None):
        self._topics: dict[str, frozenset[str]] = {
            rule_id: frozenset(t.strip().lower() for t in topics if t.strip())
            for rule_id, topics in (rules or {}).items()
        }

    def __len__(self) -> int:
        return len(self._topics)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._topics

    def topics_for(self, rule_id: str) -> frozenset[str]:
        return self._topics.get(rule_id, frozenset())

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, object]]) -> "RuleAuthorityIndex":
        """Build from rule records with ``id`` and ``authoritativeFor`` keys."""
        rules: dict[str, list[str]] = {}
        for record in records:
            rule_id = str(record.get("id", "")).strip()
            topics = record.get("authoritativeFor", record.get("authoritative_for", []))
            if rule_id and isinstance(topics, list | tuple):
                rules[rule_id] = [str(t) for t in topics]
        return cls(rules)
