"""Directive source: query capability over stored directives.

The in-memory store holds an immutable snapshot loaded from a JSON export.
Records are validated as Directive models when loaded; invalid records are
rejected with their position.
"""

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from kg_memory.constants import WILDCARD_LAYER
from kg_memory.exceptions import InvalidDirectiveRecord, KnowledgeStoreUnavailable
from kg_memory.models import Directive, Severity
from kg_memory.services.ranking.authority import RuleAuthorityIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectiveQuery:
    """Candidate pre-filter. Empty criteria match everything."""

    workspace: str | None = None
    layers: frozenset[str] = frozenset()
    severities: frozenset[Severity] = frozenset()
    limit: int = 1000


class DirectiveStore(Protocol):
    async def query_directives(self, criteria: DirectiveQuery) -> list[Directive]: ...


class InMemoryDirectiveStore:
    """Read-only directive snapshot with workspace, layer and severity filters."""

    def __init__(self, directives: Iterable[Directive] = ()):
        self._directives: tuple[Directive, ...] = tuple(directives)

    def __len__(self) -> int:
        return len(self._directives)

    @property
    def directives(self) -> tuple[Directive, ...]:
        return self._directives

    def _matches(self, directive: Directive, criteria: DirectiveQuery) -> bool:
        if criteria.workspace and directive.workspace not in (None, criteria.workspace):
            return False
        # Directives without layers, or tagged with the wildcard, apply everywhere
        if (
            criteria.layers
            and directive.layers
            and WILDCARD_LAYER not in directive.layers
            and WILDCARD_LAYER not in criteria.layers
            and not directive.layers & criteria.layers
        ):
            return False
        if criteria.severities and directive.severity not in criteria.severities:
            return False
        return True

    async def query_directives(self, criteria: DirectiveQuery) -> list[Directive]:
        matched = [d for d in self._directives if self._matches(d, criteria)]
        if len(matched) > criteria.limit:
            logger.info(
                "Truncating %d matching directives to limit %d", len(matched), criteria.limit
            )
        return matched[: criteria.limit]


def load_directives(records: Sequence[Mapping[str, Any]]) -> list[Directive]:
    """Validate raw records as directives.

    Raises:
        InvalidDirectiveRecord: A record does not match the directive schema.
    """
    directives = []
    for index, record in enumerate(records):
        try:
            directives.append(Directive.model_validate(record))
        except ValidationError as e:
            raise InvalidDirectiveRecord(index, str(e)) from e
    return directives


@dataclass(frozen=True)
class DirectiveSnapshot:
    directives: list[Directive]
    authority_index: RuleAuthorityIndex


def load_directives_file(path: str | Path) -> DirectiveSnapshot:
    """Load a JSON export: a list of directives or an object with
    ``directives`` and optional ``rules`` (carrying ``authoritativeFor``).

    Raises:
        KnowledgeStoreUnavailable: File missing or not JSON.
        InvalidDirectiveRecord: A record does not validate.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise KnowledgeStoreUnavailable(f"Cannot read directives from {path}: {e}") from e

    rules: list[Mapping[str, Any]] = []
    if isinstance(data, dict):
        records = data.get("directives", [])
        rules = data.get("rules", [])
    else:
        records = data
    if not isinstance(records, list) or not isinstance(rules, list):
        raise KnowledgeStoreUnavailable(f"Unexpected directive file layout in {path}")

    directives = load_directives(records)
    index = RuleAuthorityIndex.from_records(r for r in rules if isinstance(r, dict))
    logger.info(
        "Loaded %d directives (%d rules with authority) from %s",
        len(directives),
        len(index),
        path,
    )
    return DirectiveSnapshot(directives, index)
