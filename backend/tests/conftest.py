"""Shared pytest fixtures and configuration.

Integration tests are skipped by default. Run them with:
    pytest --run-integration

IMPORTANT: Tests must not reach real model providers. The
block_real_llm_calls fixture (autouse=True) raises if a test constructs an
SDK client call without mocking it.
"""

from unittest.mock import AsyncMock, patch

import pytest

from kg_memory.models import Directive, Severity
from kg_memory.services.context_detection import ContextDetectionEngine
from kg_memory.services.directive_service import DirectiveService
from kg_memory.services.directive_store import InMemoryDirectiveStore
from kg_memory.services.query import QueryOrchestrator
from kg_memory.services.ranking import RankingEngine, TokenBudgetAllocator


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires running providers)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires running providers)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is passed."""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class RealAPICallError(Exception):
    """Raised when a test tries to make a real API call without proper mocking."""


def _raise_real_api_error(*args, **kwargs):
    raise RealAPICallError(
        "Test attempted to make a real model provider call! "
        "Mock the provider or the SDK client in your test."
    )


@pytest.fixture(autouse=True)
def block_real_llm_calls(request):
    """Block real SDK calls unless the test is marked as integration."""
    if "integration" in request.keywords:
        yield
        return

    with (
        patch("anthropic.AsyncAnthropic") as mock_anthropic,
        patch("google.genai.Client") as mock_genai,
    ):
        mock_anthropic.return_value.messages.create = AsyncMock(
            side_effect=_raise_real_api_error
        )
        mock_genai.return_value.aio.models.generate_content = AsyncMock(
            side_effect=_raise_real_api_error
        )
        yield


def make_directive(
    id: str = "d1",
    text: str = "Validate all user input before processing",
    severity: Severity | str = Severity.MUST,
    topics: list[str] | None = None,
    **kwargs,
) -> Directive:
    """Build a Directive with sensible defaults."""
    return Directive(
        id=id,
        rule_id=kwargs.pop("rule_id", "rule-1"),
        section=kwargs.pop("section", "General"),
        severity=severity,
        text=text,
        topics=topics if topics is not None else [],
        **kwargs,
    )


@pytest.fixture
def directive_factory():
    """Factory fixture for directives."""
    return make_directive


@pytest.fixture
def sample_directives() -> list[Directive]:
    """A small mixed pool covering several layers and severities."""
    return [
        make_directive(
            "sec-1",
            "Use parameterized queries for all database access to prevent injection",
            Severity.MUST,
            ["security", "database"],
            rationale="String concatenation in SQL enables injection attacks",
            layers=["4-Persistence"],
        ),
        make_directive(
            "sec-2",
            "Hash passwords with a slow adaptive algorithm before storing them",
            Severity.MUST,
            ["security", "authentication"],
            when_to_apply=["When handling authentication or passwords"],
        ),
        make_directive(
            "ui-1",
            "Keep React component state minimal and derive the rest",
            Severity.SHOULD,
            ["react", "styling"],
            layers=["1-Presentation"],
        ),
        make_directive(
            "ui-2",
            "Prefer CSS modules over global styles for component styling",
            Severity.MAY,
            ["styling", "css"],
            layers=["1-Presentation"],
        ),
        make_directive(
            "log-1",
            "Log errors with enough context to reproduce the failure",
            Severity.SHOULD,
            ["logging", "error-handling"],
            when_to_apply=["Applies to all layers"],
        ),
        make_directive(
            "test-1",
            "Write a unit test for every bug fix",
            Severity.SHOULD,
            ["testing"],
        ),
    ]


@pytest.fixture
def directive_service(sample_directives) -> DirectiveService:
    """Rule-based service over the sample pool, no model providers."""
    detector = ContextDetectionEngine()
    orchestrator = QueryOrchestrator(detector, RankingEngine(), TokenBudgetAllocator())
    return DirectiveService(orchestrator, InMemoryDirectiveStore(sample_directives), detector)
