"""Tests for the directive, context and health endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from kg_memory.api.deps import get_directive_service
from kg_memory.exceptions import KnowledgeStoreUnavailable
from kg_memory.main import app
from kg_memory.services.context_detection import ContextDetectionEngine
from kg_memory.services.directive_service import DirectiveService
from kg_memory.services.directive_store import InMemoryDirectiveStore
from kg_memory.services.query import QueryOrchestrator
from kg_memory.services.query_cache import QueryCache
from kg_memory.services.ranking import RankingEngine, TokenBudgetAllocator

AUTH_TASK = "Hash passwords in the authentication service"


@pytest.fixture
async def client(directive_service):
    """Async test client backed by the rule-based sample service."""
    app.dependency_overrides[get_directive_service] = lambda: directive_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        for path in ("/health", "/api/health"):
            response = await client.get(path)
            assert response.status_code == 200
            assert response.json() == {"status": "healthy", "service": "kg-memory"}

    @pytest.mark.asyncio
    async def test_providers_without_chain(self, client: AsyncClient):
        response = await client.get("/api/providers")

        assert response.status_code == 200
        data = response.json()
        assert data["providers"] == []
        assert data["chain"] == []
        assert data["timeout_seconds"] == 5.0

    @pytest.mark.asyncio
    async def test_status_healthy_with_rule_based_only(self, client: AsyncClient):
        response = await client.get("/api/status")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["providers_configured"] == 0
        assert data["fallback"] == "rule-based"
        assert data["cache"] is None


class TestQueryDirectives:
    """Tests for POST /api/directives/query."""

    @pytest.mark.asyncio
    async def test_query_returns_ranked_directives(self, client: AsyncClient):
        response = await client.post(
            "/api/directives/query", json={"taskDescription": AUTH_TASK}
        )

        assert response.status_code == 200
        data = response.json()
        first = data["directives"][0]
        assert first["id"] == "sec-2"
        assert first["severity"] == "MUST"
        assert first["citation"] == "rule-1#General"
        assert set(first["breakdown"]) == {
            "authority",
            "layer_match",
            "topic_overlap",
            "severity_boost",
            "semantic_similarity",
            "when_to_apply",
        }
        assert data["context"]["layer"] == "2-Application"
        assert data["diagnostics"]["total_directives"] == 6
        assert data["diagnostics"]["fallback_used"] is True

    @pytest.mark.asyncio
    async def test_snake_case_fields_accepted(self, client: AsyncClient):
        response = await client.post(
            "/api/directives/query",
            json={"task_description": AUTH_TASK, "options": {"max_items": 2}},
        )

        assert response.status_code == 200
        assert len(response.json()["directives"]) == 2

    @pytest.mark.asyncio
    async def test_severity_filter(self, client: AsyncClient):
        response = await client.post(
            "/api/directives/query",
            json={"taskDescription": AUTH_TASK, "options": {"severityFilter": ["MUST"]}},
        )

        assert response.status_code == 200
        severities = {d["severity"] for d in response.json()["directives"]}
        assert severities == {"MUST"}

    @pytest.mark.asyncio
    async def test_mode_slug(self, client: AsyncClient):
        response = await client.post(
            "/api/directives/query",
            json={"taskDescription": "Investigate the crash", "modeSlug": "debug"},
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"taskDescription": ""},
            {"taskDescription": "   "},
            {"taskDescription": "x" * 10_001},
            {"taskDescription": AUTH_TASK, "modeSlug": "review"},
            {"taskDescription": AUTH_TASK, "options": {"tokenBudget": 50}},
            {"taskDescription": AUTH_TASK, "options": {"tokenBudget": 20_000}},
            {"taskDescription": AUTH_TASK, "options": {"maxItems": 0}},
            {"taskDescription": AUTH_TASK, "options": {"severityFilter": ["SOMETIMES"]}},
            {"taskDescription": AUTH_TASK, "options": {"sortBy": "score"}},
            {},
        ],
        ids=[
            "empty",
            "blank",
            "too-long",
            "unknown-mode",
            "budget-too-small",
            "budget-too-large",
            "zero-items",
            "bad-severity",
            "unknown-option",
            "missing-task",
        ],
    )
    async def test_invalid_requests_rejected(self, client: AsyncClient, body):
        response = await client.post("/api/directives/query", json=body)
        assert response.status_code == 422


class TestDetectContext:
    """Tests for POST /api/context/detect."""

    @pytest.mark.asyncio
    async def test_detect_with_keywords(self, client: AsyncClient):
        response = await client.post(
            "/api/context/detect",
            json={
                "text": "Create a React component with CSS styling",
                "options": {"returnKeywords": True},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["layer"] == "1-Presentation"
        assert data["confidence"] == pytest.approx(0.4)
        assert data["keywords"] == ["react", "component", "css", "styling"]
        assert "react" in data["indicators"]
        assert "react" in data["technologies"]
        assert data["diagnostics"]["fallback_used"] is True
        assert data["diagnostics"]["model_provider"] is None

    @pytest.mark.asyncio
    async def test_detect_without_match(self, client: AsyncClient):
        response = await client.post(
            "/api/context/detect", json={"text": "Hello there, nice weather today"}
        )

        data = response.json()
        assert data["layer"] == "*"
        assert data["confidence"] == pytest.approx(0.1)
        assert data["keywords"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"text": ""},
            {"text": "deploy", "options": {"confidenceThreshold": 1.5}},
        ],
    )
    async def test_invalid_requests_rejected(self, client: AsyncClient, body):
        response = await client.post("/api/context/detect", json=body)
        assert response.status_code == 422


class TestErrorHandling:
    @pytest.mark.asyncio
    async def test_store_failure_maps_to_503(self, client: AsyncClient):
        def unavailable():
            raise KnowledgeStoreUnavailable("Cannot read directives from /missing.json")

        app.dependency_overrides[get_directive_service] = unavailable

        response = await client.post(
            "/api/directives/query", json={"taskDescription": AUTH_TASK}
        )

        assert response.status_code == 503
        assert response.json()["error"] == "knowledge_store_unavailable"


class TestQueryCache:
    @pytest.fixture
    async def cached_client(self, sample_directives):
        detector = ContextDetectionEngine()
        service = DirectiveService(
            QueryOrchestrator(detector, RankingEngine(), TokenBudgetAllocator()),
            InMemoryDirectiveStore(sample_directives),
            detector,
            cache=QueryCache(),
        )
        app.dependency_overrides[get_directive_service] = lambda: service
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
        app.dependency_overrides.clear()

    @pytest.mark.asyncio
    async def test_second_query_hits_cache(self, cached_client: AsyncClient):
        body = {"taskDescription": AUTH_TASK}
        first = await cached_client.post("/api/directives/query", json=body)
        second = await cached_client.post("/api/directives/query", json=body)

        assert first.json()["diagnostics"]["cache_hit"] is False
        assert second.json()["diagnostics"]["cache_hit"] is True
        assert second.json()["directives"] == first.json()["directives"]

        status = (await cached_client.get("/api/status")).json()
        assert status["cache"]["hits"] == 1
        assert status["cache"]["size"] == 1
