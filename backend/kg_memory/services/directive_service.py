"""Externally visible operations: query_directives and detect_context.

Shared by the HTTP API and the MCP tools. build_directive_service is the
composition root that wires settings, providers, store and pipeline.
"""

import logging
import time

from kg_memory.config import Settings, load_ranking_config
from kg_memory.models import Directive
from kg_memory.providers import ProviderChain
from kg_memory.providers.factory import build_provider_chain
from kg_memory.schemas import (
    ContextSummary,
    DetectContextRequest,
    DetectContextResponse,
    DirectiveResult,
    ProvidersResponse,
    ProviderStatus,
    QueryDirectivesRequest,
    QueryDirectivesResponse,
)
from kg_memory.services.context_detection import ContextDetectionEngine, DetectionOptions
from kg_memory.services.directive_store import (
    DirectiveQuery,
    DirectiveStore,
    InMemoryDirectiveStore,
    load_directives_file,
)
from kg_memory.services.query import QueryOptions, QueryOrchestrator
from kg_memory.services.query_cache import QueryCache, make_cache_key
from kg_memory.services.ranking import (
    RankingEngine,
    RuleAuthorityIndex,
    TokenBudgetAllocator,
    estimator_for,
)
from kg_memory.services.vocabulary import Vocabulary

logger = logging.getLogger(__name__)


class DirectiveService:
    """Fetches candidates from the store and runs them through the pipeline."""

    def __init__(
        self,
        orchestrator: QueryOrchestrator,
        store: DirectiveStore,
        detector: ContextDetectionEngine,
        default_workspace: str | None = None,
        cache: QueryCache[QueryDirectivesResponse] | None = None,
    ):
        self._orchestrator = orchestrator
        self._store = store
        self._detector = detector
        self._default_workspace = default_workspace or None
        self._cache = cache

    @property
    def provider_chain(self) -> ProviderChain:
        return self._detector.provider_chain

    @property
    def cache(self) -> QueryCache[QueryDirectivesResponse] | None:
        return self._cache

    def _cache_key(self, request: QueryDirectivesRequest) -> str:
        """Key on the whitespace- and case-normalized task plus mode and options."""
        options = request.options.model_dump(mode="json")
        if options["severity_filter"]:
            options["severity_filter"] = sorted(options["severity_filter"])
        options["workspace"] = request.options.workspace or self._default_workspace
        return make_cache_key(
            {
                "task": " ".join(request.task_description.split()).lower(),
                "mode": request.mode_slug,
                "options": options,
            }
        )

    async def _candidates(self, request: QueryDirectivesRequest) -> list[Directive]:
        options = request.options
        criteria = DirectiveQuery(
            workspace=options.workspace or self._default_workspace,
            severities=frozenset(options.severity_filter or ()),
        )
        return await self._store.query_directives(criteria)

    async def query_directives(self, request: QueryDirectivesRequest) -> QueryDirectivesResponse:
        start = time.perf_counter()
        key = None
        if self._cache is not None:
            key = self._cache_key(request)
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("Query cache hit (%d directives)", len(cached.directives))
                diagnostics = {
                    **cached.diagnostics,
                    "cache_hit": True,
                    "query_time_ms": round((time.perf_counter() - start) * 1000, 2),
                }
                return cached.model_copy(update={"diagnostics": diagnostics})

        candidates = await self._candidates(request)
        options = request.options
        result = await self._orchestrator.query(
            request.task_description,
            candidates,
            QueryOptions(
                mode_slug=request.mode_slug,
                max_items=options.max_items,
                token_budget=options.token_budget,
                severity_filter=frozenset(options.severity_filter or ()),
                strict_layer=options.strict_layer,
            ),
        )
        response = QueryDirectivesResponse(
            directives=[DirectiveResult.from_scored(item) for item in result.selected],
            context=ContextSummary.from_context(result.context),
            diagnostics=result.diagnostics.to_dict(),
        )
        if key is not None:
            self._cache.set(key, response)
        return response

    async def detect_context(self, request: DetectContextRequest) -> DetectContextResponse:
        context = await self._detector.detect_context(
            request.text,
            DetectionOptions(
                return_keywords=request.options.return_keywords,
                confidence_threshold=request.options.confidence_threshold,
            ),
        )
        return DetectContextResponse.from_context(context)

    async def provider_status(self) -> ProvidersResponse:
        chain = self.provider_chain
        health = await chain.health()
        return ProvidersResponse(
            providers=[ProviderStatus(**info.to_dict()) for info in health.values()],
            chain=chain.names(),
            timeout_seconds=chain.timeout_seconds,
        )


def build_directive_service(
    settings: Settings, vocabulary: Vocabulary | None = None
) -> DirectiveService:
    """Wire the service from settings.

    Raises:
        InvalidRankingConfig: Ranking overrides fail validation.
        KnowledgeStoreUnavailable: The directives file cannot be read.
        ValueError: An unknown provider name is configured.
    """
    vocabulary = vocabulary or Vocabulary.default()
    ranking_config = load_ranking_config(settings)
    if settings.authority_mode != ranking_config.authority_mode:
        ranking_config = ranking_config.merged({"authority_mode": settings.authority_mode})

    authority_index = RuleAuthorityIndex()
    store = InMemoryDirectiveStore()
    if settings.directives_path:
        snapshot = load_directives_file(settings.directives_path)
        store = InMemoryDirectiveStore(snapshot.directives)
        authority_index = snapshot.authority_index
    else:
        logger.warning("KGM_DIRECTIVES_PATH not set; directive store is empty")

    detector = ContextDetectionEngine(build_provider_chain(settings, vocabulary), vocabulary)
    orchestrator = QueryOrchestrator(
        detector,
        RankingEngine(ranking_config, vocabulary, authority_index),
        TokenBudgetAllocator(estimator_for(ranking_config.token_estimation)),
        default_token_budget=settings.default_token_budget,
        default_max_items=settings.default_max_items,
    )
    cache = None
    if settings.query_cache_size > 0:
        cache = QueryCache(settings.query_cache_size, settings.query_cache_ttl_seconds)
    return DirectiveService(orchestrator, store, detector, settings.workspace, cache)
