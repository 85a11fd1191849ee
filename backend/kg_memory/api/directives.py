"""Directive retrieval endpoints."""

from fastapi import APIRouter

from kg_memory.api.deps import DirectiveServiceDep
from kg_memory.schemas import (
    DetectContextRequest,
    DetectContextResponse,
    QueryDirectivesRequest,
    QueryDirectivesResponse,
)

router = APIRouter(tags=["directives"])


@router.post("/directives/query", response_model=QueryDirectivesResponse)
async def query_directives(
    request: QueryDirectivesRequest, service: DirectiveServiceDep
) -> QueryDirectivesResponse:
    """Select the directives relevant to a task, within a token budget."""
    return await service.query_directives(request)


@router.post("/context/detect", response_model=DetectContextResponse, tags=["context"])
async def detect_context(
    request: DetectContextRequest, service: DirectiveServiceDep
) -> DetectContextResponse:
    """Classify task text by layer, topics and technologies."""
    return await service.detect_context(request)
