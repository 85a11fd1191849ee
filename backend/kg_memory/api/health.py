"""
Health and status endpoints.

- /health: Basic liveness check
- /status: Provider chain and query cache summary
- /providers: Per-provider availability
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from kg_memory.api.deps import DirectiveServiceDep
from kg_memory.schemas import ProvidersResponse

router = APIRouter(tags=["health"])

SERVICE_NAME = "kg-memory"


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    service: str


class StatusResponse(BaseModel):
    """Detailed status response."""

    status: str
    service: str
    providers_available: int
    providers_configured: int
    fallback: str
    cache: dict[str, Any] | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get("/providers", response_model=ProvidersResponse)
async def providers(service: DirectiveServiceDep) -> ProvidersResponse:
    return await service.provider_status()


@router.get("/status", response_model=StatusResponse)
async def status(service: DirectiveServiceDep) -> StatusResponse:
    """Degraded when no model provider is reachable; detection still works rule-based."""
    info = await service.provider_status()
    available = sum(1 for p in info.providers if p.available)
    return StatusResponse(
        status="healthy" if available or not info.providers else "degraded",
        service=SERVICE_NAME,
        providers_available=available,
        providers_configured=len(info.providers),
        fallback="rule-based",
        cache=service.cache.get_stats().to_dict() if service.cache is not None else None,
    )
