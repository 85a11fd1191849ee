"""API routers for kg-memory."""

from fastapi import APIRouter

from kg_memory.api.directives import router as directives_router
from kg_memory.api.health import router as health_router

router = APIRouter()
router.include_router(health_router)  # No prefix - /health, /status, /providers
router.include_router(directives_router)

__all__ = ["router"]
