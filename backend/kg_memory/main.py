"""
kg-memory API Server
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kg_memory.api import router
from kg_memory.api.deps import get_directive_service
from kg_memory.api.health import health_check
from kg_memory.config import get_settings
from kg_memory.exceptions import ErrorType, KGMemoryError
from kg_memory.services.telemetry import setup_telemetry

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    logger.info(f"Starting kg-memory on port {settings.port}")

    if settings.otlp_endpoint or settings.telemetry_console_export:
        setup_telemetry(
            otlp_endpoint=settings.otlp_endpoint or None,
            console_export=settings.telemetry_console_export,
        )

    # Fail fast on invalid ranking config or an unreadable directive file
    service = get_directive_service()
    logger.info(f"Provider chain: {service.provider_chain.names() or ['rule-based']}")

    yield
    logger.info("Shutting down kg-memory")


app = FastAPI(
    title="kg-memory",
    description="Context-aware directive retrieval for coding agents",
    version="0.1.0",
    lifespan=lifespan,
)


_STATUS_BY_ERROR = {
    ErrorType.INVALID_RANKING_CONFIG: 500,
    ErrorType.KNOWLEDGE_STORE_UNAVAILABLE: 503,
    ErrorType.INVALID_DIRECTIVE: 500,
}


@app.exception_handler(KGMemoryError)
async def kg_memory_error_handler(_request: Request, exc: KGMemoryError) -> JSONResponse:
    logger.error(f"{exc.error_type.value}: {exc.message}")
    return JSONResponse(
        status_code=_STATUS_BY_ERROR.get(exc.error_type, 500), content=exc.to_dict()
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Welcome to kg-memory", "docs": "/docs"}


# Liveness at root level for k8s probes; the full set lives under /api
app.add_api_route("/health", health_check, methods=["GET"], tags=["health"])
app.include_router(router, prefix="/api")


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run("kg_memory.main:app", host=settings.host, port=settings.port)
