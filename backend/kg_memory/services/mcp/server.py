"""MCP Server - expose directive retrieval via Model Context Protocol.

Lets coding agents ask for the directives relevant to their current task
(query_directives) and inspect how a task is classified (detect_context).
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession
from pydantic import ValidationError

from kg_memory.config import get_settings
from kg_memory.schemas import DetectContextRequest, QueryDirectivesRequest
from kg_memory.services.directive_service import DirectiveService, build_directive_service

logger = logging.getLogger(__name__)

# Global service instance for tools
_service: DirectiveService | None = None


def _get_service() -> DirectiveService:
    """Get or create the global directive service."""
    global _service
    if _service is None:
        _service = build_directive_service(get_settings())
    return _service


def clear_mcp_service() -> None:
    """Clear the global service (for testing)."""
    global _service
    _service = None


@asynccontextmanager
async def server_lifespan(server: FastMCP):
    """Initialize resources on server startup."""
    logger.info("MCP Server starting up")
    _get_service()
    try:
        yield {}
    finally:
        logger.info("MCP Server shutting down")


mcp_server = FastMCP(
    name="kg-memory",
    lifespan=server_lifespan,
)


def _validation_error(e: ValidationError) -> dict[str, Any]:
    return {
        "error": "invalid_request",
        "details": [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ],
    }


@mcp_server.tool()
async def query_directives(
    taskDescription: str,
    modeSlug: str | None = None,
    maxItems: int | None = None,
    tokenBudget: int | None = None,
    severityFilter: list[str] | None = None,
    workspace: str | None = None,
    strictLayer: bool = False,
    ctx: Context[ServerSession, dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Retrieve the coding directives relevant to a task, ranked and fitted to a token budget.

    Args:
        taskDescription: What the agent is about to do
        modeSlug: Agent mode (architect, code, debug) used to boost matching topics
        maxItems: Maximum directives to return (1-100)
        tokenBudget: Token ceiling for the returned directives (100-10000)
        severityFilter: Only consider these severities (MUST, SHOULD, MAY)
        workspace: Restrict candidates to a workspace
        strictLayer: Only directives tagged for the detected layer

    Returns:
        Selected directives with score breakdowns, the detected context and diagnostics
    """
    try:
        request = QueryDirectivesRequest.model_validate(
            {
                "taskDescription": taskDescription,
                "modeSlug": modeSlug,
                "options": {
                    "maxItems": maxItems,
                    "tokenBudget": tokenBudget,
                    "severityFilter": severityFilter,
                    "workspace": workspace,
                    "strictLayer": strictLayer,
                },
            }
        )
    except ValidationError as e:
        return _validation_error(e)

    if ctx:
        await ctx.info("Detecting context and ranking directives...")

    response = await _get_service().query_directives(request)
    return response.model_dump(mode="json")


@mcp_server.tool()
async def detect_context(
    text: str,
    returnKeywords: bool = False,
    confidenceThreshold: float | None = None,
    ctx: Context[ServerSession, dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Classify task text by architectural layer, topics and technologies.

    Args:
        text: Task text to analyze (up to 10000 characters)
        returnKeywords: Include extracted keywords in the result
        confidenceThreshold: Drop rule-based topic/technology hits below this confidence

    Returns:
        Detected layer, topics, technologies, confidence and diagnostics
    """
    try:
        request = DetectContextRequest.model_validate(
            {
                "text": text,
                "options": {
                    "returnKeywords": returnKeywords,
                    "confidenceThreshold": confidenceThreshold,
                },
            }
        )
    except ValidationError as e:
        return _validation_error(e)

    if ctx:
        await ctx.info("Detecting context...")

    response = await _get_service().detect_context(request)
    return response.model_dump(mode="json")


def run() -> None:
    """Console entry point: serve the tools over stdio."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    mcp_server.run()
