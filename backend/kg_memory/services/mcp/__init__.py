"""MCP tool surface."""

from .server import clear_mcp_service, detect_context, mcp_server, query_directives

__all__ = ["clear_mcp_service", "detect_context", "mcp_server", "query_directives"]
