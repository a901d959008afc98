"""
Course Search MCP Server

A standalone Model Context Protocol server for federated course search.
Shares the application container with the HTTP API, so both surfaces see
the same cache, analytics and rate limits when run in one process.

Architecture:
- instructions.py: SERVER_INSTRUCTIONS for AI agents
- tool_registry.py: Centralized tool registration
- tools/: Tool implementations
- container: DI container (dependency-injector) for service lifecycle
"""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from course_search.container import ApplicationContainer, close_container
from course_search.presentation.settings import Settings

from .instructions import SERVER_INSTRUCTIONS
from .tool_registry import register_all_mcp_tools

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from course_search.application.search import CourseSearchService
    from course_search.infrastructure.ratelimit import SearchRateLimiter

logger = logging.getLogger(__name__)

# ── Module-level DI container ──────────────────────────────────────────────
_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get the application DI container.

    Raises:
        RuntimeError: If ``create_server()`` has not been called yet.
    """
    if _container is None:
        msg = "Container not initialized. Call create_server() first."
        raise RuntimeError(msg)
    return _container


def _make_lifespan(
    container: ApplicationContainer,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[ApplicationContainer]]:
    """Create a FastMCP lifespan handler bound to *container*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[ApplicationContainer]:
        logger.info("Lifecycle: startup, course search tools ready")
        try:
            yield container
        finally:
            await close_container(container)

    return _lifespan


def create_server(
    settings: Settings | None = None,
    name: str = "course-search",
    disable_security: bool = False,
    json_response: bool = False,
    stateless_http: bool = False,
    container: ApplicationContainer | None = None,
) -> FastMCP:
    """
    Create and configure the Course Search MCP server.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        name: Server name.
        disable_security: Disable DNS rebinding protection (needed for remote access).
        json_response: Use JSON responses instead of SSE.
        stateless_http: Use stateless HTTP mode (no session management).
        container: Pre-built container, e.g. one shared with the HTTP API.

    Returns:
        Configured FastMCP server instance.
    """
    global _container
    logger.info("Initializing Course Search MCP Server...")

    if container is None:
        settings = settings or Settings.from_env()
        container = ApplicationContainer()
        container.config.from_dict(settings.to_config())
        logger.info(f"Course search configured: {settings.describe()}")
    _container = container

    service = cast("CourseSearchService", container.search_service())
    limiter = cast("SearchRateLimiter", container.rate_limiter())

    # ── Transport security ──────────────────────────────────────────────
    if disable_security:
        transport_security = TransportSecuritySettings(enable_dns_rebinding_protection=False)
        logger.info("DNS rebinding protection disabled for remote access")
    else:
        transport_security = None

    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        transport_security=transport_security,
        json_response=json_response,
        stateless_http=stateless_http,
        lifespan=_make_lifespan(container),
    )

    stats = register_all_mcp_tools(mcp, service, limiter)
    logger.info(f"Tool registration complete: {stats}")

    logger.info("Course Search MCP Server initialized successfully")
    return mcp


def main() -> None:
    """Run the MCP server over stdio."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    server = create_server()
    server.run()


if __name__ == "__main__":
    main()
