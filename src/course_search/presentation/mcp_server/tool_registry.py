"""
Tool Registry - Central registration of every MCP tool.

Usage:
    from .tool_registry import register_all_mcp_tools, list_registered_tools

    register_all_mcp_tools(mcp, service, limiter)
    tools = list_registered_tools()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from course_search.application.search import CourseSearchService
    from course_search.infrastructure.ratelimit import SearchRateLimiter

logger = logging.getLogger(__name__)


# ============================================================================
# Tool Categories
# ============================================================================

TOOL_CATEGORIES = {
    "search": {
        "name": "Search",
        "description": "Federated course search and recommendations",
        "tools": ["search_courses", "recommend_courses", "get_course_insights", "list_platforms"],
    },
    "tracking": {
        "name": "Tracking",
        "description": "Click tracking on search results",
        "tools": ["track_course_click"],
    },
    "analytics": {
        "name": "Analytics",
        "description": "Popular queries, trends and platform usage",
        "tools": ["get_popular_searches", "get_search_analytics"],
    },
}


# ============================================================================
# Registration Functions
# ============================================================================


def register_all_mcp_tools(
    mcp: FastMCP,
    service: CourseSearchService,
    limiter: SearchRateLimiter,
) -> dict[str, int]:
    """
    Register all MCP tools.

    Returns:
        Dict with category names and tool counts
    """
    from .tools import register_all_tools

    logger.info("Registering course search tools...")
    register_all_tools(mcp, service, limiter)

    stats = {cat_id: len(cat_info["tools"]) for cat_id, cat_info in TOOL_CATEGORIES.items()}
    logger.info(f"Total registered: {sum(stats.values())} tools")
    return stats


def list_registered_tools() -> dict[str, list[str]]:
    """List every defined tool, grouped by category."""
    return {cat_id: list(cat_info["tools"]) for cat_id, cat_info in TOOL_CATEGORIES.items()}
