"""
Course Search MCP Tools

Usage:
    from .tools import register_all_tools
    register_all_tools(mcp, service, limiter)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .search import register_search_tools

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from course_search.application.search import CourseSearchService
    from course_search.infrastructure.ratelimit import SearchRateLimiter


def register_all_tools(mcp: FastMCP, service: CourseSearchService, limiter: SearchRateLimiter) -> None:
    register_search_tools(mcp, service, limiter)


__all__ = ["register_all_tools", "register_search_tools"]
