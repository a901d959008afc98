"""
Course Search MCP Server

Usage as standalone server:
    python -m course_search.presentation.mcp_server

Or in mcp.json:
    {
        "servers": {
            "course-search": {
                "type": "stdio",
                "command": "python",
                "args": ["-m", "course_search.presentation.mcp_server"],
                "env": {"OPENAI_API_KEY": "..."}
            }
        }
    }

Usage for integration:
    from course_search.presentation.mcp_server import create_server, register_all_tools

    server = create_server()
    server.run()
"""

from __future__ import annotations

from .server import create_server, get_container, main
from .tools import register_all_tools

__all__ = ["create_server", "get_container", "main", "register_all_tools"]
