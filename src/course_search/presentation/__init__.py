"""
Presentation Layer - User Interface and External APIs

Contains:
- api: REST API (FastAPI)
- mcp_server: Model Context Protocol server and tools
- settings: environment-backed runtime configuration
"""

from .settings import Settings

__all__ = ["Settings"]
