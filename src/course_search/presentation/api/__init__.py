"""HTTP API (FastAPI)."""

from .server import DEFAULT_API_PORT, create_api_server, create_app

__all__ = ["DEFAULT_API_PORT", "create_api_server", "create_app"]
