#!/usr/bin/env python3
"""
Course Search Server - HTTP Mode

Runs either the REST API or the MCP server over HTTP (SSE or
streamable-http).

Usage:
    # REST API only (default)
    python run_server.py --mode api --port 8000

    # MCP over SSE
    python run_server.py --mode mcp --transport sse --port 8765

Environment Variables:
    OPENAI_API_KEY: Enables query enhancement, ranking and course advice
    COURSE_SEARCH_*: See course_search.presentation.settings
    SERVER_HOST: Server host (default: 0.0.0.0)
    SERVER_PORT: Server port (default: 8000)
    FORWARDED_ALLOW_IPS: Proxies whose X-Forwarded-For is trusted (default: 127.0.0.1)
"""

import argparse
import logging
import os

import uvicorn

from course_search.container import ApplicationContainer
from course_search.presentation.api import DEFAULT_API_PORT, create_api_server
from course_search.presentation.mcp_server import create_server
from course_search.presentation.settings import Settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_app(mode: str, transport: str, no_security: bool):
    settings = Settings.from_env()
    container = ApplicationContainer()
    container.config.from_dict(settings.to_config())
    logger.info(f"  Settings: {settings.describe()}")

    if mode == "api":
        return create_api_server(container=container)

    server = create_server(container=container, disable_security=no_security)
    return server.sse_app() if transport == "sse" else server.streamable_http_app()


def main():
    parser = argparse.ArgumentParser(description="Run the Course Search server in HTTP mode")
    parser.add_argument(
        "--mode",
        choices=["api", "mcp"],
        default="api",
        help="What to serve (default: api)",
    )
    parser.add_argument(
        "--transport",
        choices=["sse", "streamable-http"],
        default="sse",
        help="MCP transport protocol (default: sse)",
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("SERVER_HOST", "0.0.0.0"),
        help="Server host (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("SERVER_PORT", str(DEFAULT_API_PORT))),
        help=f"Server port (default: {DEFAULT_API_PORT})",
    )
    parser.add_argument(
        "--no-security",
        action="store_true",
        help="Disable MCP DNS rebinding protection (for remote access)",
    )
    parser.add_argument(
        "--forwarded-allow-ips",
        default=os.environ.get("FORWARDED_ALLOW_IPS", "127.0.0.1"),
        help="Comma-separated proxy addresses whose X-Forwarded-For is trusted (default: 127.0.0.1)",
    )

    args = parser.parse_args()

    logger.info("Creating Course Search server...")
    logger.info(f"  Mode: {args.mode}")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Trusted proxies: {args.forwarded_allow_ips}")
    if args.mode != "api":
        logger.info(f"  MCP transport: {args.transport}")
        logger.info(f"  DNS Rebinding Protection: {'Disabled' if args.no_security else 'Enabled'}")

    app = build_app(args.mode, args.transport, args.no_security)

    logger.info(f"Starting server at http://{args.host}:{args.port}")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        proxy_headers=True,
        forwarded_allow_ips=args.forwarded_allow_ips,
        server_header=False,
    )


if __name__ == "__main__":
    main()
