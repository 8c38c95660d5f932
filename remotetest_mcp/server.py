"""RemoteTest MCP FastMCP server.

Wires the tools, middleware and lifespan together. All behaviour lives in
tools/ and services/.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from remotetest_mcp.config import Settings
from remotetest_mcp.dependencies import Dependencies
from remotetest_mcp.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from remotetest_mcp.tools import (
    download,
    exec_command,
    list_remote,
    projects,
    run_test,
    upload,
)
from remotetest_mcp.utils.console import MCPRequestFormatter, use_console_colors

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging(settings: Settings) -> None:
    """Configure colourful logging for the remotetest_mcp package.

    Runs at import time so it applies however the server is started.
    """
    use_colors = use_console_colors(settings.log_colors)

    package_logger = logging.getLogger("remotetest_mcp")
    package_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(MCPRequestFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.WARNING)
        noisy.handlers = []
        noisy.propagate = False

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging(Settings.from_env())

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Create the dependency container and close the pool on shutdown.

    Yields:
        Lifespan context holding the Dependencies under "deps"
    """
    logger.info("RemoteTest MCP server starting up")
    deps = Dependencies.create()

    project_names = [p.name for p in deps.config.enabled_projects]
    logger.info(
        "Loaded %d project(s) from %s: %s",
        len(project_names),
        deps.config.settings.config_path,
        ", ".join(project_names) if project_names else "(none)",
    )
    logger.info("RemoteTest MCP server ready to accept connections")

    try:
        yield {"deps": deps}
    finally:
        logger.info("RemoteTest MCP server shutting down")
        if deps.pool.pool_size > 0:
            logger.info(
                "Closing %d idle SSH connection(s): %s",
                deps.pool.pool_size,
                ", ".join(deps.pool.idle_hosts),
            )
        await deps.cleanup()
        logger.info("RemoteTest MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings) -> None:
    """Add ErrorHandling then Logging middleware (first added is innermost)."""
    server.add_middleware(
        ErrorHandlingMiddleware(include_traceback=settings.include_traceback)
    )
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=settings.slow_threshold_ms,
        )
    )


def create_server(settings: Settings | None = None) -> FastMCP:
    """Create the MCP server with middleware, tools and the health route."""
    settings = settings or Settings.from_env()
    server = FastMCP("remotetest_mcp", lifespan=app_lifespan)

    configure_middleware(server, settings)

    # run_test/exec_command may return UIResource content, so no output schema.
    for tool in (projects, run_test, exec_command, upload, download, list_remote):
        server.tool(output_schema=None)(tool)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    return server


mcp = create_server()
