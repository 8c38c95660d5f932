"""RemoteTest MCP middleware components."""

from remotetest_mcp.middleware.base import RemoteTestMiddleware
from remotetest_mcp.middleware.errors import ErrorHandlingMiddleware
from remotetest_mcp.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "RemoteTestMiddleware",
]
