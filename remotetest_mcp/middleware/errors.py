"""Error handling middleware."""

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from remotetest_mcp.errors import RemoteTestError
from remotetest_mcp.middleware.base import RemoteTestMiddleware

ErrorCallback = Callable[[Exception, MiddlewareContext], None]


class ErrorHandlingMiddleware(RemoteTestMiddleware):
    """Logs and counts exceptions escaping a request, then re-raises them.

    Pipeline failures (RemoteTestError) are expected operational errors and
    are logged at WARNING without a traceback. Anything else is a bug and is
    logged at ERROR, with the traceback when include_traceback is set.

    Example:
        >>> middleware = ErrorHandlingMiddleware(include_traceback=True)
        >>> mcp.add_middleware(middleware)
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Log tracebacks for unexpected errors.
            error_callback: Called as error_callback(exception, context).
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback
        self.error_callback = error_callback
        self._error_counts: dict[str, int] = defaultdict(int)

    def get_error_stats(self) -> dict[str, int]:
        """Occurrences per exception type name."""
        return dict(self._error_counts)

    def reset_stats(self) -> None:
        self._error_counts.clear()

    async def on_message(self, context: MiddlewareContext, call_next: Any) -> Any:
        try:
            return await call_next(context)
        except Exception as e:
            error_type = type(e).__name__
            self._error_counts[error_type] += 1

            if isinstance(e, RemoteTestError):
                self.logger.warning("%s failed: %s: %s", context.method, error_type, e)
            else:
                self.logger.error(
                    "Error in %s: %s: %s",
                    context.method,
                    error_type,
                    e,
                    exc_info=self.include_traceback,
                )

            if self.error_callback:
                try:
                    self.error_callback(e, context)
                except Exception as callback_error:
                    self.logger.warning("Error callback failed: %s", callback_error)
            raise
