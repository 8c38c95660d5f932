"""Tool call logging with timings."""

import json
import logging
import time
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from remotetest_mcp.middleware.base import RemoteTestMiddleware

# Methods with a dedicated hook below.
HANDLED_METHODS = ("tools/call", "tools/list")


class LoggingMiddleware(RemoteTestMiddleware):
    """Logs each tool call with its arguments, result size and duration.

    Calls slower than slow_threshold_ms are logged at WARNING. Remote test
    runs are routinely slow, so the default threshold is generous.

    Example:
        >>> mcp.add_middleware(LoggingMiddleware(include_payloads=True))
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        slow_threshold_ms: float = 30000.0,
    ) -> None:
        """Initialize logging middleware.

        Args:
            logger: Optional custom logger.
            include_payloads: Log arguments and results at DEBUG.
            max_payload_length: Truncate logged payloads beyond this.
            slow_threshold_ms: Duration that counts as slow.
        """
        super().__init__(logger=logger)
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.slow_threshold_ms = slow_threshold_ms

    def _truncate(self, data: Any) -> str:
        try:
            text = json.dumps(data, default=str)
        except (TypeError, ValueError):
            text = str(data)
        if len(text) > self.max_payload_length:
            return text[: self.max_payload_length] + "... [truncated]"
        return text

    def _format_args(self, args: dict[str, Any] | None) -> str:
        if not args:
            return "()"
        parts = []
        for key, value in args.items():
            if isinstance(value, str) and len(value) > 60:
                value = value[:60] + "..."
            parts.append(f"{key}={value!r}")
        return f"({', '.join(parts)})"

    def _format_duration(self, duration_ms: float) -> str:
        if duration_ms >= self.slow_threshold_ms:
            return f"{duration_ms:.1f}ms SLOW"
        return f"{duration_ms:.1f}ms"

    def _summarize_result(self, result: Any) -> str:
        """One-phrase description of a tool result."""
        if result is None:
            return "null"
        if isinstance(result, str):
            lines = result.count("\n") + 1
            return f"{len(result)} chars, {lines} lines" if lines > 1 else f"{len(result)} chars"
        if isinstance(result, dict):
            return f"{len(result)} keys"
        if isinstance(result, (list, tuple)):
            return f"{len(result)} items"
        content = getattr(result, "content", None)
        if isinstance(content, (list, tuple)):
            return f"{len(content)} content item(s)"
        return type(result).__name__

    async def on_call_tool(self, context: MiddlewareContext, call_next: Any) -> Any:
        """Log a tool call before and after it runs."""
        start = time.perf_counter()
        tool_name = getattr(context.message, "name", "unknown")
        args = getattr(context.message, "arguments", None)

        self.logger.info(">>> TOOL: %s%s", tool_name, self._format_args(args))
        if self.include_payloads and args:
            self.logger.debug("    Args: %s", self._truncate(args))

        try:
            result = await call_next(context)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self.logger.error(
                "!!! TOOL: %s -> %s: %s [%s]",
                tool_name,
                type(e).__name__,
                e,
                self._format_duration(duration_ms),
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        level = logging.WARNING if duration_ms >= self.slow_threshold_ms else logging.INFO
        self.logger.log(
            level,
            "<<< TOOL: %s -> %s [%s]",
            tool_name,
            self._summarize_result(result),
            self._format_duration(duration_ms),
        )
        if self.include_payloads and result is not None:
            self.logger.debug("    Result: %s", self._truncate(result))
        return result

    async def on_list_tools(self, context: MiddlewareContext, call_next: Any) -> Any:
        start = time.perf_counter()
        result = await call_next(context)
        tools = getattr(result, "tools", result)
        count = len(tools) if isinstance(tools, (list, tuple)) else "?"
        self.logger.info(
            "<<< LIST TOOLS -> %s tool(s) [%s]",
            count,
            self._format_duration((time.perf_counter() - start) * 1000),
        )
        return result

    async def on_message(self, context: MiddlewareContext, call_next: Any) -> Any:
        """Log remaining MCP methods at DEBUG."""
        if context.method in HANDLED_METHODS:
            return await call_next(context)

        start = time.perf_counter()
        result = await call_next(context)
        self.logger.debug(
            "MCP: %s [%s]",
            context.method,
            self._format_duration((time.perf_counter() - start) * 1000),
        )
        return result
