"""Structured log sink backed by the logging module."""

import logging
from collections.abc import Iterable

from remotetest_mcp.models import ColorRule, OutputLine, Severity
from remotetest_mcp.utils.output_filter import apply_color_rule

OUTPUT_LOGGER = "remotetest_mcp.output"

LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.TRACE: logging.DEBUG,
}


class ChannelSink:
    """Append-only log surface.

    Every line is emitted on the output logger at the level matching its
    severity and kept so the caller can render the channel afterwards.
    """

    def __init__(
        self,
        name: str = "RemoteTest",
        logger: logging.Logger | None = None,
        color_rules: Iterable[ColorRule] = (),
        use_colors: bool = False,
    ) -> None:
        """Initialize channel sink.

        Args:
            name: Channel name shown in log records
            logger: Optional custom logger. Defaults to the output logger.
            color_rules: Rules used to colour lines when use_colors is set
            use_colors: Wrap logged lines in ANSI colours
        """
        self.name = name
        self.logger = logger or logging.getLogger(OUTPUT_LOGGER)
        self.color_rules = tuple(color_rules)
        self.use_colors = use_colors
        self.revealed = False
        self._lines: list[OutputLine] = []

    def write_line(self, text: str, severity: Severity = Severity.INFO) -> None:
        self._lines.append(OutputLine(text=text, severity=severity))
        rendered = apply_color_rule(text, self.color_rules) if self.use_colors else text
        self.logger.log(LEVELS[severity], "[%s] %s", self.name, rendered)

    def reveal(self) -> None:
        self.revealed = True

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> list[OutputLine]:
        """Lines written since the last clear()."""
        return list(self._lines)

    def render(self) -> str:
        """Channel contents as "[severity] text" lines."""
        return "\n".join(f"[{line.severity.value}] {line.text}" for line in self._lines)
