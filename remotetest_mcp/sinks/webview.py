"""Live panel sink rendered as an MCP-UI resource."""

from collections.abc import Iterable
from typing import Any

from remotetest_mcp.models import ColorRule, OutputLine, Severity
from remotetest_mcp.ui import create_output_panel_ui
from remotetest_mcp.utils.output_filter import find_color

MAX_LINES = 5000
RETAIN_LINES = 4000


class WebviewSink:
    """Buffered panel of output lines.

    When the buffer passes MAX_LINES the oldest lines are dropped down to
    RETAIN_LINES, so the panel trims in large steps instead of on every line.
    """

    def __init__(
        self,
        title: str = "RemoteTest Output",
        color_rules: Iterable[ColorRule] = (),
        panel_id: str | None = None,
    ) -> None:
        self.title = title
        self.panel_id = panel_id or title
        self.color_rules = tuple(color_rules)
        self.visible = False
        self.dropped = 0
        self._lines: list[OutputLine] = []

    def write_line(self, text: str, severity: Severity = Severity.INFO) -> None:
        self._lines.append(OutputLine(text=text, severity=severity))
        if len(self._lines) > MAX_LINES:
            overflow = len(self._lines) - RETAIN_LINES
            self._lines = self._lines[overflow:]
            self.dropped += overflow

    def reveal(self) -> None:
        self.visible = True

    def clear(self) -> None:
        self._lines = []
        self.dropped = 0

    @property
    def lines(self) -> list[OutputLine]:
        """Buffered lines, oldest first."""
        return list(self._lines)

    def to_ui_resource(self) -> dict[str, Any]:
        """Render the current buffer as a UIResource dict."""
        colors = [find_color(line.text, self.color_rules) for line in self._lines]
        return create_output_panel_ui(
            self.panel_id, self.title, self._lines, colors, self.dropped
        )
