"""Tests for the console log formatter."""

import logging
from unittest.mock import patch

from remotetest_mcp.utils.console import (
    ColorfulFormatter,
    MCPRequestFormatter,
    use_console_colors,
)


def _record(name: str, msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_plain_format_has_columns() -> None:
    formatter = ColorfulFormatter(use_colors=False)
    line = formatter.format(_record("remotetest_mcp.services.executor", "Command finished"))
    parts = [p.strip() for p in line.split("|")]
    assert parts[1] == "INFO"
    assert parts[2] == "services.executor"
    assert parts[3] == "Command finished"
    assert "\033[" not in line


def test_colors_highlight_ssh_target() -> None:
    formatter = ColorfulFormatter(use_colors=True)
    line = formatter.format(_record("remotetest_mcp.services.pool", "Opening dev@box:22"))
    assert "\033[95mdev@box:22" in line


def test_request_formatter_marker() -> None:
    formatter = MCPRequestFormatter(use_colors=True)
    assert ">>>" in formatter.format(_record("remotetest_mcp.server", "server starting up"))
    assert "!!" in formatter.format(_record("remotetest_mcp.server", "upload failed"))


def test_request_formatter_plain_has_no_marker() -> None:
    formatter = MCPRequestFormatter(use_colors=False)
    line = formatter.format(_record("remotetest_mcp.server", "server starting up"))
    assert not line.startswith(">>>")


def test_colors_need_setting_and_terminal() -> None:
    with patch("remotetest_mcp.utils.console.sys") as mock_sys:
        mock_sys.stderr.isatty.return_value = True
        assert use_console_colors(True)
        assert not use_console_colors(False)

        mock_sys.stderr.isatty.return_value = False
        assert not use_console_colors(True)
