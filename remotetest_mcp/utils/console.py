"""Colourful console logging for the server process."""

import logging
import re
import sys
from datetime import datetime

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Longest prefix listed first wins.
COMPONENT_COLORS = {
    "remotetest_mcp.output": COLORS["white"],
    "remotetest_mcp.services.executor": COLORS["bright_blue"],
    "remotetest_mcp.services.uploader": COLORS["bright_cyan"],
    "remotetest_mcp.services.pool": COLORS["bright_magenta"],
    "remotetest_mcp.services": COLORS["cyan"],
    "remotetest_mcp.middleware": COLORS["yellow"],
    "remotetest_mcp.config": COLORS["green"],
    "default": COLORS["white"],
}

PACKAGE_PREFIX = "remotetest_mcp."

SSH_TARGET = re.compile(r"([\w.\-]+@[\w.\-]+:\d+)")
DURATION = re.compile(r"(\d+\.?\d*ms)")
EXIT_CODE = re.compile(r"(exit code -?\d+)", re.IGNORECASE)


def use_console_colors(enabled: bool) -> bool:
    """Colour output only when enabled and stderr is a terminal."""
    return enabled and sys.stderr.isatty()


class ColorfulFormatter(logging.Formatter):
    """Log formatter with aligned columns and per-component colours."""

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created).astimezone()
        return f"{dt.strftime('%H:%M:%S')}.{int(record.msecs):03d} {dt.strftime('%m/%d')}"

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name.removeprefix(PACKAGE_PREFIX)
        return self._colorize(f"{name:<20}", self._get_component_color(record.name))

    def _highlight_message(self, message: str) -> str:
        """Highlight SSH targets, durations and exit codes."""
        if not self.use_colors:
            return message
        message = SSH_TARGET.sub(f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message)
        message = DURATION.sub(f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message)
        return EXIT_CODE.sub(f"{COLORS['bold']}\\1{COLORS['reset']}", message)

    def format(self, record: logging.LogRecord) -> str:
        """Format as "time | LEVEL | component | message"."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._colorize(
            f"{record.levelname:<8}", LEVEL_COLORS.get(record.levelname, COLORS["white"])
        )
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())
        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class MCPRequestFormatter(ColorfulFormatter):
    """ColorfulFormatter with a short event marker in front of each line."""

    MARKERS = (
        (("starting", "ready"), ">>>", "bright_green"),
        (("shutting down", "shutdown"), "<<<", "bright_red"),
        (("error", "failed"), "!!", "bright_red"),
        (("warning", "slow", "exceeded"), "!", "bright_yellow"),
        (("finished", "completed", "uploaded", "downloaded"), "OK", "bright_green"),
        (("opening", "creating"), "+", "bright_cyan"),
        (("closing", "removing", "evicting"), "-", "bright_yellow"),
        (("reusing",), "~", "bright_magenta"),
    )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        for words, marker, color in self.MARKERS:
            if any(word in message for word in words):
                return f"{self._colorize(marker, COLORS[color]):<4} {base}"
        return f"    {base}"
