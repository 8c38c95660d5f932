"""Line classification and filtering for remote command output.

Everything here is pure and never raises on user-supplied patterns: a pattern
that does not compile as a regex degrades to a case-insensitive substring
match.
"""

import re
from collections.abc import Iterable, Sequence
from functools import lru_cache
from typing import Final

from remotetest_mcp.models import ColorRule, Severity

ANSI_ESCAPE: Final[re.Pattern[str]] = re.compile(r"\x1b\[[0-9;]*m")

ANSI_COLORS: Final[dict[str, str]] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "gray": "\033[90m",
    "reset": "\033[0m",
}

# Checked in order; first group with a hit decides.
SEVERITY_MARKERS: Final[list[tuple[Severity, tuple[str, ...]]]] = [
    (Severity.ERROR, ("[error]", "[err]", "error:", "exception", "failed", "failure")),
    (Severity.WARN, ("[warn]", "[warning]", "warn:", "warning:")),
    (Severity.TRACE, ("[debug]", "[trace]")),
]

BUILTIN_COLOR_RULES: Final[tuple[ColorRule, ...]] = (
    ColorRule(pattern=r"error|exception|failed|failure", color="red"),
    ColorRule(pattern=r"warn(ing)?", color="yellow"),
    ColorRule(pattern=r"\bpass(ed)?\b|\bsuccess(ful)?\b|\bok\b", color="green"),
    ColorRule(pattern=r"\[(debug|trace)\]", color="gray"),
)


def strip_ansi(text: str) -> str:
    """Remove SGR colour sequences (ESC [ ... m) from text."""
    return ANSI_ESCAPE.sub("", text)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return None


def match_pattern(text: str, pattern: str) -> bool:
    """Test text against a user pattern, case-insensitively.

    Args:
        text: Line to test
        pattern: Regex source; invalid regexes are treated as plain substrings

    Returns:
        True if the pattern matches anywhere in text
    """
    compiled = _compile(pattern)
    if compiled is None:
        return pattern.lower() in text.lower()
    return compiled.search(text) is not None


def line_passes(
    line: str,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
) -> bool:
    """Decide whether a single line survives the include/exclude filters.

    Exclude always wins; an empty include list admits everything.
    """
    if any(match_pattern(line, p) for p in exclude_patterns):
        return False
    if include_patterns and not any(match_pattern(line, p) for p in include_patterns):
        return False
    return True


def filter_lines(
    output: str,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
) -> str:
    """Filter multi-line output line by line.

    Returns:
        Surviving lines joined with newlines
    """
    if not include_patterns and not exclude_patterns:
        return output
    kept = [
        line
        for line in output.split("\n")
        if line_passes(line, include_patterns, exclude_patterns)
    ]
    return "\n".join(kept)


def get_log_level(line: str) -> Severity:
    """Classify a line by well-known markers.

    A heuristic, not a parser: "failed" inside an unrelated word still counts.
    """
    lowered = line.lower()
    for severity, markers in SEVERITY_MARKERS:
        if any(marker in lowered for marker in markers):
            return severity
    return Severity.INFO


def find_color(line: str, rules: Iterable[ColorRule] = ()) -> str | None:
    """Return the colour of the first matching rule.

    User rules are consulted before the built-in ones.
    """
    for rule in (*rules, *BUILTIN_COLOR_RULES):
        if match_pattern(line, rule.pattern):
            return rule.color
    return None


def apply_color_rule(line: str, rules: Iterable[ColorRule] = ()) -> str:
    """Wrap line in the ANSI colour of the first matching rule."""
    color = find_color(line, rules)
    if color is None:
        return line
    code = ANSI_COLORS.get(color, ANSI_COLORS["white"])
    return f"{code}{line}{ANSI_COLORS['reset']}"


class LineSplitter:
    """Split a stream of text chunks into lines.

    The trailing incomplete line of each chunk is carried over until the next
    chunk (or flush), so a line delivered in two pieces comes out once.
    """

    def __init__(self) -> None:
        self._carry = ""

    def feed(self, chunk: str) -> list[str]:
        """Add a chunk and return the lines it completed."""
        data = self._carry + chunk
        parts = data.split("\n")
        self._carry = parts.pop()
        return [part.rstrip("\r") for part in parts]

    def flush(self) -> list[str]:
        """Return the pending partial line at end of stream."""
        if not self._carry:
            return []
        line, self._carry = self._carry.rstrip("\r"), ""
        return [line]

    @property
    def pending(self) -> str:
        """Text held back waiting for a newline."""
        return self._carry
