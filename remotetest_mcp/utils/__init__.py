"""Utilities for RemoteTest MCP."""

from remotetest_mcp.utils.console import (
    ColorfulFormatter,
    MCPRequestFormatter,
    use_console_colors,
)
from remotetest_mcp.utils.filetype import is_text_file, normalize_line_endings
from remotetest_mcp.utils.output_filter import (
    LineSplitter,
    apply_color_rule,
    filter_lines,
    find_color,
    get_log_level,
    match_pattern,
    strip_ansi,
)
from remotetest_mcp.utils.ping import check_host_online, check_servers_online
from remotetest_mcp.utils.variables import (
    build_variables,
    calculate_remote_path,
    is_path_within,
    substitute,
)

__all__ = [
    "ColorfulFormatter",
    "LineSplitter",
    "MCPRequestFormatter",
    "apply_color_rule",
    "build_variables",
    "calculate_remote_path",
    "check_host_online",
    "check_servers_online",
    "filter_lines",
    "find_color",
    "get_log_level",
    "is_path_within",
    "is_text_file",
    "match_pattern",
    "normalize_line_endings",
    "strip_ansi",
    "use_console_colors",
]
