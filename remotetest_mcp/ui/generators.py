"""UI resource generators."""

import re
from collections.abc import Sequence
from typing import Any

from mcp_ui_server import create_ui_resource

from remotetest_mcp.models import OutputLine
from remotetest_mcp.ui.templates import get_output_panel_html


def create_output_panel_ui(
    panel_id: str,
    title: str,
    lines: Sequence[OutputLine],
    colors: Sequence[str | None],
    dropped: int = 0,
) -> dict[str, Any]:
    """Create the live output panel as an MCP-UI resource.

    Args:
        panel_id: Stable identifier used in the resource URI
        title: Panel heading
        lines: Buffered output lines
        colors: Colour-rule result per line
        dropped: Lines already evicted from the buffer

    Returns:
        UIResource dict
    """
    html = get_output_panel_html(title, lines, colors, dropped)
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", panel_id).strip("-") or "output"

    ui_resource = create_ui_resource({
        "uri": f"ui://remotetest-output/{slug}",
        "content": {"type": "rawHtml", "htmlString": html},
        "encoding": "text",
    })

    return ui_resource.model_dump()
