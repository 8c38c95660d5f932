# ruff: noqa: E501
"""HTML templates for the live output panel."""

import html
import re
from collections.abc import Sequence

from remotetest_mcp.models import OutputLine

# CSS colours for colour-rule names.
COLOR_CSS = {
    "red": "#fca5a5",
    "green": "#86efac",
    "yellow": "#fcd34d",
    "blue": "#93c5fd",
    "magenta": "#f0abfc",
    "cyan": "#67e8f9",
    "white": "#f9fafb",
    "gray": "#9ca3af",
}


def minify_html(html_text: str) -> str:
    """Minify HTML by removing unnecessary whitespace.

    Removes comments (except IE conditional comments), whitespace between
    tags and runs of spaces. Attribute values and tag structure survive.

    Args:
        html_text: HTML string to minify

    Returns:
        Minified HTML string
    """
    html_text = re.sub(r'<!--(?!\[if\s).*?-->', '', html_text, flags=re.DOTALL)
    html_text = re.sub(r'[ \t]+', ' ', html_text)
    html_text = re.sub(r'\n\s*', '\n', html_text)
    html_text = re.sub(r'\n+', '\n', html_text)
    html_text = re.sub(r'>\s+<', '><', html_text)
    return html_text.strip()


def get_base_styles() -> str:
    """Dark terminal-like base styles."""
    return """
    <style>
        :root {
            --background: 222 47% 8%;
            --foreground: 210 40% 96%;
            --muted-foreground: 215 16% 57%;
            --border: 217 19% 27%;
            --primary: 221 83% 53%;
            --radius: 0.5rem;
        }
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
            font-size: 14px;
            line-height: 1.5;
            color: hsl(var(--foreground));
            background: hsl(var(--background));
            padding: 16px;
        }
        .header {
            border-bottom: 1px solid hsl(var(--border));
            padding-bottom: 12px;
            margin-bottom: 12px;
        }
        .title { font-size: 18px; font-weight: 600; }
        .subtitle { font-size: 13px; color: hsl(var(--muted-foreground)); }
        button {
            border: none;
            border-radius: var(--radius);
            padding: 4px 12px;
            cursor: pointer;
            background: hsl(var(--border));
            color: hsl(var(--foreground));
        }
        button.active { background: hsl(var(--primary)); }
    </style>
    """


def _render_line(index: int, line: OutputLine, color: str | None) -> str:
    style = f' style="color: {COLOR_CSS.get(color, COLOR_CSS["white"])}"' if color else ""
    level = line.severity.value
    return (
        f'<div class="line line-{level}" data-level="{level}" data-line="{index}"{style}>'
        f"{html.escape(line.text)}</div>"
    )


def get_output_panel_html(
    title: str,
    lines: Sequence[OutputLine],
    colors: Sequence[str | None],
    dropped: int = 0,
) -> str:
    """Render the output panel page.

    Args:
        title: Panel heading
        lines: Buffered output lines, oldest first
        colors: Colour-rule result per line (same length as lines)
        dropped: Lines evicted from the front of the buffer

    Returns:
        Complete minified HTML page
    """
    body = "\n".join(
        _render_line(i + dropped + 1, line, color)
        for i, (line, color) in enumerate(zip(lines, colors))
    ) or '<div class="empty">No output</div>'
    note = f"{dropped} earlier line(s) trimmed" if dropped else f"{len(lines)} line(s)"

    page = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>{html.escape(title)}</title>
        {get_base_styles()}
        <style>
            .controls {{ display: flex; gap: 8px; margin-bottom: 12px; }}
            .output {{
                border: 1px solid hsl(var(--border));
                border-radius: 6px;
                padding: 12px;
                max-height: 80vh;
                overflow-y: auto;
                font-family: 'Monaco', 'Menlo', 'Consolas', monospace;
                font-size: 13px;
                white-space: pre-wrap;
            }}
            .line {{ padding: 1px 8px; border-left: 3px solid transparent; }}
            .line-error {{ border-left-color: #dc2626; background: rgba(220, 38, 38, 0.1); }}
            .line-warn {{ border-left-color: #f59e0b; background: rgba(245, 158, 11, 0.1); }}
            .line-trace {{ border-left-color: #6b7280; opacity: 0.8; }}
            .hidden {{ display: none !important; }}
            .empty {{ color: hsl(var(--muted-foreground)); text-align: center; padding: 24px; }}
        </style>
    </head>
    <body>
        <div class="header">
            <div class="title">{html.escape(title)}</div>
            <div class="subtitle">{note}</div>
        </div>
        <div class="controls">
            <button class="active" id="btn-error" onclick="toggleLevel('error')">error</button>
            <button class="active" id="btn-warn" onclick="toggleLevel('warn')">warn</button>
            <button class="active" id="btn-info" onclick="toggleLevel('info')">info</button>
            <button class="active" id="btn-trace" onclick="toggleLevel('trace')">trace</button>
        </div>
        <div class="output" id="output">
            {body}
        </div>
        <script>
            const active = new Set(['error', 'warn', 'info', 'trace']);
            function toggleLevel(level) {{
                const btn = document.getElementById('btn-' + level);
                if (active.has(level)) {{ active.delete(level); btn.classList.remove('active'); }}
                else {{ active.add(level); btn.classList.add('active'); }}
                document.querySelectorAll('.line').forEach(l => {{
                    l.classList.toggle('hidden', !active.has(l.dataset.level));
                }});
            }}
            const out = document.getElementById('output');
            out.scrollTop = out.scrollHeight;
        </script>
    </body>
    </html>
    """
    return minify_html(page)
