"""Output sinks: a structured log channel and a live panel."""

from collections.abc import Iterable

from remotetest_mcp.models import ColorRule
from remotetest_mcp.sinks.channel import ChannelSink
from remotetest_mcp.sinks.webview import WebviewSink


def create_sink(
    mode: str,
    title: str = "RemoteTest",
    color_rules: Iterable[ColorRule] = (),
    use_colors: bool = False,
) -> ChannelSink | WebviewSink:
    """Build the sink for an output mode ("channel" or "webview").

    ``use_colors`` only affects the channel sink; the panel always colours.
    """
    if mode == "webview":
        return WebviewSink(title=title, color_rules=color_rules)
    return ChannelSink(name=title, color_rules=color_rules, use_colors=use_colors)


__all__ = ["ChannelSink", "WebviewSink", "create_sink"]
