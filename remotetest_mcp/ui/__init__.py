"""UI resource generators for RemoteTest MCP."""

from remotetest_mcp.ui.generators import create_output_panel_ui

__all__ = ["create_output_panel_ui"]
