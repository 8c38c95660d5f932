"""MCP tools for RemoteTest MCP."""

from remotetest_mcp.tools.remotetest import (
    download,
    exec_command,
    list_remote,
    projects,
    run_test,
    upload,
)

__all__ = ["download", "exec_command", "list_remote", "projects", "run_test", "upload"]
