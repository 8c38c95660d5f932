"""Data models for RemoteTest MCP."""

from remotetest_mcp.models.command import (
    CommandVariables,
    DirEntry,
    ExecState,
    ExecuteResult,
    FileRunResult,
    OutputLine,
    Severity,
)
from remotetest_mcp.models.project import (
    ColorRule,
    CommandTemplate,
    LogDirectory,
    LogsConfig,
    ProjectConfig,
    ProjectMapping,
)
from remotetest_mcp.models.ssh import PooledConnection, ServerIdentity

__all__ = [
    "ColorRule",
    "CommandTemplate",
    "CommandVariables",
    "DirEntry",
    "ExecState",
    "ExecuteResult",
    "FileRunResult",
    "LogDirectory",
    "LogsConfig",
    "OutputLine",
    "PooledConnection",
    "ProjectConfig",
    "ProjectMapping",
    "ServerIdentity",
    "Severity",
]
