"""Services for RemoteTest MCP."""

from remotetest_mcp.services.connection import open_connection, resolve_credentials
from remotetest_mcp.services.executor import RemoteExecutor, execute_remote_command
from remotetest_mcp.services.pool import ConnectionPool
from remotetest_mcp.services.session import SSHSession, connect
from remotetest_mcp.services.transfer import (
    download_directory,
    download_file,
    ensure_remote_directory,
    list_directory,
    sort_entries,
    upload_file,
)
from remotetest_mcp.services.uploader import Uploader, collect_files

__all__ = [
    "ConnectionPool",
    "RemoteExecutor",
    "SSHSession",
    "Uploader",
    "collect_files",
    "connect",
    "download_directory",
    "download_file",
    "ensure_remote_directory",
    "execute_remote_command",
    "list_directory",
    "open_connection",
    "resolve_credentials",
    "sort_entries",
    "upload_file",
]
