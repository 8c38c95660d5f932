"""MCP tools for uploading files and running remote test commands."""

import logging

from fastmcp import Context

from remotetest_mcp.dependencies import Dependencies
from remotetest_mcp.errors import RemoteTestError
from remotetest_mcp.tools.handlers import (
    ToolResult,
    handle_download,
    handle_exec_command,
    handle_list_remote,
    handle_projects,
    handle_run_test,
    handle_upload,
)

logger = logging.getLogger(__name__)


def get_dependencies(ctx: Context) -> Dependencies:
    """Dependencies created by the server lifespan."""
    return ctx.request_context.lifespan_context["deps"]


async def projects(ctx: Context) -> str:
    """List configured projects, their commands and whether each server is online."""
    return await handle_projects(get_dependencies(ctx))


async def run_test(
    ctx: Context,
    path: str,
    command: str | None = None,
    output_mode: str | None = None,
) -> ToolResult:
    """Upload a local file or directory and run a project command on the server.

    The owning project is the one whose local root contains path (the deepest
    one when roots nest). Directories are processed file by file.

    Args:
        path: Local file or directory inside a configured project
        command: Command name; the project's first runnable command if omitted
        output_mode: "channel" for text output, "webview" for an HTML panel

    Examples:
        run_test("/work/app/tests/test_api.py")
        run_test("/work/app/tests", command="pytest")
        run_test("/work/app/main.c", command="build", output_mode="webview")

    Returns:
        Text summary with the filtered output, or a UIResource panel.
    """

    async def progress(done: int, total: int, message: str) -> None:
        await ctx.report_progress(done, total)
        logger.debug("run_test progress %d/%d: %s", done, total, message)

    try:
        return await handle_run_test(
            get_dependencies(ctx), path, command, output_mode, progress=progress
        )
    except (RemoteTestError, ValueError) as e:
        return f"Error: {e}"


async def exec_command(
    ctx: Context,
    project: str,
    command: str,
    path: str | None = None,
    output_mode: str | None = None,
) -> ToolResult:
    """Run a configured project command without uploading anything.

    Args:
        project: Project name
        command: Command name from the project
        path: Optional local file used to fill {filePath}-style variables
        output_mode: "channel" or "webview"
    """
    try:
        return await handle_exec_command(
            get_dependencies(ctx), project, command, path, output_mode
        )
    except (RemoteTestError, ValueError) as e:
        return f"Error: {e}"


async def upload(ctx: Context, path: str, remote_path: str | None = None) -> str:
    """Upload one local file to its project's server.

    Args:
        path: Local file inside a configured project
        remote_path: Destination; defaults to the mapped path under the remote root
    """
    try:
        return await handle_upload(get_dependencies(ctx), path, remote_path)
    except RemoteTestError as e:
        return f"Error: {e}"


async def download(
    ctx: Context,
    project: str,
    remote_path: str,
    local_path: str | None = None,
) -> str:
    """Download a remote file, or a whole directory when remote_path ends with "/".

    Args:
        project: Project name
        remote_path: Absolute, or relative to the project's remote directory
        local_path: Destination; defaults to the project's log download path
    """
    try:
        return await handle_download(get_dependencies(ctx), project, remote_path, local_path)
    except RemoteTestError as e:
        return f"Error: {e}"


async def list_remote(ctx: Context, project: str, remote_path: str | None = None) -> str:
    """List a directory on the project's server (defaults to its remote directory)."""
    try:
        return await handle_list_remote(get_dependencies(ctx), project, remote_path)
    except RemoteTestError as e:
        return f"Error: {e}"
