"""Tool handlers: resolve inputs, drive the Uploader, format the reply.

Handlers take the Dependencies container explicitly and return either plain
text or a list holding one UIResource dict (webview output).
"""

import logging
from typing import Any

from remotetest_mcp.config.settings import OUTPUT_MODES
from remotetest_mcp.dependencies import Dependencies
from remotetest_mcp.models import ColorRule, DirEntry, ExecuteResult, FileRunResult
from remotetest_mcp.services.uploader import ProgressCallback
from remotetest_mcp.sinks import ChannelSink, WebviewSink, create_sink
from remotetest_mcp.utils.console import use_console_colors
from remotetest_mcp.utils.ping import check_servers_online

logger = logging.getLogger(__name__)

ToolResult = str | list[dict[str, Any]]


def resolve_output_mode(deps: Dependencies, output_mode: str | None) -> str:
    """Pick the sink type: explicit argument, else configured default.

    Raises:
        ValueError: Unknown output mode
    """
    mode = output_mode or deps.config.output_mode
    if mode not in OUTPUT_MODES:
        raise ValueError(
            f"Unknown output mode '{mode}'. Expected one of: {', '.join(OUTPUT_MODES)}"
        )
    return mode


def format_exit(result: ExecuteResult) -> str:
    text = f"exit {result.exit_code}"
    if result.signal:
        text += f", signal {result.signal}"
    return text


def format_file_result(run: FileRunResult) -> str:
    """One summary line for a processed file."""
    target = f"{run.local_path} -> {run.remote_path}" if run.remote_path else run.local_path
    if run.error is not None or run.result is None:
        return f"  [ERROR] {target}: {run.error}"
    status = "PASS" if run.result.succeeded else "FAIL"
    return f"  [{status}] {target} ({format_exit(run.result)})"


def format_entries(remote_path: str, entries: list[DirEntry]) -> str:
    """Render a directory listing like ls -l, directories first."""
    if not entries:
        return f"{remote_path}: empty"
    lines = [f"{remote_path}:"]
    for entry in entries:
        kind = "d" if entry.is_directory else "-"
        modified = entry.modified_time.strftime("%Y-%m-%d %H:%M")
        name = f"{entry.name}/" if entry.is_directory else entry.name
        lines.append(f"  {kind} {entry.size:>10} {modified} {name}")
    return "\n".join(lines)


def _open_sink(
    deps: Dependencies, mode: str, title: str, color_rules: tuple[ColorRule, ...]
) -> ChannelSink | WebviewSink:
    use_colors = use_console_colors(deps.config.settings.log_colors)
    return create_sink(mode, title, color_rules, use_colors=use_colors)


def _render(sink: ChannelSink | WebviewSink, summary: str) -> ToolResult:
    if isinstance(sink, WebviewSink):
        return [sink.to_ui_resource()]
    output = sink.render()
    if not output:
        return summary
    return f"{summary}\n\n--- output ---\n{output}"


async def handle_projects(deps: Dependencies) -> str:
    """List projects with their commands and server reachability."""
    projects = deps.config.projects
    if not projects:
        return f"No projects configured (looked in {deps.config.settings.config_path})."

    online = await check_servers_online(
        {p.name: p.server for p in projects if p.enabled}, timeout=2.0
    )

    lines = ["Configured projects:"]
    for project in projects:
        if not project.enabled:
            status = "disabled"
        else:
            status = "online" if online.get(project.name) else "offline"
        lines.append(
            f"  {project.name} ({status}) {project.local_path} -> "
            f"{project.server.key}:{project.remote_directory or '(no remote directory)'}"
        )
        for command in project.commands:
            flag = "" if command.runnable else " [not runnable]"
            lines.append(f"    - {command.name}: {command.execute_command}{flag}")
    return "\n".join(lines)


async def handle_run_test(
    deps: Dependencies,
    path: str,
    command: str | None = None,
    output_mode: str | None = None,
    progress: ProgressCallback | None = None,
) -> ToolResult:
    """Upload path and run a project command against each file."""
    mode = resolve_output_mode(deps, output_mode)
    project = deps.uploader.resolve_project(path)
    selected = deps.uploader.select_command(project, command)
    sink = _open_sink(deps, mode, f"RemoteTest: {project.name}", selected.color_rules)

    results = await deps.uploader.run_test_case(path, sink, command, progress=progress)

    passed = sum(1 for r in results if r.success)
    logger.info("%s: %d/%d file(s) passed", project.name, passed, len(results))
    lines = [f"Project {project.name}, command '{selected.name}':"]
    lines.extend(format_file_result(r) for r in results)
    lines.append(f"{passed}/{len(results)} file(s) passed")
    return _render(sink, "\n".join(lines))


async def handle_exec_command(
    deps: Dependencies,
    project: str,
    command: str,
    path: str | None = None,
    output_mode: str | None = None,
) -> ToolResult:
    """Run a configured command without uploading anything."""
    mode = resolve_output_mode(deps, output_mode)
    config = deps.uploader.get_project(project)
    selected = deps.uploader.select_command(config, command)
    sink = _open_sink(deps, mode, f"RemoteTest: {config.name}", selected.color_rules)

    result = await deps.uploader.execute_command(project, command, path, sink)

    summary = f"{config.name}/{selected.name}: {format_exit(result)}"
    if isinstance(sink, ChannelSink) and result.filtered_output:
        return f"{summary}\n\n{result.filtered_output}"
    return _render(sink, summary)


async def handle_upload(deps: Dependencies, path: str, remote_path: str | None = None) -> str:
    remote = await deps.uploader.upload_file(path, remote_path)
    return f"Uploaded {path} -> {remote}"


async def handle_download(
    deps: Dependencies,
    project: str,
    remote_path: str,
    local_path: str | None = None,
) -> str:
    """Download a remote file, or mirror a directory when remote_path ends in /."""
    if remote_path.endswith("/"):
        files = await deps.uploader.download_directory(project, remote_path, local_path)
        return f"Downloaded {len(files)} file(s) from {remote_path}"
    local = await deps.uploader.download_file(project, remote_path, local_path)
    return f"Downloaded {remote_path} -> {local}"


async def handle_list_remote(
    deps: Dependencies,
    project: str,
    remote_path: str | None = None,
) -> str:
    config = deps.uploader.get_project(project)
    entries = await deps.uploader.list_directory(project, remote_path)
    return format_entries(remote_path or config.remote_directory, entries)
