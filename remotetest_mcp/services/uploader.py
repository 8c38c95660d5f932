"""Upload-and-run orchestration.

For each file: map the local path into the project's remote root, upload
it, fill the command template and run it. Directories are processed one file
at a time in sorted order.
"""

import inspect
import logging
import os
import posixpath
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from remotetest_mcp.errors import (
    CommandCancelledError,
    ConfigError,
    ConnectError,
    PathMappingError,
    RemoteExecError,
    TransferError,
)
from remotetest_mcp.models import (
    CommandTemplate,
    DirEntry,
    ExecuteResult,
    FileRunResult,
    ProjectConfig,
)
from remotetest_mcp.services import transfer
from remotetest_mcp.services.executor import execute_remote_command
from remotetest_mcp.services.session import SSHSession, connect
from remotetest_mcp.utils.variables import build_variables, calculate_remote_path, substitute

if TYPE_CHECKING:
    from remotetest_mcp.config import Config
    from remotetest_mcp.protocols import OutputSink, SessionPool

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = frozenset({"node_modules"})

# Recorded per file; anything else aborts the batch.
FILE_ERRORS = (
    PathMappingError,
    TransferError,
    RemoteExecError,
    ConnectError,
    CommandCancelledError,
)

# May be sync or async.
ProgressCallback = Callable[[int, int, str], "Awaitable[None] | None"]


async def _report(progress: ProgressCallback | None, done: int, total: int, message: str) -> None:
    if progress is None:
        return
    outcome = progress(done, total, message)
    if inspect.isawaitable(outcome):
        await outcome


def collect_files(root: str) -> list[str]:
    """Recursively list files under root, sorted.

    Dot-entries and node_modules are skipped.
    """
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in SKIPPED_DIRECTORIES
        )
        for name in sorted(filenames):
            if not name.startswith("."):
                found.append(os.path.join(dirpath, name))
    return found


class Uploader:
    """Runs configured commands against local files on their project's server."""

    def __init__(self, config: "Config", pool: "SessionPool | None" = None) -> None:
        self.config = config
        self.pool = pool

    def resolve_project(self, local_path: str) -> ProjectConfig:
        """Find the project owning local_path.

        Raises:
            ConfigError: No project matches or it has no remote directory
        """
        project = self.config.match_project(local_path)
        if project is None:
            raise ConfigError(f"No configured project contains {local_path}")
        if not project.remote_directory:
            raise ConfigError(f"Project '{project.name}' has no remote directory")
        return project

    def get_project(self, name: str) -> ProjectConfig:
        """Look up an enabled project by name.

        Raises:
            ConfigError: Unknown project
        """
        project = self.config.get_project(name)
        if project is None:
            available = ", ".join(p.name for p in self.config.enabled_projects) or "none"
            raise ConfigError(f"Unknown project '{name}'. Available: {available}")
        return project

    @staticmethod
    def select_command(project: ProjectConfig, command_name: str | None = None) -> CommandTemplate:
        """Pick the named command, or the first runnable one.

        Raises:
            ConfigError: Unknown or non-runnable name, or no runnable command
        """
        runnable = project.runnable_commands
        if not runnable:
            raise ConfigError(f"Project '{project.name}' has no runnable commands")
        if command_name is None:
            return runnable[0]
        command = project.get_command(command_name)
        if command is None:
            names = ", ".join(c.name for c in project.commands)
            raise ConfigError(
                f"Unknown command '{command_name}' in project '{project.name}'. "
                f"Available: {names}"
            )
        if not command.runnable:
            raise ConfigError(
                f"Command '{command_name}' in project '{project.name}' is not runnable"
            )
        return command

    async def _session(self, project: ProjectConfig) -> SSHSession:
        return await connect(
            project.server,
            pool=self.pool,
            known_hosts=self.config.known_hosts_path,
            strict_host_key_checking=self.config.strict_host_key_checking,
            connect_timeout=self.config.connect_timeout,
        )

    async def _run_command(
        self,
        project: ProjectConfig,
        command: CommandTemplate,
        local_path: str,
        remote_path: str,
        sink: "OutputSink",
    ) -> ExecuteResult:
        variables = build_variables(local_path, remote_path, project.remote_directory)
        return await execute_remote_command(
            substitute(command.execute_command, variables),
            sink,
            project.server,
            include_patterns=command.include_patterns,
            exclude_patterns=command.exclude_patterns,
            remote_root=project.remote_directory,
            pool=self.pool,
            timeout=self.config.command_deadline,
            known_hosts=self.config.known_hosts_path,
            strict_host_key_checking=self.config.strict_host_key_checking,
            connect_timeout=self.config.connect_timeout,
        )

    async def _upload(self, project: ProjectConfig, local_path: str, remote_path: str) -> None:
        async with await self._session(project) as session:
            await transfer.upload_file(
                session, local_path, remote_path, self.config.text_extensions
            )

    async def run_test_case(
        self,
        local_path: str,
        sink: "OutputSink",
        command_name: str | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[FileRunResult]:
        """Upload local_path (a file or directory) and run a command per file.

        Args:
            local_path: File or directory inside a configured project
            sink: Output destination for every command
            command_name: Command to run; first runnable one when omitted
            progress: Called as progress(done, total, message)

        Returns:
            One FileRunResult per processed file

        Raises:
            ConfigError: Project or command cannot be resolved
            AuthError: Credentials rejected (aborts the batch)
        """
        project = self.resolve_project(local_path)
        command = self.select_command(project, command_name)

        files = collect_files(local_path) if os.path.isdir(local_path) else [local_path]
        total = len(files)
        logger.info(
            "Running '%s' for %d file(s) in project %s", command.name, total, project.name
        )

        results: list[FileRunResult] = []
        for index, file_path in enumerate(files):
            await _report(progress, index, total, f"Uploading {os.path.basename(file_path)}")
            run = FileRunResult(local_path=file_path)
            try:
                run.remote_path = calculate_remote_path(file_path, project.mapping)
                await self._upload(project, file_path, run.remote_path)
                await _report(progress, index, total, f"Running {command.name}")
                run.result = await self._run_command(
                    project, command, file_path, run.remote_path, sink
                )
            except FILE_ERRORS as e:
                logger.error("Failed to process %s: %s", file_path, e)
                run.error = e
            results.append(run)

        await _report(progress, total, total, "Done")
        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning("%d of %d file(s) failed", failed, total)
        return results

    async def upload_file(self, local_path: str, remote_path: str | None = None) -> str:
        """Upload one file without running anything.

        The remote path defaults to the mapped location in the project root.

        Returns:
            The remote path written
        """
        project = self.resolve_project(local_path)
        if remote_path is None:
            remote_path = calculate_remote_path(local_path, project.mapping)
        await self._upload(project, local_path, remote_path)
        return remote_path

    def _local_target(self, project: ProjectConfig, remote_path: str, local_path: str | None) -> str:
        if local_path:
            return local_path
        base = project.logs.download_path or project.local_path
        return os.path.join(base, posixpath.basename(remote_path.rstrip("/")))

    def _remote_target(self, project: ProjectConfig, remote_path: str | None) -> str:
        if not remote_path:
            return project.remote_directory or "."
        if posixpath.isabs(remote_path) or not project.remote_directory:
            return remote_path
        return posixpath.join(project.remote_directory, remote_path)

    async def download_file(
        self, project: str, remote_path: str, local_path: str | None = None
    ) -> str:
        """Download one remote file.

        Relative remote paths are taken from the project's remote directory.
        The local path defaults to the project's log download directory.

        Returns:
            Local path written
        """
        config = self.get_project(project)
        source = self._remote_target(config, remote_path)
        target = self._local_target(config, source, local_path)
        async with await self._session(config) as session:
            return await transfer.download_file(session, source, target)

    async def download_directory(
        self, project: str, remote_path: str, local_path: str | None = None
    ) -> list[str]:
        """Mirror a remote directory locally.

        Returns:
            Local paths of downloaded files
        """
        config = self.get_project(project)
        source = self._remote_target(config, remote_path)
        target = self._local_target(config, source, local_path)
        async with await self._session(config) as session:
            return await transfer.download_directory(session, source, target)

    async def list_directory(self, project: str, remote_path: str | None = None) -> list[DirEntry]:
        """List a remote directory, directories first."""
        config = self.get_project(project)
        async with await self._session(config) as session:
            entries = await transfer.list_directory(
                session, self._remote_target(config, remote_path)
            )
        return transfer.sort_entries(entries)

    async def execute_command(
        self,
        project: str,
        command_name: str,
        local_path: str | None,
        sink: "OutputSink",
    ) -> ExecuteResult:
        """Run a command template without uploading.

        Variables come from local_path when given; otherwise only the remote
        directory is meaningful.
        """
        config = self.get_project(project)
        command = self.select_command(config, command_name)
        if local_path:
            remote_path = calculate_remote_path(local_path, config.mapping)
        else:
            local_path = config.local_path
            remote_path = config.remote_directory
        return await self._run_command(config, command, local_path, remote_path, sink)
