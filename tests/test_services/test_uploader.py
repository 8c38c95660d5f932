"""Tests for upload-and-run orchestration."""

from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from remotetest_mcp.config import Config
from remotetest_mcp.errors import (
    AuthError,
    CommandCancelledError,
    ConfigError,
    RemoteExecError,
    TransferError,
)
from remotetest_mcp.models import (
    CommandTemplate,
    DirEntry,
    ExecuteResult,
    LogsConfig,
    ProjectConfig,
    ServerIdentity,
)
from remotetest_mcp.services.uploader import Uploader, collect_files

SERVER = ServerIdentity(host="box", username="dev", password="pw")
OK = ExecuteResult(stdout="ok\n", stderr="", exit_code=0, filtered_output="ok")


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    (root / "tests" / "unit").mkdir(parents=True)
    (root / "tests" / "test_a.py").write_text("a")
    (root / "tests" / "unit" / "test_b.py").write_text("b")
    (root / "tests" / ".hidden.py").write_text("h")
    (root / "tests" / "node_modules").mkdir()
    (root / "tests" / "node_modules" / "dep.js").write_text("d")
    (root / "tests" / ".cache").mkdir()
    (root / "tests" / ".cache" / "c.py").write_text("c")
    return root


def _project(root: Path, **overrides: object) -> ProjectConfig:
    values: dict[str, object] = {
        "name": "app",
        "local_path": str(root),
        "server": SERVER,
        "remote_directory": "/srv/app",
        "commands": [
            CommandTemplate(name="lint", execute_command="ruff {filePath}", runnable=False),
            CommandTemplate(
                name="pytest",
                execute_command="pytest {filePath} -v",
                include_patterns=("FAILED",),
                exclude_patterns=("DEBUG",),
            ),
            CommandTemplate(name="unit", execute_command="cd {fileDir} && pytest {fileName}"),
        ],
        "logs": LogsConfig(download_path=str(root / "logs")),
    }
    values.update(overrides)
    return ProjectConfig(**values)  # type: ignore[arg-type]


@pytest.fixture
def pool() -> MagicMock:
    mock_pool = MagicMock()
    mock_pool.acquire = AsyncMock(return_value=MagicMock())
    mock_pool.release = AsyncMock()
    return mock_pool


@pytest.fixture
def uploader(project_root: Path, pool: MagicMock) -> Uploader:
    return Uploader(Config.from_projects([_project(project_root)]), pool)


@pytest.fixture
def mock_upload():
    with patch(
        "remotetest_mcp.services.uploader.transfer.upload_file", new_callable=AsyncMock
    ) as mock:
        mock.return_value = 1
        yield mock


@pytest.fixture
def mock_execute():
    with patch(
        "remotetest_mcp.services.uploader.execute_remote_command", new_callable=AsyncMock
    ) as mock:
        mock.return_value = OK
        yield mock


def test_collect_files_skips_hidden_and_node_modules(project_root: Path) -> None:
    assert collect_files(str(project_root / "tests")) == [
        str(project_root / "tests" / "test_a.py"),
        str(project_root / "tests" / "unit" / "test_b.py"),
    ]


class TestRunTestCase:
    @pytest.mark.asyncio
    async def test_single_file(
        self,
        uploader: Uploader,
        project_root: Path,
        pool: MagicMock,
        mock_upload: AsyncMock,
        mock_execute: AsyncMock,
    ) -> None:
        local = str(project_root / "tests" / "test_a.py")
        sink = MagicMock()

        results = await uploader.run_test_case(local, sink)

        assert len(results) == 1
        assert results[0].success
        assert results[0].remote_path == "/srv/app/tests/test_a.py"
        assert results[0].result is OK

        session, up_local, up_remote, extensions = mock_upload.call_args.args
        assert (up_local, up_remote, extensions) == (local, "/srv/app/tests/test_a.py", ())
        assert session.identity == SERVER
        pool.release.assert_awaited_once()

        mock_execute.assert_awaited_once()
        args, kwargs = mock_execute.call_args
        assert args == ("pytest /srv/app/tests/test_a.py -v", sink, SERVER)
        assert kwargs["include_patterns"] == ("FAILED",)
        assert kwargs["exclude_patterns"] == ("DEBUG",)
        assert kwargs["remote_root"] == "/srv/app"
        assert kwargs["pool"] is pool
        assert kwargs["timeout"] is None

    @pytest.mark.asyncio
    async def test_named_command(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        local = str(project_root / "tests" / "unit" / "test_b.py")

        await uploader.run_test_case(local, MagicMock(), command_name="unit")

        assert mock_execute.call_args.args[0] == "cd /srv/app/tests/unit && pytest test_b.py"

    @pytest.mark.asyncio
    async def test_directory_batch_with_progress(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        progress = MagicMock()

        results = await uploader.run_test_case(
            str(project_root / "tests"), MagicMock(), progress=progress
        )

        assert [r.remote_path for r in results] == [
            "/srv/app/tests/test_a.py",
            "/srv/app/tests/unit/test_b.py",
        ]
        assert mock_execute.await_count == 2
        assert progress.call_args_list[0].args == (0, 2, "Uploading test_a.py")
        assert progress.call_args_list[-1].args == (2, 2, "Done")

    @pytest.mark.asyncio
    async def test_async_progress(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        progress = AsyncMock()

        await uploader.run_test_case(str(project_root / "tests" / "test_a.py"), MagicMock(), progress=progress)

        progress.assert_awaited_with(1, 1, "Done")

    @pytest.mark.asyncio
    async def test_per_file_errors_do_not_stop_batch(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        failure = TransferError("upload", "test_a.py", OSError("disk full"))
        mock_upload.side_effect = [failure, 1]
        mock_execute.side_effect = [RemoteExecError("no channel")]

        results = await uploader.run_test_case(str(project_root / "tests"), MagicMock())

        assert results[0].error is failure
        assert results[0].result is None
        assert isinstance(results[1].error, RemoteExecError)
        assert not any(r.success for r in results)

    @pytest.mark.asyncio
    async def test_deadline_on_one_file_does_not_stop_batch(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        timeout = CommandCancelledError("pytest /srv/app/tests/test_a.py -v", 5)
        mock_execute.side_effect = [timeout, OK]

        results = await uploader.run_test_case(str(project_root / "tests"), MagicMock())

        assert mock_execute.await_count == 2
        assert results[0].error is timeout
        assert results[0].result is None
        assert not results[0].success
        assert results[1].success
        assert results[1].remote_path == "/srv/app/tests/unit/test_b.py"

    @pytest.mark.asyncio
    async def test_auth_error_aborts_batch(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        mock_upload.side_effect = AuthError("dev@box:22", "denied")

        with pytest.raises(AuthError):
            await uploader.run_test_case(str(project_root / "tests"), MagicMock())

        assert mock_upload.await_count == 1
        mock_execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_matching_project(self, uploader: Uploader, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="No configured project"):
            await uploader.run_test_case(str(tmp_path / "elsewhere.py"), MagicMock())

    @pytest.mark.asyncio
    async def test_project_without_remote_directory(self, project_root: Path) -> None:
        uploader = Uploader(Config.from_projects([_project(project_root, remote_directory="")]))
        with pytest.raises(ConfigError, match="no remote directory"):
            await uploader.run_test_case(str(project_root / "tests" / "test_a.py"), MagicMock())

    @pytest.mark.asyncio
    async def test_no_runnable_commands(self, project_root: Path) -> None:
        project = _project(
            project_root,
            commands=[CommandTemplate(name="lint", execute_command="x", runnable=False)],
        )
        uploader = Uploader(Config.from_projects([project]))
        with pytest.raises(ConfigError, match="no runnable commands"):
            await uploader.run_test_case(str(project_root / "tests" / "test_a.py"), MagicMock())

    @pytest.mark.asyncio
    async def test_unknown_command(self, uploader: Uploader, project_root: Path) -> None:
        with pytest.raises(ConfigError, match="Unknown command 'nope'"):
            await uploader.run_test_case(
                str(project_root / "tests" / "test_a.py"), MagicMock(), command_name="nope"
            )

    @pytest.mark.asyncio
    async def test_named_command_not_runnable(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock, mock_execute: AsyncMock
    ) -> None:
        with pytest.raises(ConfigError, match="Command 'lint' in project 'app' is not runnable"):
            await uploader.run_test_case(
                str(project_root / "tests" / "test_a.py"), MagicMock(), command_name="lint"
            )

        mock_upload.assert_not_called()
        mock_execute.assert_not_called()


class TestTransfers:
    @pytest.mark.asyncio
    async def test_upload_file_default_remote_path(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock
    ) -> None:
        remote = await uploader.upload_file(str(project_root / "tests" / "test_a.py"))
        assert remote == "/srv/app/tests/test_a.py"

    @pytest.mark.asyncio
    async def test_upload_file_explicit_remote_path(
        self, uploader: Uploader, project_root: Path, mock_upload: AsyncMock
    ) -> None:
        remote = await uploader.upload_file(str(project_root / "tests" / "test_a.py"), "/tmp/x.py")
        assert remote == "/tmp/x.py"
        assert mock_upload.call_args.args[2] == "/tmp/x.py"

    @pytest.mark.asyncio
    async def test_download_file_defaults(self, uploader: Uploader, project_root: Path) -> None:
        with patch(
            "remotetest_mcp.services.uploader.transfer.download_file", new_callable=AsyncMock
        ) as mock_download:
            mock_download.side_effect = lambda session, remote, local: local
            local = await uploader.download_file("app", "logs/app.log")

        assert local == str(project_root / "logs" / "app.log")
        assert mock_download.call_args.args[1] == "/srv/app/logs/app.log"

    @pytest.mark.asyncio
    async def test_download_directory(self, uploader: Uploader, tmp_path: Path) -> None:
        with patch(
            "remotetest_mcp.services.uploader.transfer.download_directory", new_callable=AsyncMock
        ) as mock_download:
            mock_download.return_value = ["a"]
            files = await uploader.download_directory("app", "/var/log/app/", str(tmp_path))

        assert files == ["a"]
        assert mock_download.call_args.args[1:] == ("/var/log/app/", str(tmp_path))

    @pytest.mark.asyncio
    async def test_unknown_project(self, uploader: Uploader) -> None:
        with pytest.raises(ConfigError, match="Unknown project 'ghost'. Available: app"):
            await uploader.download_file("ghost", "/x")

    @pytest.mark.asyncio
    async def test_list_directory_sorted(self, uploader: Uploader, pool: MagicMock) -> None:
        when = datetime(2024, 1, 1)
        entries = [
            DirEntry("b.py", "/srv/app/b.py", 1, when, False),
            DirEntry("src", "/srv/app/src", 0, when, True),
        ]
        with patch(
            "remotetest_mcp.services.uploader.transfer.list_directory", new_callable=AsyncMock
        ) as mock_list:
            mock_list.return_value = entries
            result = await uploader.list_directory("app")

        assert [e.name for e in result] == ["src", "b.py"]
        assert mock_list.call_args.args[1] == "/srv/app"
        pool.release.assert_awaited_once()


class TestExecuteCommand:
    @pytest.mark.asyncio
    async def test_without_path_uses_project_root(
        self, uploader: Uploader, mock_execute: AsyncMock
    ) -> None:
        result = await uploader.execute_command("app", "unit", None, MagicMock())

        assert result is OK
        assert mock_execute.call_args.args[0] == "cd /srv && pytest app"

    @pytest.mark.asyncio
    async def test_with_path(
        self, uploader: Uploader, project_root: Path, mock_execute: AsyncMock
    ) -> None:
        await uploader.execute_command(
            "app", "pytest", str(project_root / "tests" / "test_a.py"), MagicMock()
        )
        assert mock_execute.call_args.args[0] == "pytest /srv/app/tests/test_a.py -v"
