"""Tests for the streaming remote execution engine."""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from remotetest_mcp.errors import CommandCancelledError, ConnectError, RemoteExecError
from remotetest_mcp.models import ExecState, ServerIdentity, Severity
from remotetest_mcp.services.executor import (
    RULE,
    RemoteExecutor,
    build_full_command,
    execute_remote_command,
)

IDENTITY = ServerIdentity(host="box", username="dev", password="pw")


class RecordingSink:
    """OutputSink that keeps everything it receives."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, Severity]] = []
        self.revealed = 0

    def write_line(self, text: str, severity: Severity = Severity.INFO) -> None:
        self.lines.append((text, severity))

    def reveal(self) -> None:
        self.revealed += 1

    def clear(self) -> None:
        self.lines.clear()

    @property
    def body(self) -> list[tuple[str, Severity]]:
        """Lines between the header and footer framing."""
        return self.lines[3:-2]


def _process(
    stdout: list[bytes],
    stderr: list[bytes] | None = None,
    returncode: int | None = 0,
    exit_signal: Any = None,
) -> MagicMock:
    process = MagicMock()
    process.stdout.read = AsyncMock(side_effect=[*stdout, b""])
    process.stderr.read = AsyncMock(side_effect=[*(stderr or []), b""])
    process.wait_closed = AsyncMock()
    process.returncode = returncode
    process.exit_signal = exit_signal
    return process


def _pool(process: MagicMock | None = None) -> tuple[MagicMock, MagicMock]:
    conn = MagicMock()
    conn.create_process = AsyncMock(return_value=process)
    pool = MagicMock()
    pool.acquire = AsyncMock(return_value=conn)
    pool.release = AsyncMock()
    return pool, conn


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


def test_build_full_command() -> None:
    assert build_full_command("pytest x", "/srv/app") == "cd /srv/app && pytest x"
    assert build_full_command("pytest x") == "pytest x"


@pytest.mark.asyncio
async def test_lines_across_chunks(sink: RecordingSink) -> None:
    pool, conn = _pool(_process([b"line1\n", b"line2\n"]))

    result = await execute_remote_command("echo", sink, IDENTITY, pool=pool)

    assert result.filtered_output == "line1\nline2"
    assert result.stdout == "line1\nline2\n"
    assert result.stderr == ""
    assert result.exit_code == 0
    assert result.succeeded
    assert sink.body == [("line1", Severity.INFO), ("line2", Severity.INFO)]
    pool.release.assert_awaited_once_with(IDENTITY, conn)


@pytest.mark.asyncio
async def test_framing(sink: RecordingSink) -> None:
    pool, conn = _pool(_process([b"ok\n"]))

    await execute_remote_command("pytest t.py", sink, IDENTITY, remote_root="/srv/app", pool=pool)

    conn.create_process.assert_awaited_once_with("cd /srv/app && pytest t.py", encoding=None)
    assert sink.lines[0] == ("[SSH] dev@box:22", Severity.INFO)
    assert sink.lines[1] == ("[Command] cd /srv/app && pytest t.py", Severity.INFO)
    assert sink.lines[2] == (RULE, Severity.INFO)
    assert sink.lines[-1] == ("[Done] Exit code: 0", Severity.INFO)
    assert sink.revealed == 1


@pytest.mark.asyncio
async def test_include_and_exclude_patterns(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"[info] a\n[error] b\n[warn] c"]))

    result = await execute_remote_command(
        "run", sink, IDENTITY, include_patterns=[r"\[error\]"], exclude_patterns=[r"\[warn\]"],
        pool=pool,
    )

    assert result.filtered_output == "[error] b"
    assert sink.body == [("[error] b", Severity.ERROR)]
    assert result.stdout == "[info] a\n[error] b\n[warn] c"


@pytest.mark.asyncio
async def test_nonzero_exit_is_a_result(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"1 failed\n"], returncode=1))

    result = await execute_remote_command("pytest", sink, IDENTITY, pool=pool)

    assert result.exit_code == 1
    assert not result.succeeded
    assert result.filtered_output == "1 failed"
    assert sink.lines[-1] == ("[Done] Exit code: 1", Severity.WARN)


@pytest.mark.asyncio
async def test_line_split_mid_marker_is_classified_once(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"[err", b"or] boom\n"]))

    await execute_remote_command("x", sink, IDENTITY, pool=pool)

    assert sink.body == [("[error] boom", Severity.ERROR)]


@pytest.mark.asyncio
async def test_multibyte_character_split(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"caf\xc3", b"\xa9\n"]))

    result = await execute_remote_command("x", sink, IDENTITY, pool=pool)

    assert result.filtered_output == "café"


@pytest.mark.asyncio
async def test_invalid_utf8_is_replaced(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"bad \xff byte\n"]))

    result = await execute_remote_command("x", sink, IDENTITY, pool=pool)

    assert result.filtered_output == "bad � byte"


@pytest.mark.asyncio
async def test_ansi_stripped_and_blank_lines_skipped(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"\x1b[32mok\x1b[0m\n\n   \ndone"]))

    result = await execute_remote_command("x", sink, IDENTITY, pool=pool)

    assert sink.body == [("ok", Severity.INFO), ("done", Severity.INFO)]
    assert result.stdout.startswith("\x1b[32m")
    assert result.filtered_output == "ok\n\n   \ndone"


@pytest.mark.asyncio
async def test_stderr_is_streamed_and_kept(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"out\n"], stderr=[b"Warning: careful\n"]))

    result = await execute_remote_command("x", sink, IDENTITY, pool=pool)

    assert result.stderr == "Warning: careful\n"
    assert ("Warning: careful", Severity.WARN) in sink.body
    assert set(result.filtered_output.split("\n")) == {"out", "Warning: careful"}


@pytest.mark.asyncio
async def test_killed_by_signal(sink: RecordingSink) -> None:
    process = _process([], returncode=None, exit_signal=("KILL", False, "", "en-US"))
    pool, _ = _pool(process)

    result = await execute_remote_command("x", sink, IDENTITY, pool=pool)

    assert result.exit_code == -1
    assert result.signal == "KILL"


@pytest.mark.asyncio
async def test_exec_open_failure(sink: RecordingSink) -> None:
    pool, conn = _pool()
    conn.create_process.side_effect = asyncssh.ChannelOpenError(1, "administratively prohibited")
    executor = RemoteExecutor(IDENTITY, sink, pool=pool)

    with pytest.raises(RemoteExecError, match="Failed to execute command"):
        await executor.execute("x")

    assert executor.state is ExecState.FAILED
    pool.release.assert_awaited_once_with(IDENTITY, conn)


@pytest.mark.asyncio
async def test_connect_failure(sink: RecordingSink) -> None:
    pool = MagicMock()
    pool.acquire = AsyncMock(side_effect=ConnectError("dev@box:22", OSError("down")))
    pool.release = AsyncMock()
    executor = RemoteExecutor(IDENTITY, sink, pool=pool)

    with pytest.raises(ConnectError):
        await executor.execute("x")

    assert executor.state is ExecState.FAILED
    assert sink.lines == []
    pool.release.assert_not_called()


@pytest.mark.asyncio
async def test_error_mid_stream_releases_once(sink: RecordingSink) -> None:
    process = _process([])
    process.stdout.read = AsyncMock(side_effect=[b"partial\n", asyncssh.ConnectionLost("reset")])
    pool, conn = _pool(process)
    executor = RemoteExecutor(IDENTITY, sink, pool=pool)

    with pytest.raises(asyncssh.ConnectionLost):
        await executor.execute("x")

    assert executor.state is ExecState.FAILED
    pool.release.assert_awaited_once_with(IDENTITY, conn)


@pytest.mark.asyncio
async def test_deadline_cancels_command(sink: RecordingSink) -> None:
    async def hang(_: int) -> bytes:
        await asyncio.sleep(10)
        return b""

    process = _process([])
    process.stdout.read = AsyncMock(side_effect=hang)
    pool, conn = _pool(process)
    executor = RemoteExecutor(IDENTITY, sink, pool=pool, timeout=0.05)

    with pytest.raises(CommandCancelledError) as exc_info:
        await executor.execute("sleep 100")

    assert exc_info.value.timeout == 0.05
    process.close.assert_called_once()
    assert executor.state is ExecState.FAILED
    pool.release.assert_awaited_once_with(IDENTITY, conn)


@pytest.mark.asyncio
async def test_state_walks_to_completed(sink: RecordingSink) -> None:
    pool, _ = _pool(_process([b"x\n"]))
    executor = RemoteExecutor(IDENTITY, sink, pool=pool)
    assert executor.state is ExecState.IDLE

    await executor.execute("x")

    assert executor.state is ExecState.COMPLETED
    with pytest.raises(RuntimeError, match="single use"):
        await executor.execute("x")
