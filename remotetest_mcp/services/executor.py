"""Remote command execution with live, filtered output.

stdout and stderr are drained concurrently. Each stream is decoded
incrementally and split into lines with its own carry-over buffer, so a line
that arrives in two packets is classified and filtered once, as a whole.
"""

import asyncio
import codecs
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import asyncssh

from remotetest_mcp.errors import CommandCancelledError, RemoteExecError
from remotetest_mcp.models import ExecState, ExecuteResult, ServerIdentity, Severity
from remotetest_mcp.services.connection import DEFAULT_CONNECT_TIMEOUT
from remotetest_mcp.services.session import SSHSession, connect
from remotetest_mcp.utils.output_filter import (
    LineSplitter,
    filter_lines,
    get_log_level,
    line_passes,
    strip_ansi,
)

if TYPE_CHECKING:
    from remotetest_mcp.protocols import OutputSink, SessionPool

logger = logging.getLogger(__name__)

CHUNK_SIZE = 32768
RULE = "─" * 50


def build_full_command(command: str, remote_root: str = "") -> str:
    """Prefix command with a cd into remote_root when one is set."""
    if remote_root:
        return f"cd {remote_root} && {command}"
    return command


class RemoteExecutor:
    """Runs one command on one server and streams its output into a sink.

    The executor is single use. Its ``state`` walks
    IDLE -> CONNECTING -> EXECUTING -> DRAINING -> COMPLETED, or ends in
    FAILED when connecting, opening the channel or the deadline fails.
    """

    def __init__(
        self,
        identity: ServerIdentity,
        sink: "OutputSink",
        include_patterns: Sequence[str] = (),
        exclude_patterns: Sequence[str] = (),
        remote_root: str = "",
        pool: "SessionPool | None" = None,
        timeout: float | None = None,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = True,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self.identity = identity
        self.sink = sink
        self.include_patterns = tuple(include_patterns)
        self.exclude_patterns = tuple(exclude_patterns)
        self.remote_root = remote_root
        self.pool = pool
        self.timeout = timeout
        self.known_hosts = known_hosts
        self.strict_host_key_checking = strict_host_key_checking
        self.connect_timeout = connect_timeout

        self.state = ExecState.IDLE
        self._stdout: list[str] = []
        self._stderr: list[str] = []
        self._lines: list[str] = []

    async def execute(self, command: str) -> ExecuteResult:
        """Run command and wait for it to finish.

        A non-zero exit code is a normal result.

        Raises:
            AuthError: No usable credential
            ConnectError: Unable to reach the server
            RemoteExecError: The exec channel could not be opened
            CommandCancelledError: The deadline expired
        """
        if self.state is not ExecState.IDLE:
            raise RuntimeError("RemoteExecutor instances are single use")

        full_command = build_full_command(command, self.remote_root)
        self.state = ExecState.CONNECTING
        try:
            session = await connect(
                self.identity,
                pool=self.pool,
                known_hosts=self.known_hosts,
                strict_host_key_checking=self.strict_host_key_checking,
                connect_timeout=self.connect_timeout,
            )
        except Exception:
            self.state = ExecState.FAILED
            raise

        try:
            return await self._run(session, full_command)
        except BaseException:
            self.state = ExecState.FAILED
            raise
        finally:
            await session.disconnect()

    async def _run(self, session: SSHSession, full_command: str) -> ExecuteResult:
        self._write_header(full_command)

        try:
            process = await session.connection.create_process(full_command, encoding=None)
        except asyncssh.Error as e:
            raise RemoteExecError(f"Failed to execute command: {e}") from e
        process.stdin.write_eof()

        self.state = ExecState.EXECUTING
        logger.debug("Executing on %s: %s", self.identity.key, full_command)

        try:
            await asyncio.wait_for(self._drain(process), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.close()
            logger.warning(
                "Command on %s exceeded %ss, channel closed", self.identity.key, self.timeout
            )
            raise CommandCancelledError(full_command, self.timeout or 0) from None
        except BaseException:
            process.close()
            raise

        exit_code = process.returncode if process.returncode is not None else -1
        signal = process.exit_signal[0] if process.exit_signal else None
        self._write_footer(exit_code)
        self.sink.reveal()

        output = "\n".join(self._lines).rstrip("\n")
        result = ExecuteResult(
            stdout="".join(self._stdout),
            stderr="".join(self._stderr),
            exit_code=exit_code,
            filtered_output=filter_lines(output, self.include_patterns, self.exclude_patterns),
            signal=signal,
        )
        self.state = ExecState.COMPLETED
        logger.info(
            "Command on %s finished with exit code %d", self.identity.key, exit_code
        )
        return result

    async def _drain(self, process: "asyncssh.SSHClientProcess") -> None:
        await asyncio.gather(
            self._read_stream(process.stdout, self._stdout, "stdout"),
            self._read_stream(process.stderr, self._stderr, "stderr"),
        )
        self.state = ExecState.DRAINING
        await process.wait_closed()

    async def _read_stream(
        self,
        reader: "asyncssh.SSHReader",
        raw: list[str],
        stream: str,
    ) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        splitter = LineSplitter()

        while True:
            chunk = await reader.read(CHUNK_SIZE)
            if not chunk:
                break
            text = decoder.decode(chunk)
            raw.append(text)
            for line in splitter.feed(text):
                self._handle_line(line)

        tail = decoder.decode(b"", final=True)
        if tail:
            raw.append(tail)
        for line in splitter.feed(tail) + splitter.flush():
            self._handle_line(line)
        logger.debug("%s drained for %s", stream, self.identity.key)

    def _handle_line(self, raw_line: str) -> None:
        line = strip_ansi(raw_line)
        self._lines.append(line)
        if not line.strip():
            return
        if not line_passes(line, self.include_patterns, self.exclude_patterns):
            return
        self.sink.write_line(line, get_log_level(line))

    def _write_header(self, full_command: str) -> None:
        self.sink.write_line(f"[SSH] {self.identity.key}")
        self.sink.write_line(f"[Command] {full_command}")
        self.sink.write_line(RULE)

    def _write_footer(self, exit_code: int) -> None:
        severity = Severity.WARN if exit_code != 0 else Severity.INFO
        self.sink.write_line(RULE, severity)
        self.sink.write_line(f"[Done] Exit code: {exit_code}", severity)


async def execute_remote_command(
    command: str,
    sink: "OutputSink",
    identity: ServerIdentity,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
    remote_root: str = "",
    pool: "SessionPool | None" = None,
    timeout: float | None = None,
    **connect_options: object,
) -> ExecuteResult:
    """Run one command remotely, streaming filtered output into sink.

    Args:
        command: Shell command (run inside remote_root when given)
        sink: Destination for classified lines
        identity: Server to run on
        include_patterns: Keep only lines matching one of these
        exclude_patterns: Drop lines matching any of these
        remote_root: Working directory on the server
        pool: Optional pool to borrow the connection from
        timeout: Seconds before the channel is closed, None for no limit
        connect_options: known_hosts, strict_host_key_checking, connect_timeout

    Returns:
        ExecuteResult with raw streams, exit code and filtered output
    """
    executor = RemoteExecutor(
        identity,
        sink,
        include_patterns=include_patterns,
        exclude_patterns=exclude_patterns,
        remote_root=remote_root,
        pool=pool,
        timeout=timeout,
        **connect_options,  # type: ignore[arg-type]
    )
    return await executor.execute(command)
