"""Command execution data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    """Heuristic severity of an output line."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    TRACE = "trace"


class ExecState(Enum):
    """Lifecycle of a single remote command execution."""

    IDLE = "idle"
    CONNECTING = "connecting"
    EXECUTING = "executing"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class CommandVariables:
    """Values available to {placeholder} substitution."""

    file_path: str
    file_name: str
    file_dir: str
    local_path: str
    local_dir: str
    local_file_name: str
    remote_dir: str

    def as_placeholders(self) -> dict[str, str]:
        """Map placeholder names to their values."""
        return {
            "filePath": self.file_path,
            "fileName": self.file_name,
            "fileDir": self.file_dir,
            "localPath": self.local_path,
            "localDir": self.local_dir,
            "localFileName": self.local_file_name,
            "remoteDir": self.remote_dir,
        }


@dataclass(frozen=True)
class OutputLine:
    """One classified line of remote output."""

    text: str
    severity: Severity


@dataclass(frozen=True)
class ExecuteResult:
    """Result of a remote command execution."""

    stdout: str
    stderr: str
    exit_code: int
    filtered_output: str
    signal: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the remote command exited with status 0."""
        return self.exit_code == 0


@dataclass(frozen=True)
class DirEntry:
    """Remote directory entry."""

    name: str
    path: str
    size: int
    modified_time: datetime
    is_directory: bool


@dataclass
class FileRunResult:
    """Outcome of upload + execute for one file in a batch."""

    local_path: str
    remote_path: str | None = None
    result: ExecuteResult | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        """File was processed and its command exited 0."""
        return self.error is None and self.result is not None and self.result.succeeded
