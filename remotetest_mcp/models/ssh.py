"""SSH-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncssh


@dataclass(frozen=True)
class ServerIdentity:
    """Where and as whom to connect.

    Immutable per invocation and hashable, so it doubles as the pool key.
    """

    host: str
    username: str
    port: int = 22
    password: str | None = field(default=None, repr=False)
    private_key_path: str | None = None

    @property
    def key(self) -> str:
        """Pool key and display form: user@host:port."""
        return f"{self.username}@{self.host}:{self.port}"


@dataclass
class PooledConnection:
    """An idle pooled SSH connection with last-used timestamp."""

    connection: "asyncssh.SSHClientConnection"
    last_used: datetime = field(default_factory=datetime.now)

    @property
    def is_stale(self) -> bool:
        """Check if connection was closed."""
        is_closed: bool = self.connection.is_closed  # type: ignore[assignment]
        return is_closed
