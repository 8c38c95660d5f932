"""Caller-owned SSH sessions."""

import logging
from typing import TYPE_CHECKING

from remotetest_mcp.errors import SessionClosedError
from remotetest_mcp.models import ServerIdentity
from remotetest_mcp.services.connection import DEFAULT_CONNECT_TIMEOUT, open_connection

if TYPE_CHECKING:
    import asyncssh

    from remotetest_mcp.protocols import SessionPool

logger = logging.getLogger(__name__)


class SSHSession:
    """An SSH connection owned by one caller until disconnect().

    Disconnecting returns the connection to its pool (or closes it when
    there is no pool). It happens at most once; later calls are no-ops and
    any further use raises SessionClosedError.
    """

    def __init__(
        self,
        identity: ServerIdentity,
        connection: "asyncssh.SSHClientConnection",
        pool: "SessionPool | None" = None,
    ) -> None:
        self.identity = identity
        self._connection: "asyncssh.SSHClientConnection | None" = connection
        self._pool = pool

    @property
    def connection(self) -> "asyncssh.SSHClientConnection":
        """The live connection.

        Raises:
            SessionClosedError: If the session was already disconnected
        """
        if self._connection is None:
            raise SessionClosedError(self.identity.key)
        return self._connection

    @property
    def is_open(self) -> bool:
        """Whether disconnect() has not been called yet."""
        return self._connection is not None

    async def disconnect(self) -> None:
        """Release the connection exactly once."""
        conn, self._connection = self._connection, None
        if conn is None:
            return
        if self._pool is not None:
            await self._pool.release(self.identity, conn)
        else:
            conn.close()
        logger.debug("Session to %s released", self.identity.key)

    async def __aenter__(self) -> "SSHSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()


async def connect(
    identity: ServerIdentity,
    pool: "SessionPool | None" = None,
    known_hosts: str | None = None,
    strict_host_key_checking: bool = True,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> SSHSession:
    """Open a session, through the pool when one is given.

    The host key and timeout arguments only apply without a pool.

    Raises:
        AuthError: No usable credential
        ConnectError: Handshake or network failure
    """
    if pool is not None:
        conn = await pool.acquire(identity)
    else:
        conn = await open_connection(
            identity,
            known_hosts=known_hosts,
            strict_host_key_checking=strict_host_key_checking,
            connect_timeout=connect_timeout,
        )
    return SSHSession(identity, conn, pool)
