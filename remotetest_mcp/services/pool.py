"""SSH connection pooling with exclusive checkout and lazy disconnect.

A connection is owned by exactly one borrower between acquire() and
release(); only idle connections live in the pool.

Locking Strategy:
- `_meta_lock`: Protects the _idle OrderedDict and _key_locks dict structure
- Per-identity locks: Serialize connection creation for the same server
- Lock acquisition order: Always per-identity lock first, then meta-lock

LRU Eviction:
- Idle connections are kept in an OrderedDict keyed by identity
- move_to_end() on release keeps the most recently used last
- When the pool holds max_size idle connections the oldest is closed
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any

import asyncssh

from remotetest_mcp.models import PooledConnection, ServerIdentity
from remotetest_mcp.services.connection import DEFAULT_CONNECT_TIMEOUT, open_connection

logger = logging.getLogger(__name__)


class ConnectionPool:
    """SSH connection pool handing out one connection per request."""

    def __init__(
        self,
        idle_timeout: int = 60,
        max_size: int = 20,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = True,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        """Initialize pool with idle timeout and size limits.

        Args:
            idle_timeout: Seconds before idle connections are closed
            max_size: Maximum number of idle connections kept (must be > 0)
            known_hosts: Path to known_hosts file, or None to disable verification
            strict_host_key_checking: Whether to reject unknown host keys
            connect_timeout: SSH handshake timeout in seconds

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {max_size}")

        self.idle_timeout = idle_timeout
        self.max_size = max_size
        self.connect_timeout = connect_timeout
        self._idle: OrderedDict[str, PooledConnection] = OrderedDict()
        self._key_locks: dict[str, asyncio.Lock] = {}
        self._meta_lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task[Any] | None = None
        self._borrowed = 0

        self._known_hosts = known_hosts
        self._strict_host_key = strict_host_key_checking

        logger.info(
            "ConnectionPool initialized (idle_timeout=%ds, max_size=%d, host_keys=%s)",
            idle_timeout,
            max_size,
            "verified" if known_hosts else "unverified",
        )

    async def _get_key_lock(self, key: str) -> asyncio.Lock:
        """Get or create lock for a specific identity."""
        async with self._meta_lock:
            if key not in self._key_locks:
                self._key_locks[key] = asyncio.Lock()
            return self._key_locks[key]

    async def acquire(self, identity: ServerIdentity) -> asyncssh.SSHClientConnection:
        """Check out a ready connection for identity.

        Reuses an idle connection when one is alive, otherwise opens a new
        one. The caller owns it until release().

        Raises:
            AuthError: No usable credential
            ConnectError: Handshake or network failure
        """
        key_lock = await self._get_key_lock(identity.key)

        async with key_lock:
            async with self._meta_lock:
                pooled = self._idle.pop(identity.key, None)

            if pooled and not pooled.is_stale:
                self._borrowed += 1
                logger.debug("Reusing idle connection to %s", identity.key)
                return pooled.connection

            if pooled:
                logger.info("Idle connection to %s is stale, reconnecting", identity.key)

            conn = await open_connection(
                identity,
                known_hosts=self._known_hosts,
                strict_host_key_checking=self._strict_host_key,
                connect_timeout=self.connect_timeout,
            )
            self._borrowed += 1
            logger.info("SSH connection established to %s", identity.key)
            return conn

    async def release(
        self,
        identity: ServerIdentity,
        conn: asyncssh.SSHClientConnection,
    ) -> None:
        """Return a borrowed connection.

        Closed connections are dropped; if an idle connection for the same
        identity is already pooled the returned one is closed instead.
        """
        self._borrowed = max(0, self._borrowed - 1)
        if conn.is_closed:
            logger.debug("Dropping closed connection to %s", identity.key)
            return

        to_close: list[asyncssh.SSHClientConnection] = []
        async with self._meta_lock:
            if identity.key in self._idle:
                to_close.append(conn)
            else:
                self._idle[identity.key] = PooledConnection(connection=conn)
                self._idle.move_to_end(identity.key)
                while len(self._idle) > self.max_size:
                    oldest, evicted = self._idle.popitem(last=False)
                    logger.info(
                        "Pool at capacity (%d), evicting LRU: %s", self.max_size, oldest
                    )
                    to_close.append(evicted.connection)

        for extra in to_close:
            extra.close()

        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.debug("Started connection cleanup task")

    async def _cleanup_loop(self) -> None:
        """Periodically close idle connections."""
        interval = max(1, self.idle_timeout // 2)
        while True:
            await asyncio.sleep(interval)
            await self._cleanup_idle()
            if not self._idle:
                logger.debug("Cleanup loop stopped - no idle connections")
                break

    async def _cleanup_idle(self) -> None:
        """Close connections that have been idle too long."""
        cutoff = datetime.now() - timedelta(seconds=self.idle_timeout)
        to_close: list[tuple[str, PooledConnection]] = []

        async with self._meta_lock:
            for key, pooled in list(self._idle.items()):
                if pooled.last_used < cutoff or pooled.is_stale:
                    to_close.append((key, self._idle.pop(key)))

        for key, pooled in to_close:
            logger.info("Closing idle connection to %s", key)
            pooled.connection.close()

    async def remove_connection(self, identity: ServerIdentity) -> None:
        """Close and forget the idle connection for identity, if any."""
        async with self._meta_lock:
            pooled = self._idle.pop(identity.key, None)
        if pooled:
            logger.info("Removing idle connection to %s", identity.key)
            pooled.connection.close()

    async def close_all(self) -> None:
        """Close all idle connections and stop the cleanup task."""
        async with self._meta_lock:
            idle = list(self._idle.values())
            self._idle.clear()

        if idle:
            logger.info("Closing %d idle connection(s)", len(idle))
        for pooled in idle:
            pooled.connection.close()

        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            logger.debug("Cleanup task cancelled")

    @property
    def pool_size(self) -> int:
        """Number of idle connections held."""
        return len(self._idle)

    @property
    def borrowed(self) -> int:
        """Number of connections currently checked out."""
        return self._borrowed

    @property
    def idle_hosts(self) -> list[str]:
        """Identity keys with an idle connection."""
        return list(self._idle.keys())
