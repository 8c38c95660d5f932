"""Opening SSH connections for a ServerIdentity."""

import asyncio
import logging
import os
from typing import Any

import asyncssh

from remotetest_mcp.errors import AuthError, ConnectError
from remotetest_mcp.models import ServerIdentity

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 30


def resolve_credentials(identity: ServerIdentity) -> dict[str, Any]:
    """Pick the auth method for an identity.

    A private key wins when its file exists; otherwise the password is used.

    Returns:
        asyncssh.connect keyword arguments for the chosen method

    Raises:
        AuthError: If neither a readable key file nor a password is configured
    """
    if identity.private_key_path:
        key_path = os.path.expanduser(identity.private_key_path)
        if os.path.exists(key_path):
            return {"client_keys": [key_path]}
        if not identity.password:
            raise AuthError(identity.key, f"private key file not found: {key_path}")
        logger.warning(
            "Private key %s not found for %s, falling back to password",
            key_path,
            identity.key,
        )

    if identity.password:
        return {"password": identity.password, "client_keys": None}

    raise AuthError(identity.key, "no password or private key configured")


async def open_connection(
    identity: ServerIdentity,
    known_hosts: str | None = None,
    strict_host_key_checking: bool = True,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> asyncssh.SSHClientConnection:
    """Connect and authenticate to a server.

    Args:
        identity: Target server and credentials
        known_hosts: known_hosts path, or None to skip verification
        strict_host_key_checking: Reject hosts missing from known_hosts
        connect_timeout: Handshake timeout in seconds

    Returns:
        Ready SSH connection

    Raises:
        AuthError: No usable credential or credential rejected
        ConnectError: Network, handshake or timeout failure
    """
    credentials = resolve_credentials(identity)

    logger.info(
        "Opening SSH connection to %s (%s)",
        identity.key,
        "key" if "password" not in credentials else "password",
    )

    async def _connect(verify: str | None) -> asyncssh.SSHClientConnection:
        return await asyncssh.connect(
            identity.host,
            port=identity.port,
            username=identity.username,
            known_hosts=verify,
            connect_timeout=connect_timeout,
            **credentials,
        )

    try:
        try:
            return await _connect(known_hosts)
        except asyncssh.HostKeyNotVerifiable as e:
            if strict_host_key_checking:
                logger.error(
                    "Host key verification failed for %s: %s. Add the host key to %s "
                    "or set REMOTETEST_STRICT_HOST_KEY_CHECKING=false",
                    identity.key,
                    e,
                    known_hosts,
                )
                raise
            logger.warning(
                "Host key not verified for %s (strict mode disabled): %s",
                identity.key,
                e,
            )
            return await _connect(None)
    except asyncssh.PermissionDenied as e:
        raise AuthError(identity.key, e.reason or str(e)) from e
    except (asyncssh.Error, OSError, asyncio.TimeoutError) as e:
        logger.error("SSH connection to %s failed: %s", identity.key, e)
        raise ConnectError(identity.key, e) from e
