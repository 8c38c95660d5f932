"""Server reachability checks."""

import asyncio

from remotetest_mcp.models import ServerIdentity


async def check_host_online(hostname: str, port: int, timeout: float = 2.0) -> bool:
    """Check if a host accepts TCP connections on port.

    Args:
        hostname: Host to check
        port: Port to connect to (usually SSH)
        timeout: Connection timeout in seconds

    Returns:
        True if a connection could be opened
    """
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=timeout,
        )
        writer.close()
        await writer.wait_closed()
        return True
    except (asyncio.TimeoutError, OSError):
        return False


async def check_servers_online(
    servers: dict[str, ServerIdentity],
    timeout: float = 2.0,
) -> dict[str, bool]:
    """Check several servers concurrently.

    Args:
        servers: Mapping of project name to server
        timeout: Connection timeout per server

    Returns:
        Mapping of project name to reachability
    """
    if not servers:
        return {}

    names = list(servers)
    results = await asyncio.gather(
        *(check_host_online(s.host, s.port, timeout) for s in servers.values())
    )
    return dict(zip(names, results))
