"""Protocol interfaces for dependency inversion.

The pipeline depends on these contracts rather than on concrete classes, so
a test can pass any object with the right methods:

    class FakeSink:
        def __init__(self):
            self.lines = []

        def write_line(self, text, severity):
            self.lines.append((text, severity))

        def reveal(self): ...
        def clear(self): ...

    await execute_remote_command("pytest", FakeSink(), identity, pool=pool)
"""

from typing import Any, Protocol, runtime_checkable

from remotetest_mcp.models import ServerIdentity, Severity


@runtime_checkable
class SessionPool(Protocol):
    """Hands out one ready connection per request.

    Example implementation:
        class MyPool:
            async def acquire(self, identity):
                return await asyncssh.connect(identity.host, ...)

            async def release(self, identity, conn):
                conn.close()
    """

    async def acquire(self, identity: ServerIdentity) -> Any:
        """Check out a connection owned by the caller until release().

        Raises:
            AuthError: No usable credential
            ConnectError: Unable to connect
        """
        ...

    async def release(self, identity: ServerIdentity, conn: Any) -> None:
        """Return a connection obtained from acquire()."""
        ...


@runtime_checkable
class OutputSink(Protocol):
    """Destination for classified output lines.

    Exactly one sink is active per command execution; the caller picks it.
    """

    def write_line(self, text: str, severity: Severity = Severity.INFO) -> None:
        """Append one line tagged with a severity."""
        ...

    def reveal(self) -> None:
        """Bring the output surface to the user's attention."""
        ...

    def clear(self) -> None:
        """Discard everything written so far."""
        ...
