"""Exception hierarchy for the remote test pipeline.

Every fatal pipeline failure derives from RemoteTestError so callers at the
tool boundary can turn it into a readable message. A non-zero remote exit code
is a normal result and never raised.
"""


class RemoteTestError(Exception):
    """Base class for pipeline failures."""


class ConfigError(RemoteTestError):
    """Missing or inconsistent project/server configuration."""


class AuthError(RemoteTestError):
    """No usable SSH credential, or the server rejected it."""

    def __init__(self, target: str, reason: str):
        """Initialize auth error.

        Args:
            target: user@host:port the credential was for
            reason: Human-readable cause
        """
        self.target = target
        self.reason = reason
        super().__init__(f"Authentication failed for {target}: {reason}")


class ConnectError(RemoteTestError):
    """Network or SSH handshake failure."""

    def __init__(self, target: str, original_error: Exception | None = None):
        """Initialize connect error.

        Args:
            target: user@host:port that could not be reached
            original_error: Underlying exception, if any
        """
        self.target = target
        self.original_error = original_error
        detail = original_error if original_error is not None else "connection lost"
        super().__init__(f"Cannot connect to {target}: {detail}")


class SessionClosedError(ConnectError):
    """Operation attempted on a session that was already disconnected."""

    def __init__(self, target: str):
        self.target = target
        self.original_error = None
        RemoteTestError.__init__(self, f"Session to {target} is already closed")


class PathMappingError(RemoteTestError):
    """Local file cannot be mapped into the project's remote root."""


class TransferError(RemoteTestError):
    """SFTP upload, download or listing failed."""

    def __init__(self, operation: str, path: str, original_error: Exception):
        self.operation = operation
        self.path = path
        self.original_error = original_error
        super().__init__(f"{operation} failed for {path}: {original_error}")


class RemoteExecError(RemoteTestError):
    """The exec channel for a command could not be opened."""


class CommandCancelledError(RemoteTestError):
    """Command exceeded its deadline and the channel was closed."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command timed out after {timeout:g}s: {command}")
