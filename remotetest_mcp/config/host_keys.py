"""SSH host key verification.

Resolves which known_hosts file asyncssh should check server keys against.
"""

import logging
import os
from pathlib import Path

from remotetest_mcp.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_KNOWN_HOSTS = Path.home() / ".ssh" / "known_hosts"


class HostKeyVerifier:
    """Known-hosts policy for outgoing SSH connections."""

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file, or 'none' to disable
            strict_checking: Reject unknown host keys

        Raises:
            ConfigError: If strict mode and the known_hosts file is missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path, failing closed in strict mode."""
        if value and value.lower() == "none":
            logger.warning(
                "SSH host key verification DISABLED (REMOTETEST_KNOWN_HOSTS=none); "
                "connections are open to MITM attacks"
            )
            return None

        path = Path(os.path.expanduser(value)) if value else DEFAULT_KNOWN_HOSTS
        if path.exists():
            return str(path)

        if self.strict_checking:
            raise ConfigError(
                f"known_hosts not found at {path}. Add host keys with "
                f"'ssh-keyscan <host> >> {path}', point REMOTETEST_KNOWN_HOSTS at "
                f"an existing file, or set REMOTETEST_STRICT_HOST_KEY_CHECKING=false"
            )
        logger.warning(
            "known_hosts not found at %s, host key verification disabled", path
        )
        return None

    def get_known_hosts_path(self) -> str | None:
        """Path to known_hosts, or None if verification is disabled."""
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None
