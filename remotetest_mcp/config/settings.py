"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

OUTPUT_MODES = ("channel", "webview")


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Project file
    config_path: str = field(default="RemoteTest-config.json")

    # SSH / execution
    connect_timeout: int = field(default=30)
    command_timeout: int = field(default=0)  # 0 = wait for the remote command
    output_mode: str | None = field(default=None)

    # Connection pool
    idle_timeout: int = field(default=60)
    max_pool_size: int = field(default=20)

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="0.0.0.0")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from REMOTETEST_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            config_path=os.getenv("REMOTETEST_CONFIG", "RemoteTest-config.json"),
            connect_timeout=cls._get_int("REMOTETEST_CONNECT_TIMEOUT", 30),
            command_timeout=cls._get_int("REMOTETEST_COMMAND_TIMEOUT", 0),
            output_mode=cls._get_output_mode(),
            idle_timeout=cls._get_int("REMOTETEST_IDLE_TIMEOUT", 60),
            max_pool_size=cls._get_int("REMOTETEST_MAX_POOL_SIZE", 20),
            transport=cls._get_transport(),
            http_host=os.getenv("REMOTETEST_HTTP_HOST", "0.0.0.0"),
            http_port=cls._get_int("REMOTETEST_HTTP_PORT", 8000),
            log_level=os.getenv("REMOTETEST_LOG_LEVEL", "INFO"),
            log_colors=cls._get_bool("REMOTETEST_LOG_COLORS", True),
            log_payloads=cls._get_bool("REMOTETEST_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("REMOTETEST_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("REMOTETEST_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_output_mode() -> str | None:
        """Get output mode override, ignoring unknown values."""
        mode = os.getenv("REMOTETEST_OUTPUT_MODE", "").strip().lower()
        if not mode:
            return None
        if mode not in OUTPUT_MODES:
            logger.warning(
                "Invalid REMOTETEST_OUTPUT_MODE %r, expected one of %s",
                mode,
                ", ".join(OUTPUT_MODES),
            )
            return None
        return mode

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("REMOTETEST_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"

    @property
    def command_deadline(self) -> float | None:
        """Execution deadline in seconds, or None when unbounded."""
        return float(self.command_timeout) if self.command_timeout > 0 else None
