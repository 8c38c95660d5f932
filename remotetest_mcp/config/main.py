"""Application configuration.

Delegates to specialized components:
- Settings: Environment variables
- HostKeyVerifier: Manages known_hosts
- load_project_file: Reads the JSON project file
"""

import logging
import os
from dataclasses import dataclass, field

from remotetest_mcp.config.host_keys import HostKeyVerifier
from remotetest_mcp.config.loader import ProjectFile, load_project_file
from remotetest_mcp.config.settings import Settings
from remotetest_mcp.models import ProjectConfig
from remotetest_mcp.utils.variables import is_path_within

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Aggregates settings from environment, known_hosts and the project file.
    Passed explicitly to the components that need it.
    """

    settings: Settings
    host_keys: HostKeyVerifier
    project_file: ProjectFile = field(default_factory=ProjectFile)

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment and the project file it points at.

        Returns:
            Configured instance with all components initialized
        """
        settings = Settings.from_env()
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("REMOTETEST_KNOWN_HOSTS"),
            strict_checking=cls._get_bool_env("REMOTETEST_STRICT_HOST_KEY_CHECKING", True),
        )
        return cls(
            settings=settings,
            host_keys=host_keys,
            project_file=load_project_file(settings.config_path),
        )

    @classmethod
    def from_projects(
        cls,
        projects: list[ProjectConfig],
        settings: Settings | None = None,
        text_extensions: tuple[str, ...] = (),
        output_mode: str = "channel",
    ) -> "Config":
        """Create config from in-memory projects with verification disabled.

        Args:
            projects: Project definitions
            settings: Optional settings (defaults otherwise)
            text_extensions: Extra text file extensions
            output_mode: Default sink

        Returns:
            Configured instance
        """
        return cls(
            settings=settings or Settings(),
            host_keys=HostKeyVerifier(known_hosts_path="none", strict_checking=False),
            project_file=ProjectFile(
                projects=projects,
                text_extensions=text_extensions,
                output_mode=output_mode,
            ),
        )

    @staticmethod
    def _get_bool_env(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() != "false"

    def reload(self) -> None:
        """Re-read the project file from disk."""
        self.project_file = load_project_file(self.settings.config_path)

    @property
    def projects(self) -> list[ProjectConfig]:
        """All configured projects."""
        return self.project_file.projects

    @property
    def enabled_projects(self) -> list[ProjectConfig]:
        """Projects not explicitly disabled."""
        return [p for p in self.projects if p.enabled]

    def get_project(self, name: str) -> ProjectConfig | None:
        """Get an enabled project by name."""
        for project in self.enabled_projects:
            if project.name == name:
                return project
        return None

    def match_project(self, local_path: str) -> ProjectConfig | None:
        """Find the project owning local_path.

        When several roots contain the path, the longest root wins.
        """
        best: ProjectConfig | None = None
        for project in self.enabled_projects:
            if not project.local_path or not is_path_within(local_path, project.local_path):
                continue
            if best is None or len(project.local_path.rstrip("/\\")) > len(
                best.local_path.rstrip("/\\")
            ):
                best = project
        if best is not None:
            logger.debug("Matched %s to project %s", local_path, best.name)
        return best

    @property
    def text_extensions(self) -> tuple[str, ...]:
        """Extra text extensions from the project file."""
        return self.project_file.text_extensions

    @property
    def output_mode(self) -> str:
        """Default sink: environment override, else project file."""
        return self.settings.output_mode or self.project_file.output_mode

    # Delegate to settings for convenience
    @property
    def connect_timeout(self) -> int:
        """SSH handshake timeout in seconds."""
        return self.settings.connect_timeout

    @property
    def command_deadline(self) -> float | None:
        """Remote command deadline, or None when unbounded."""
        return self.settings.command_deadline

    @property
    def idle_timeout(self) -> int:
        """Connection idle timeout in seconds."""
        return self.settings.idle_timeout

    @property
    def max_pool_size(self) -> int:
        """Maximum connection pool size."""
        return self.settings.max_pool_size

    @property
    def transport(self) -> str:
        """Transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        """HTTP server bind address."""
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        """HTTP server port."""
        return self.settings.http_port

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()

    @property
    def strict_host_key_checking(self) -> bool:
        """Whether to reject unknown host keys."""
        return self.host_keys.strict_checking
