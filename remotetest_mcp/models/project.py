"""Project and command configuration models."""

from dataclasses import dataclass, field

from remotetest_mcp.models.ssh import ServerIdentity


@dataclass(frozen=True)
class ColorRule:
    """Colour applied to output lines matching a pattern."""

    pattern: str
    color: str


@dataclass(frozen=True)
class CommandTemplate:
    """A configured remote command with output filters.

    execute_command contains {variable} placeholders filled per file.
    """

    name: str
    execute_command: str
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    color_rules: tuple[ColorRule, ...] = ()
    runnable: bool = True


@dataclass(frozen=True)
class ProjectMapping:
    """Association of a local directory root with a remote root."""

    local_root: str
    remote_root: str


@dataclass(frozen=True)
class LogDirectory:
    """Named remote log directory."""

    name: str
    path: str


@dataclass(frozen=True)
class LogsConfig:
    """Remote log locations and local download target."""

    directories: tuple[LogDirectory, ...] = ()
    download_path: str = ""


@dataclass
class ProjectConfig:
    """One configured project: local root, server and commands."""

    name: str
    local_path: str
    server: ServerIdentity
    remote_directory: str = ""
    commands: list[CommandTemplate] = field(default_factory=list)
    logs: LogsConfig = field(default_factory=LogsConfig)
    enabled: bool = True

    @property
    def mapping(self) -> ProjectMapping:
        """Local/remote root pair used for path mapping."""
        return ProjectMapping(
            local_root=self.local_path, remote_root=self.remote_directory
        )

    @property
    def runnable_commands(self) -> list[CommandTemplate]:
        """Commands that may be run against uploaded files."""
        return [c for c in self.commands if c.runnable]

    def get_command(self, name: str) -> CommandTemplate | None:
        """Look up a command by name."""
        for command in self.commands:
            if command.name == name:
                return command
        return None
