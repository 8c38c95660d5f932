"""Project file loader.

Reads the JSON project file and turns it into typed models. Structural
problems raise ConfigError; cosmetic ones (unknown keys, bad outputMode) are
logged and defaulted.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from remotetest_mcp.config.settings import OUTPUT_MODES
from remotetest_mcp.errors import ConfigError
from remotetest_mcp.models import (
    ColorRule,
    CommandTemplate,
    LogDirectory,
    LogsConfig,
    ProjectConfig,
    ServerIdentity,
)
from remotetest_mcp.utils.filetype import normalize_extension
from remotetest_mcp.utils.variables import is_path_within

logger = logging.getLogger(__name__)

VALID_ROOT_KEYS = {"projects", "ai", "refreshInterval", "textFileExtensions", "outputMode"}
VALID_PROJECT_KEYS = {"name", "localPath", "enabled", "server", "commands", "logs"}
VALID_SERVER_KEYS = {
    "host",
    "port",
    "username",
    "password",
    "privateKeyPath",
    "remoteDirectory",
}
VALID_COMMAND_KEYS = {
    "name",
    "executeCommand",
    "includePatterns",
    "excludePatterns",
    "colorRules",
    "runnable",
    # legacy
    "filterPatterns",
    "filterMode",
}

DEFAULT_COMMAND = "pytest {filePath} -v"


@dataclass
class ProjectFile:
    """Parsed contents of the project file."""

    projects: list[ProjectConfig] = field(default_factory=list)
    text_extensions: tuple[str, ...] = ()
    output_mode: str = "channel"


def _warn_unknown(keys: Any, valid: set[str], where: str) -> None:
    unknown = sorted(set(keys) - valid)
    if unknown:
        logger.warning("Unknown key(s) in %s ignored: %s", where, ", ".join(unknown))


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where} must be a list of strings")
    return tuple(value)


def parse_command(raw: Any, where: str) -> CommandTemplate:
    """Parse one command entry, converting legacy filterPatterns/filterMode."""
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} must be an object")
    _warn_unknown(raw, VALID_COMMAND_KEYS, where)

    include = _string_list(raw.get("includePatterns"), f"{where}.includePatterns")
    exclude = _string_list(raw.get("excludePatterns"), f"{where}.excludePatterns")
    legacy = raw.get("filterPatterns")
    if legacy is not None and "includePatterns" not in raw and "excludePatterns" not in raw:
        patterns = _string_list(legacy, f"{where}.filterPatterns")
        if raw.get("filterMode") == "exclude":
            exclude = patterns
        else:
            include = patterns

    color_rules = []
    for i, rule in enumerate(raw.get("colorRules") or []):
        if not isinstance(rule, dict) or "pattern" not in rule or "color" not in rule:
            raise ConfigError(f"{where}.colorRules[{i}] needs 'pattern' and 'color'")
        color_rules.append(ColorRule(pattern=str(rule["pattern"]), color=str(rule["color"])))

    runnable = raw.get("runnable", True)
    if not isinstance(runnable, bool):
        raise ConfigError(f"{where}.runnable must be a boolean")

    execute_command = raw.get("executeCommand")
    if not isinstance(execute_command, str) or not execute_command.strip():
        raise ConfigError(f"{where}.executeCommand is required")

    return CommandTemplate(
        name=str(raw.get("name") or execute_command),
        execute_command=execute_command,
        include_patterns=include,
        exclude_patterns=exclude,
        color_rules=tuple(color_rules),
        runnable=runnable,
    )


def parse_server(raw: Any, where: str) -> tuple[ServerIdentity, str]:
    """Parse a server block into an identity and its remote directory."""
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} is required and must be an object")
    _warn_unknown(raw, VALID_SERVER_KEYS, where)

    host = raw.get("host")
    username = raw.get("username")
    if not host or not username:
        raise ConfigError(f"{where} needs both 'host' and 'username'")
    try:
        port = int(raw.get("port", 22))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}.port must be an integer") from e

    identity = ServerIdentity(
        host=str(host),
        username=str(username),
        port=port,
        password=raw.get("password") or None,
        private_key_path=raw.get("privateKeyPath") or None,
    )
    return identity, str(raw.get("remoteDirectory") or "")


def parse_logs(raw: Any) -> LogsConfig:
    """Parse the optional logs block."""
    if not isinstance(raw, dict):
        return LogsConfig()
    directories = tuple(
        LogDirectory(name=str(d.get("name", d.get("path", ""))), path=str(d["path"]))
        for d in raw.get("directories") or []
        if isinstance(d, dict) and d.get("path")
    )
    return LogsConfig(directories=directories, download_path=str(raw.get("downloadPath") or ""))


def parse_project(raw: Any, index: int) -> ProjectConfig:
    """Parse one project entry."""
    where = f"projects[{index}]"
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} must be an object")
    _warn_unknown(raw, VALID_PROJECT_KEYS, where)

    name = str(raw.get("name") or f"project-{index + 1}")
    where = f"project {name!r}"
    server, remote_directory = parse_server(raw.get("server"), f"{where} server")
    commands = [
        parse_command(c, f"{where} commands[{j}]")
        for j, c in enumerate(raw.get("commands") or [])
    ]
    return ProjectConfig(
        name=name,
        local_path=str(raw.get("localPath") or ""),
        server=server,
        remote_directory=remote_directory,
        commands=commands,
        logs=parse_logs(raw.get("logs")),
        enabled=raw.get("enabled", True) is not False,
    )


def _convert_legacy(data: dict[str, Any], base_dir: str) -> dict[str, Any]:
    """Wrap the old single-server layout into a one-project file."""
    server = dict(data["server"])
    command = data.get("command") or {}
    project = {
        "name": "default",
        "localPath": server.pop("localProjectPath", None) or base_dir,
        "server": server,
        "commands": [
            {
                "name": "default",
                "executeCommand": command.get("executeCommand", DEFAULT_COMMAND),
                "filterPatterns": command.get("filterPatterns", []),
                "filterMode": command.get("filterMode", "include"),
            }
        ],
        "logs": data.get("logs"),
    }
    converted = {k: v for k, v in data.items() if k not in ("server", "command", "logs")}
    converted["projects"] = [project, *data.get("projects", [])]
    logger.info("Converted legacy single-server config into project 'default'")
    return converted


def find_path_conflicts(projects: list[ProjectConfig]) -> list[str]:
    """Describe enabled projects whose local roots nest inside each other."""
    conflicts = []
    enabled = [p for p in projects if p.enabled and p.local_path]
    for i, outer in enumerate(enabled):
        for inner in enabled[i + 1:]:
            if is_path_within(inner.local_path, outer.local_path) or is_path_within(
                outer.local_path, inner.local_path
            ):
                conflicts.append(
                    f"{inner.name!r} ({inner.local_path}) and "
                    f"{outer.name!r} ({outer.local_path}) have nested roots"
                )
    return conflicts


def parse_project_file(data: Any, base_dir: str = ".") -> ProjectFile:
    """Build a ProjectFile from decoded JSON.

    Raises:
        ConfigError: If the document structure is invalid
    """
    if not isinstance(data, dict):
        raise ConfigError("Project file must contain a JSON object")
    if "server" in data:
        data = _convert_legacy(data, base_dir)
    _warn_unknown(data, VALID_ROOT_KEYS, "project file")

    raw_projects = data.get("projects", [])
    if not isinstance(raw_projects, list):
        raise ConfigError("'projects' must be a list")
    projects = [parse_project(p, i) for i, p in enumerate(raw_projects)]

    for conflict in find_path_conflicts(projects):
        logger.warning("Project roots overlap, longest root wins: %s", conflict)

    text_extensions = tuple(
        normalize_extension(e)
        for e in _string_list(data.get("textFileExtensions"), "textFileExtensions")
    )

    output_mode = str(data.get("outputMode", "channel")).lower()
    if output_mode not in OUTPUT_MODES:
        logger.warning("outputMode %r is not valid, using 'channel'", output_mode)
        output_mode = "channel"

    return ProjectFile(
        projects=projects, text_extensions=text_extensions, output_mode=output_mode
    )


def load_project_file(path: str | Path) -> ProjectFile:
    """Read and parse the project file.

    A missing file yields an empty configuration.

    Raises:
        ConfigError: If the file is not valid JSON or has a bad structure
    """
    path = Path(path).expanduser()
    if not path.exists():
        logger.warning("Project file not found at %s, no projects loaded", path)
        return ProjectFile()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    project_file = parse_project_file(data, base_dir=str(path.parent.resolve()))
    logger.info("Loaded %d project(s) from %s", len(project_file.projects), path)
    return project_file
