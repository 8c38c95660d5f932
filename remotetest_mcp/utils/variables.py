"""Local-to-remote path mapping and command template substitution."""

import ntpath
import os
import posixpath
import re
from types import ModuleType
from typing import Final

from remotetest_mcp.errors import PathMappingError
from remotetest_mcp.models import CommandVariables, ProjectMapping

PLACEHOLDER: Final[re.Pattern[str]] = re.compile(r"\{(\w+)\}")
WINDOWS_ROOT: Final[re.Pattern[str]] = re.compile(r"^(?:[A-Za-z]:[\\/]|\\\\)")


def is_windows_style(path: str) -> bool:
    """Whether path looks like a Windows path (drive letter or UNC)."""
    return bool(WINDOWS_ROOT.match(path))


def _flavour(path: str) -> ModuleType:
    """Path module matching the style of path."""
    return ntpath if is_windows_style(path) else os.path


def _normalize(path: str, flavour: ModuleType) -> str:
    if flavour is ntpath:
        return ntpath.normpath(path)
    return os.path.abspath(path)


def is_path_within(path: str, root: str) -> bool:
    """Check that path is root itself or a descendant of it.

    Comparison is case-insensitive for Windows-style roots and
    case-sensitive otherwise.
    """
    if not path or not root:
        return False
    flavour = _flavour(root)
    norm_root = _normalize(root, flavour)
    norm_path = _normalize(path, flavour)
    if flavour is ntpath:
        norm_root = norm_root.casefold()
        norm_path = norm_path.casefold()
    if norm_path == norm_root:
        return True
    prefix = norm_root if norm_root.endswith(flavour.sep) else norm_root + flavour.sep
    return norm_path.startswith(prefix)


def calculate_remote_path(local_file_path: str, mapping: ProjectMapping) -> str:
    """Map a local file to its location under the remote root.

    Args:
        local_file_path: File inside the project's local root
        mapping: Project local/remote roots

    Returns:
        Remote path using POSIX separators only

    Raises:
        PathMappingError: If the remote root is empty or the file lies
            outside the local root
    """
    if not mapping.remote_root or not mapping.remote_root.strip():
        raise PathMappingError(
            f"No remote directory configured for {mapping.local_root!r}"
        )
    if not is_path_within(local_file_path, mapping.local_root):
        raise PathMappingError(
            f"{local_file_path!r} is not inside project root {mapping.local_root!r}"
        )

    flavour = _flavour(mapping.local_root)
    norm_root = _normalize(mapping.local_root, flavour)
    norm_path = _normalize(local_file_path, flavour)
    relative = norm_path[len(norm_root):].lstrip(flavour.sep)
    if flavour is ntpath:
        relative = relative.replace("\\", "/")

    remote_root = mapping.remote_root.strip()
    if not relative:
        return remote_root
    return posixpath.join(remote_root, relative)


def build_variables(
    local_file_path: str,
    remote_file_path: str,
    remote_root: str,
) -> CommandVariables:
    """Build the placeholder values for one file.

    Remote-side values use POSIX semantics; local-side values keep the
    local path's own separators.
    """
    flavour = _flavour(local_file_path)
    return CommandVariables(
        file_path=remote_file_path,
        file_name=posixpath.basename(remote_file_path),
        file_dir=posixpath.dirname(remote_file_path),
        local_path=local_file_path,
        local_dir=flavour.dirname(local_file_path),
        local_file_name=flavour.basename(local_file_path),
        remote_dir=remote_root,
    )


def substitute(template: str, variables: CommandVariables) -> str:
    """Replace known {placeholders} in template.

    Unknown placeholders are left exactly as written.
    """
    values = variables.as_placeholders()

    def replace(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return PLACEHOLDER.sub(replace, template)
