"""Text/binary classification for uploads."""

import posixpath
from collections.abc import Iterable

# Uploaded with CRLF rewritten to LF; anything else is sent byte-for-byte.
TEXT_EXTENSIONS: frozenset[str] = frozenset({
    # Config files
    ".conf",
    ".cfg",
    ".ini",
    ".yaml",
    ".yml",
    ".toml",
    ".json",
    ".xml",
    ".properties",
    ".env",
    # Scripts
    ".sh",
    ".bash",
    ".zsh",
    ".py",
    ".pl",
    ".rb",
    ".lua",
    ".tcl",
    ".js",
    ".ts",
    ".go",
    ".rs",
    ".java",
    ".c",
    ".h",
    ".cpp",
    ".hpp",
    ".sql",
    # Web
    ".html",
    ".htm",
    ".css",
    # Docs
    ".md",
    ".rst",
    ".txt",
    ".log",
    ".csv",
})

TEXT_BASENAMES: frozenset[str] = frozenset({
    "makefile",
    "dockerfile",
    "jenkinsfile",
    "vagrantfile",
    "gemfile",
    "rakefile",
    ".gitignore",
    ".bashrc",
    ".profile",
})


def normalize_extension(ext: str) -> str:
    """Lowercase an extension and make sure it starts with a dot."""
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def is_text_file(path: str, extra_extensions: Iterable[str] = ()) -> bool:
    """Decide whether a file should be treated as text.

    Args:
        path: Local or remote file path.
        extra_extensions: Additional extensions from configuration.

    Returns:
        True for known text extensions or basenames.
    """
    name = posixpath.basename(path.replace("\\", "/")).lower()
    if name in TEXT_BASENAMES:
        return True
    extensions = TEXT_EXTENSIONS | {normalize_extension(e) for e in extra_extensions}
    ext = posixpath.splitext(name)[1]
    if not ext:
        # ".env" has no extension to splitext; the whole name is the suffix.
        return name.startswith(".") and name in extensions
    return ext in extensions


def normalize_line_endings(data: bytes) -> bytes:
    """Rewrite CRLF sequences to LF."""
    return data.replace(b"\r\n", b"\n")
