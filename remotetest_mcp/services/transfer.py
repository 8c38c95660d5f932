"""SFTP transfer engine.

Uploads normalise line endings for text files so remote Unix tools do not
see CRLF; everything else is copied byte-for-byte.
"""

import logging
import os
import posixpath
import stat
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import asyncssh

from remotetest_mcp.errors import TransferError
from remotetest_mcp.models import DirEntry
from remotetest_mcp.utils.filetype import is_text_file, normalize_line_endings

if TYPE_CHECKING:
    from remotetest_mcp.services.session import SSHSession

logger = logging.getLogger(__name__)

FILEXFER_TYPE_DIRECTORY = 2
TRANSFER_ERRORS = (asyncssh.Error, OSError)


async def _makedirs(sftp: asyncssh.SFTPClient, remote_dir: str) -> None:
    """Create remote_dir and its parents; existing directories are fine."""
    if not remote_dir or remote_dir in ("/", "."):
        return
    try:
        await sftp.makedirs(remote_dir, exist_ok=True)
    except asyncssh.SFTPError as e:
        # Some servers report an existing directory as a generic failure.
        logger.debug("makedirs %s: %s", remote_dir, e)


async def ensure_remote_directory(session: "SSHSession", remote_path: str) -> None:
    """Create a remote directory tree if it does not exist."""
    try:
        async with session.connection.start_sftp_client() as sftp:
            await _makedirs(sftp, remote_path)
    except TRANSFER_ERRORS as e:
        raise TransferError("mkdir", remote_path, e) from e


async def upload_file(
    session: "SSHSession",
    local_path: str,
    remote_path: str,
    text_extensions: Iterable[str] = (),
) -> int:
    """Upload one local file, creating missing remote parents.

    Args:
        session: Open SSH session
        local_path: File to send
        remote_path: Destination path (POSIX)
        text_extensions: Extra extensions treated as text

    Returns:
        Number of bytes written remotely

    Raises:
        TransferError: If the file cannot be read or written
    """
    source = Path(local_path)
    if not source.is_file():
        raise TransferError("upload", local_path, FileNotFoundError("no such local file"))

    text = is_text_file(local_path, text_extensions)
    try:
        async with session.connection.start_sftp_client() as sftp:
            await _makedirs(sftp, posixpath.dirname(remote_path))
            if text:
                data = normalize_line_endings(source.read_bytes())
                async with sftp.open(remote_path, "wb") as remote_file:
                    await remote_file.write(data)
                size = len(data)
            else:
                await sftp.put(local_path, remote_path)
                size = source.stat().st_size
    except TRANSFER_ERRORS as e:
        raise TransferError("upload", local_path, e) from e

    logger.info(
        "Uploaded %s -> %s:%s (%d bytes, %s)",
        local_path,
        session.identity.key,
        remote_path,
        size,
        "text" if text else "binary",
    )
    return size


async def download_file(session: "SSHSession", remote_path: str, local_path: str) -> str:
    """Download one remote file, creating local parent directories.

    Returns:
        The local path written

    Raises:
        TransferError: If the transfer fails
    """
    try:
        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        async with session.connection.start_sftp_client() as sftp:
            await sftp.get(remote_path, local_path)
    except TRANSFER_ERRORS as e:
        raise TransferError("download", remote_path, e) from e

    logger.info("Downloaded %s:%s -> %s", session.identity.key, remote_path, local_path)
    return local_path


def _is_directory(attrs: asyncssh.SFTPAttrs) -> bool:
    if attrs.permissions is not None:
        return stat.S_ISDIR(attrs.permissions)
    return attrs.type == FILEXFER_TYPE_DIRECTORY


async def _read_entries(sftp: asyncssh.SFTPClient, remote_path: str) -> list[DirEntry]:
    entries = []
    for name in await sftp.readdir(remote_path):
        filename = name.filename
        if isinstance(filename, bytes):
            filename = filename.decode("utf-8", errors="replace")
        if filename in (".", ".."):
            continue
        attrs = name.attrs
        entries.append(
            DirEntry(
                name=filename,
                path=posixpath.join(remote_path, filename),
                size=attrs.size or 0,
                modified_time=datetime.fromtimestamp(attrs.mtime or 0),
                is_directory=_is_directory(attrs),
            )
        )
    return entries


async def list_directory(session: "SSHSession", remote_path: str) -> list[DirEntry]:
    """List a remote directory.

    Order is whatever the server returns; see sort_entries().

    Raises:
        TransferError: If the directory cannot be read
    """
    try:
        async with session.connection.start_sftp_client() as sftp:
            return await _read_entries(sftp, remote_path)
    except TRANSFER_ERRORS as e:
        raise TransferError("list", remote_path, e) from e


async def _mirror(
    sftp: asyncssh.SFTPClient,
    remote_dir: str,
    local_dir: str,
    downloaded: list[str],
) -> None:
    os.makedirs(local_dir, exist_ok=True)
    for entry in await _read_entries(sftp, remote_dir):
        target = os.path.join(local_dir, entry.name)
        if entry.is_directory:
            await _mirror(sftp, entry.path, target, downloaded)
        else:
            await sftp.get(entry.path, target)
            downloaded.append(target)


async def download_directory(
    session: "SSHSession",
    remote_path: str,
    local_path: str,
) -> list[str]:
    """Recursively mirror a remote directory into local_path.

    Returns:
        Local paths of the downloaded files

    Raises:
        TransferError: On the first failed listing or transfer
    """
    downloaded: list[str] = []
    try:
        async with session.connection.start_sftp_client() as sftp:
            await _mirror(sftp, remote_path, local_path, downloaded)
    except TRANSFER_ERRORS as e:
        raise TransferError("download", remote_path, e) from e

    logger.info(
        "Downloaded %d file(s) from %s:%s -> %s",
        len(downloaded),
        session.identity.key,
        remote_path,
        local_path,
    )
    return downloaded


def sort_entries(entries: Iterable[DirEntry]) -> list[DirEntry]:
    """Directories first, then lexicographic by name."""
    return sorted(entries, key=lambda e: (not e.is_directory, e.name))
