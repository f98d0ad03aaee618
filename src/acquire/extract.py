"""Safe extraction of ``.crate`` archives (gzip-compressed tar).

Extraction runs in two phases. Every entry is validated first: no ``..``,
root or drive components, everything nested under the ``<name>-<version>/``
directory, and only regular files and directories. Nothing is written unless
the whole archive passes, so a rejected archive leaves the destination
untouched. Files are then written with the top-level directory stripped.
"""
from __future__ import annotations

import io
import logging
import os
import shutil
import tarfile
from pathlib import PurePosixPath, PureWindowsPath
from typing import BinaryIO, List, Tuple, Union

from common.logging_utils import extra_context, is_debug_enabled
from .errors import UnsafeArchiveEntry

logger = logging.getLogger(__name__)

ArchiveSource = Union[bytes, str, BinaryIO]


def _check_components(name: str) -> PurePosixPath:
    """Reject parent, root and drive components in an entry path."""
    if "\\" in name or PureWindowsPath(name).drive:
        windows = PureWindowsPath(name)
        if windows.drive or windows.root or ".." in windows.parts:
            raise UnsafeArchiveEntry(name, "contains a .. or root segment")
    posix = PurePosixPath(name)
    if posix.is_absolute() or ".." in posix.parts:
        raise UnsafeArchiveEntry(name, "contains a .. or root segment")
    return posix


def _relative_target(member: tarfile.TarInfo, base: str) -> PurePosixPath:
    """Validate one entry and return its path relative to the destination."""
    path = _check_components(member.name)
    parts = path.parts
    if not parts or parts[0] != base:
        raise UnsafeArchiveEntry(member.name, f"is not inside the {base} directory")
    if not (member.isfile() or member.isdir()):
        raise UnsafeArchiveEntry(member.name, "is a link or special file")
    return PurePosixPath(*parts[1:]) if len(parts) > 1 else PurePosixPath()


def _open(source: ArchiveSource) -> tarfile.TarFile:
    if isinstance(source, (bytes, bytearray)):
        return tarfile.open(fileobj=io.BytesIO(source), mode="r:gz")
    if isinstance(source, str):
        return tarfile.open(source, mode="r:gz")
    return tarfile.open(fileobj=source, mode="r:gz")


def plan(archive: tarfile.TarFile, base: str) -> List[Tuple[tarfile.TarInfo, PurePosixPath]]:
    """Validate every entry of ``archive``; raise on the first unsafe one."""
    return [(member, _relative_target(member, base)) for member in archive.getmembers()]


def unpack(source: ArchiveSource, base: str, output: str) -> List[str]:
    """Extract a ``.crate`` archive into ``output``.

    Args:
        source: Archive bytes, a path to the archive, or a binary file object.
        base: Expected top-level directory, ``<name>-<version>``.
        output: Destination directory, created if missing.

    Returns:
        Paths of the files written, in archive order.

    Raises:
        UnsafeArchiveEntry: naming the first offending entry; nothing is written.
        tarfile.TarError, OSError: for corrupt archives or I/O failures.
    """
    written: List[str] = []
    with _open(source) as archive:
        entries = plan(archive, base)
        os.makedirs(output, exist_ok=True)
        for member, relative in entries:
            dst = os.path.join(output, *relative.parts)
            if member.isdir():
                os.makedirs(dst, exist_ok=True)
                continue
            os.makedirs(os.path.dirname(dst) or output, exist_ok=True)
            extracted = archive.extractfile(member)
            if extracted is None:
                continue
            with extracted, open(dst, "wb") as fh:
                shutil.copyfileobj(extracted, fh)
            if member.mode & 0o111:
                os.chmod(dst, 0o755)
            written.append(dst)

    if is_debug_enabled(logger):
        logger.debug(
            "Archive extracted",
            extra=extra_context(
                event="extract",
                component="extractor",
                target=base,
                files=len(written),
                outcome="success",
            ),
        )
    return written
