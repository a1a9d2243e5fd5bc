"""
Tarball primitives for payloads and the outer backup archive.

Payloads hold one directory whose top-level member is the directory's
basename; :func:`unpack_stripped` drops that first component again so the
content lands directly in the target directory.
"""

from __future__ import annotations

import os
import tarfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator

from .logging import get_logger

logger = get_logger(__name__)

# Python >= 3.12 (and security backports) know extraction filters
_HAS_FILTERS = hasattr(tarfile, "data_filter")


def pack_directory(source: Path, target: Path) -> int:
    """
    Pack ``source`` into a gzip tarball at ``target``.

    Args:
        source: Directory to pack
        target: Tarball to write

    Returns:
        Size of the written tarball in bytes

    Raises:
        NotADirectoryError: If ``source`` is not a directory
        OSError / tarfile.TarError: On read or write failures
    """
    source = Path(source)
    if not source.is_dir():
        raise NotADirectoryError(f"Not a directory: {source}")

    with tarfile.open(target, "w:gz") as tar:
        tar.add(str(source), arcname=source.name or "root")
    size = Path(target).stat().st_size
    logger.debug(f"Packed {source} -> {target} ({size} bytes)")
    return size


def pack_files(entries: Iterable[Path], target: Path) -> None:
    """
    Pack files as top-level members of a new gzip tarball.

    The tarball is written to a hidden temporary name next to ``target`` and
    renamed into place, so ``target`` either does not change or is complete.
    """
    target = Path(target)
    partial = target.with_name(f".{target.name}.partial")
    try:
        with tarfile.open(partial, "w:gz") as tar:
            for entry in entries:
                tar.add(str(entry), arcname=Path(entry).name)
        os.replace(partial, target)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise


def _safe_name(name: str) -> bool:
    path = PurePosixPath(name)
    return not path.is_absolute() and ".." not in path.parts


def _stripped_members(tar: tarfile.TarFile, components: int) -> Iterator[tarfile.TarInfo]:
    for member in tar.getmembers():
        if not _safe_name(member.name):
            logger.warning(f"Skipping unsafe archive member: {member.name}")
            continue
        parts = PurePosixPath(member.name).parts[components:]
        if not parts:
            continue
        if member.islnk():
            link_parts = PurePosixPath(member.linkname).parts[components:]
            if not link_parts:
                continue
            member.linkname = str(PurePosixPath(*link_parts))
        member.name = str(PurePosixPath(*parts))
        yield member


def extract_archive(archive: Path, destination: Path, strip_components: int = 0) -> None:
    """
    Extract a gzip tarball, optionally dropping leading path components.

    Members with absolute paths or ``..`` are skipped. A gzip stream that is
    corrupt in the middle surfaces as ``tarfile.ReadError``.

    Raises:
        OSError / tarfile.TarError: If the tarball cannot be read
    """
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:*") as tar:
            members = list(_stripped_members(tar, strip_components))
            if _HAS_FILTERS:
                tar.extractall(str(destination), members=members, filter="tar")
            else:
                tar.extractall(str(destination), members=members)
    except (zlib.error, EOFError) as e:
        raise tarfile.ReadError(f"corrupt archive {archive}: {e}") from e


def unpack_stripped(payload: Path, destination: Path) -> None:
    """Unpack a payload tarball into ``destination`` without its top directory."""
    extract_archive(payload, destination, strip_components=1)

