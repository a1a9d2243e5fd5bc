"""
Archive store for DMR.

Lists and deletes archives in the backup root and reads the durable log.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Union

from ..helpers.config import Config
from ..helpers.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ArchiveInfo:
    path: Path
    size: int
    modified: datetime

    @property
    def name(self) -> str:
        return self.path.name


class ArchiveStore:
    """Archives named ``<prefix>_*<ext>`` inside the backup root."""

    def __init__(self, config: Config):
        self.config = config
        self.base_dir = config.backup_base_dir

    def list_archives(self) -> List[ArchiveInfo]:
        """All archives, sorted by file name (and therefore by timestamp)."""
        if not self.base_dir.is_dir():
            return []
        prefix = f"{self.config.file_prefix}_"
        ext = self.config.file_extension
        archives = []
        for path in sorted(self.base_dir.iterdir()):
            if path.is_file() and path.name.startswith(prefix) and path.name.endswith(ext):
                stat = path.stat()
                archives.append(
                    ArchiveInfo(path=path, size=stat.st_size, modified=datetime.fromtimestamp(stat.st_mtime))
                )
        return archives

    def resolve(self, name: Union[str, Path]) -> Path:
        """
        Map a file name or path to an archive path.

        Bare names are looked up in the backup root; paths are used as given.
        """
        path = Path(name).expanduser()
        if path.is_absolute() or path.exists() or len(path.parts) > 1:
            return path
        return self.base_dir / path

    def delete(self, name: Union[str, Path]) -> Path:
        """
        Delete one archive.

        Raises:
            FileNotFoundError: If the archive does not exist
        """
        path = self.resolve(name)
        if not path.is_file():
            raise FileNotFoundError(f"Archive not found: {path}")
        path.unlink()
        logger.info(f"Deleted archive {path}", extra={"archive": str(path)})
        return path

    def delete_all(self, include_journal: bool = True) -> int:
        """
        Delete every archive, and the command journal unless told otherwise.

        An archive that cannot be removed is logged and left in place.

        Returns:
            Number of archives deleted
        """
        count = 0
        for archive in self.list_archives():
            try:
                archive.path.unlink()
            except OSError as e:
                logger.error(f"Cannot delete {archive.path}: {e}", extra={"archive": str(archive.path)})
                continue
            count += 1
        logger.info(f"Deleted {count} archive(s) from {self.base_dir}")

        journal = self.config.journal_path
        if include_journal and journal.exists():
            try:
                journal.unlink()
                logger.info(f"Deleted command journal {journal}")
            except OSError as e:
                logger.error(f"Cannot delete command journal {journal}: {e}")
        return count

    def tail_log(self, lines: int = 50) -> List[str]:
        """Last ``lines`` lines of the durable log ([] if there is none)."""
        log_file = self.config.log_file_path
        if not log_file or not log_file.is_file():
            return []
        with open(log_file, "r", encoding="utf-8", errors="replace") as f:
            return [line.rstrip("\n") for line in deque(f, maxlen=max(lines, 0))]
