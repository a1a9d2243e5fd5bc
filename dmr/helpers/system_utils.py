"""
System utilities module for DMR.

Resource checks run before a backup and size formatting for the CLI.
"""

from pathlib import Path
from typing import Union

import psutil

from .logging import get_logger

logger = get_logger(__name__)


class SystemUtils:
    """Static helpers for system resources."""

    @staticmethod
    def get_available_disk_space(path: Union[str, Path] = '/') -> float:
        """
        Get available disk space in gigabytes.

        Walks up to the nearest existing parent, so the backup root does not
        need to exist yet.

        Returns:
            Free space in GB (0.0 if it cannot be determined)
        """
        probe = Path(path)
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent
        try:
            usage = psutil.disk_usage(str(probe))
            return usage.free / (1024 ** 3)
        except OSError as e:
            logger.error(f"Failed to get disk space for {probe}: {e}")
            return 0.0

    @staticmethod
    def format_bytes(size_bytes: float) -> str:
        """
        Format bytes into human-readable string.

        Returns:
            Formatted string (e.g., "1.50 GB")
        """
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if size_bytes < 1024.0:
                return f"{size_bytes:.2f} {unit}"
            size_bytes /= 1024.0
        return f"{size_bytes:.2f} PB"
