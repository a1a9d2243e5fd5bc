"""
Exception hierarchy for DMR.

Fatal errors (``DmrError`` subclasses) abort the single backup or restore
operation that raised them. Warnings (``DmrWarning`` subclasses) are raised
by per-item helpers, caught by the surrounding loop, recorded as an
:class:`~dmr.types.Issue` and the loop continues.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class DmrError(Exception):
    """Base class for fatal DMR errors."""


class NotFoundError(DmrError):
    """No container matches the given identifier."""

    def __init__(self, identifier: str):
        super().__init__(f"No container found matching name, ID or image '{identifier}'")
        self.identifier = identifier


class ExtractionError(DmrError):
    """The archive could not be read or unpacked."""

    def __init__(self, archive: Path, reason: str):
        super().__init__(f"Cannot extract {archive}: {reason}")
        self.archive = archive


class InvalidArchiveError(DmrError):
    """The archive has no usable manifest."""

    def __init__(self, archive: Path, reason: str):
        super().__init__(f"Invalid backup archive {archive}: {reason}")
        self.archive = archive


class PackError(DmrError):
    """The final archive could not be written."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed to create archive {path}: {reason}")
        self.path = path


class DmrWarning(Exception):
    """Base class for recoverable, per-item problems."""

    def __init__(self, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class CaptureWarning(DmrWarning):
    """A mount, volume or piece of metadata could not be captured."""


class ReconstructionWarning(DmrWarning):
    """A volume, bind mount, compose file or container could not be restored."""


class ConfirmationDeclined(DmrWarning):
    """The operator opted out of a destructive step."""
