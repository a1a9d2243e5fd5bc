"""
Naming rules for projects, payload files and archives.

Host paths contain separators, so bind-mount payload names use URL-safe
base64 without padding: the alphabet is ``[A-Za-z0-9_-]``, the mapping is
injective and :func:`decode_host_path` inverts it exactly.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime
from typing import Optional

from .constants import (
    BIND_PAYLOAD_PREFIX,
    FALLBACK_PROJECT_NAME,
    PAYLOAD_EXTENSION,
    TIMESTAMP_FORMAT,
    VOLUME_PAYLOAD_PREFIX,
)

_UNSAFE_RUN = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_project_name(raw: Optional[str]) -> str:
    """
    Reduce a name to ``[A-Za-z0-9._-]``.

    Runs of other characters collapse to one ``_``; leading and trailing
    ``_`` are trimmed. An empty result falls back to ``unnamed_project``.
    """
    cleaned = _UNSAFE_RUN.sub("_", (raw or "").strip()).strip("_")
    return cleaned or FALLBACK_PROJECT_NAME


def encode_host_path(host_path: str) -> str:
    encoded = base64.urlsafe_b64encode(host_path.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")


def decode_host_path(encoded: str) -> str:
    """
    Inverse of :func:`encode_host_path`.

    Raises:
        ValueError: If ``encoded`` is not a valid encoding
    """
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValueError(f"Not an encoded host path: {encoded!r}") from e


def volume_payload_name(volume_name: str) -> str:
    return f"{VOLUME_PAYLOAD_PREFIX}{volume_name}{PAYLOAD_EXTENSION}"


def bind_payload_name(host_path: str) -> str:
    return f"{BIND_PAYLOAD_PREFIX}{encode_host_path(host_path)}{PAYLOAD_EXTENSION}"


def host_path_from_payload_name(filename: str) -> Optional[str]:
    """Recover the host path from a bind payload file name, or None."""
    if not (filename.startswith(BIND_PAYLOAD_PREFIX) and filename.endswith(PAYLOAD_EXTENSION)):
        return None
    encoded = filename[len(BIND_PAYLOAD_PREFIX):-len(PAYLOAD_EXTENSION)]
    try:
        return decode_host_path(encoded)
    except ValueError:
        return None


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def archive_filename(
    prefix: str,
    timestamp: str,
    project_name: str,
    extension: str,
    suffix: Optional[int] = None,
) -> str:
    """``<prefix>_<timestamp>_<project>[_<n>]<ext>``"""
    name = f"{prefix}_{timestamp}_{project_name}"
    if suffix is not None:
        name = f"{name}_{suffix}"
    return f"{name}{extension}"
