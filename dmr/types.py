################################################################################
# DMR
#
# @file:        types.py
# @module:      dmr.types
# @description: Manifest models (pydantic) and backup/restore result records.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - ContainerDescriptor / MountRecord / ProjectManifest are serialized to
#   manifest.json inside every archive and validated again on restore
# - Issue, BackupResult, RestoreResult and BatchReport are in-memory only
################################################################################

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .helpers.constants import MANIFEST_FORMAT_VERSION, VERSION

SAFE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


# ---- Manifest models ----

class VolumeMount(BaseModel):
    """Runtime-managed named volume."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["volume"] = "volume"
    name: str
    destination: str = ""

    @property
    def identifier(self) -> str:
        return self.name


class BindMount(BaseModel):
    """Host directory mounted into the container."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["bind"] = "bind"
    host_path: str
    destination: str = ""

    @property
    def identifier(self) -> str:
        return self.host_path


MountRecord = Annotated[Union[VolumeMount, BindMount], Field(discriminator="kind")]


class ContainerDescriptor(BaseModel):
    """Everything recorded about one container at capture time."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    image: str = ""
    restart_policy: str = ""
    launch_command: Optional[str] = Field(
        default=None,
        description="Reconstructed 'docker run' command (standalone containers only)",
    )
    compose_working_dir: Optional[str] = Field(
        default=None,
        description="Compose project directory (compose members only)",
    )
    mounts: List[MountRecord] = Field(default_factory=list)
    networks: List[str] = Field(default_factory=list)
    compose_project: Optional[str] = None

    @model_validator(mode="after")
    def check_launch_mode(self) -> "ContainerDescriptor":
        """A container is recreated either by command or by compose, never both."""
        if self.launch_command and self.compose_working_dir:
            raise ValueError("launch_command and compose_working_dir are mutually exclusive")
        return self

    @property
    def volumes(self) -> List[VolumeMount]:
        return [m for m in self.mounts if isinstance(m, VolumeMount)]

    @property
    def bind_mounts(self) -> List[BindMount]:
        return [m for m in self.mounts if isinstance(m, BindMount)]


class ProjectManifest(BaseModel):
    """Metadata record embedded in every archive."""

    format_version: int = MANIFEST_FORMAT_VERSION
    tool_version: str = VERSION
    project_name: str
    backup_timestamp: str
    is_compose_project: bool = False
    compose_source_path: Optional[str] = None
    compose_file: Optional[str] = Field(
        default=None,
        description="Archive member name of the packed compose file, if any",
    )
    containers: List[ContainerDescriptor] = Field(..., min_length=1)

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, v: str) -> str:
        if not SAFE_NAME_RE.match(v or ""):
            raise ValueError(f"Project name must match [A-Za-z0-9._-]+, got {v!r}")
        return v

    def unique_volumes(self) -> List[str]:
        """Volume names across all containers, first occurrence order."""
        seen: dict[str, None] = {}
        for container in self.containers:
            for mount in container.volumes:
                seen.setdefault(mount.name, None)
        return list(seen)

    def unique_bind_paths(self) -> List[str]:
        """Bind host paths across all containers, first occurrence order."""
        seen: dict[str, None] = {}
        for container in self.containers:
            for mount in container.bind_mounts:
                seen.setdefault(mount.host_path, None)
        return list(seen)


# ---- Journal ----

class JournalKind(str, Enum):
    COMPOSE = "compose"
    STANDALONE = "standalone"


@dataclass(frozen=True)
class CommandJournalEntry:
    sequence: int
    project_name: str
    kind: JournalKind
    command: str

    def to_line(self) -> str:
        return f"{self.sequence:02d} {self.project_name} {self.kind.value} {self.command}"


# ---- Results ----

class IssueKind(str, Enum):
    CAPTURE = "capture"
    RECONSTRUCTION = "reconstruction"
    DECLINED = "declined"


@dataclass
class Issue:
    kind: IssueKind
    message: str
    subject: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"[{self.subject}] " if self.subject else ""
        return f"{prefix}{self.message}"


@dataclass
class ResolvedProject:
    """Output of the project resolver."""

    name: str
    is_compose: bool
    container_ids: List[str]
    compose_label: Optional[str] = None
    compose_source_path: Optional[str] = None


@dataclass
class BackupResult:
    identifier: str
    project_name: str
    archive_path: Path
    is_compose_project: bool = False
    container_ids: List[str] = field(default_factory=list)
    container_names: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    journal_entry: Optional[CommandJournalEntry] = None

    @property
    def success(self) -> bool:
        return not self.issues

    @property
    def status_text(self) -> str:
        return "successful" if self.success else "partially successful"


class RestoreState(str, Enum):
    EXTRACTING = "extracting"
    MANIFEST_LOADED = "manifest_loaded"
    MOUNTS_RESTORING = "mounts_restoring"
    PROJECT_RECONSTRUCTING = "project_reconstructing"
    DONE = "done"
    PARTIALLY_FAILED = "partially_failed"


@dataclass
class RestoreResult:
    archive_path: Path
    state: RestoreState = RestoreState.EXTRACTING
    project_name: Optional[str] = None
    issues: List[Issue] = field(default_factory=list)
    restored_volumes: List[str] = field(default_factory=list)
    restored_bind_paths: List[str] = field(default_factory=list)
    started_containers: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == RestoreState.DONE


@dataclass
class BatchItem:
    target: str
    ok: bool
    detail: str
    partial: bool = False


@dataclass
class BatchReport:
    """Per-item outcome of a sequential multi-project run."""

    items: List[BatchItem] = field(default_factory=list)

    def add(self, target: str, ok: bool, detail: str, partial: bool = False) -> None:
        self.items.append(BatchItem(target=target, ok=ok, detail=detail, partial=partial))

    @property
    def failed(self) -> List[BatchItem]:
        return [i for i in self.items if not i.ok]

    @property
    def partial(self) -> List[BatchItem]:
        return [i for i in self.items if i.ok and i.partial]

    @property
    def all_ok(self) -> bool:
        return not self.failed and not self.partial
