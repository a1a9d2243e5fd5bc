################################################################################
# DMR
#
# @file:        descriptor_builder.py
# @module:      dmr.cores.descriptor_builder
# @description: Capture per-container metadata into ContainerDescriptor records.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - A failed inspection never aborts the backup; the descriptor is partial
#   and a capture issue is recorded on the CaptureContext
# - Compose members get no launch command, only their compose directory
################################################################################

"""
Container descriptor capture.

:class:`CaptureContext` is the explicit working area of one backup run: a
temporary directory for payloads plus the list of issues collected while
capturing. It replaces any global temp state and always cleans up.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import CaptureWarning, DmrWarning
from ..helpers.constants import (
    DOCKER_COMPOSE_CONFIG_LABEL,
    DOCKER_COMPOSE_PROJECT_LABEL,
    DOCKER_COMPOSE_WORKDIR_LABEL,
)
from ..helpers.docker_run_builder import DockerRunBuilder
from ..helpers.logging import get_logger
from ..helpers.ui_utils import SubprocessError
from ..types import BindMount, ContainerDescriptor, Issue, IssueKind, MountRecord, VolumeMount
from .docker_runtime import DockerRuntime

logger = get_logger(__name__)


class CaptureContext:
    """
    Working area for one backup.

    Use as a context manager; the temporary directory is removed on exit,
    whether the backup succeeded or not.
    """

    def __init__(self, project_name: str):
        self.project_name = project_name
        self.work_dir: Optional[Path] = None
        self.issues: List[Issue] = []

    def __enter__(self) -> "CaptureContext":
        self.work_dir = Path(tempfile.mkdtemp(prefix=f"dmr-capture-{self.project_name}-"))
        logger.debug(f"Capture directory: {self.work_dir}", extra={"project": self.project_name})
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.work_dir is not None:
            shutil.rmtree(self.work_dir, ignore_errors=True)
            self.work_dir = None

    def record(self, warning: DmrWarning) -> Issue:
        """Log a capture problem and keep it for the result."""
        issue = Issue(kind=IssueKind.CAPTURE, message=str(warning), subject=warning.subject)
        self.issues.append(issue)
        logger.warning(str(issue), extra={"project": self.project_name})
        return issue


def classify_mounts(mounts: Optional[Iterable[Dict[str, Any]]]) -> List[MountRecord]:
    """
    Turn ``Mounts`` entries of ``docker inspect`` into mount records.

    Only named volumes and bind mounts are kept; tmpfs, npipe and anything
    else is ignored. Volumes without a name and binds without a source are
    skipped as well.
    """
    records: List[MountRecord] = []
    for mount in mounts or []:
        kind = mount.get("Type")
        destination = mount.get("Destination") or ""
        if kind == "volume" and mount.get("Name"):
            records.append(VolumeMount(name=mount["Name"], destination=destination))
        elif kind == "bind" and mount.get("Source"):
            records.append(BindMount(host_path=mount["Source"], destination=destination))
        else:
            logger.debug(f"Ignoring {kind or 'unknown'} mount at {destination or '?'}")
    return records


class ContainerDescriptorBuilder:
    """Builds one :class:`ContainerDescriptor` per container."""

    def __init__(self, runtime: DockerRuntime):
        self.runtime = runtime

    def build(self, container_id: str, context: CaptureContext) -> ContainerDescriptor:
        """
        Capture everything needed to recreate a container.

        Args:
            container_id: Container to inspect
            context: Capture context collecting issues

        Returns:
            Complete or partial descriptor; never raises for runtime errors
        """
        try:
            data = self.runtime.inspect_container(container_id)
        except (SubprocessError, ValueError) as e:
            context.record(CaptureWarning(f"Cannot inspect container: {e}", subject=container_id))
            return ContainerDescriptor(id=container_id)

        builder = DockerRunBuilder(data)
        name = builder.get_container_name()
        labels = (data.get("Config") or {}).get("Labels") or {}
        compose_project = labels.get(DOCKER_COMPOSE_PROJECT_LABEL) or None

        launch_command = None
        compose_working_dir = None
        if compose_project:
            compose_working_dir = labels.get(DOCKER_COMPOSE_WORKDIR_LABEL) or None
            if not compose_working_dir:
                config_files = labels.get(DOCKER_COMPOSE_CONFIG_LABEL) or ""
                compose_working_dir = os.path.dirname(config_files.split(",")[0].strip()) or None
        else:
            try:
                launch_command = builder.build_command()
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                context.record(
                    CaptureWarning(f"Cannot reconstruct run command: {e}", subject=name or container_id)
                )

        try:
            mounts = classify_mounts(data.get("Mounts"))
        except (AttributeError, TypeError, ValueError) as e:
            context.record(CaptureWarning(f"Cannot read mounts: {e}", subject=name or container_id))
            mounts = []

        descriptor = ContainerDescriptor(
            id=data.get("Id") or container_id,
            name=name,
            image=builder.get_image(),
            restart_policy=builder.get_restart_policy(),
            launch_command=launch_command,
            compose_working_dir=compose_working_dir,
            mounts=mounts,
            networks=builder.get_networks(),
            compose_project=compose_project,
        )
        logger.debug(
            f"Captured {descriptor.name or descriptor.id}: "
            f"{len(descriptor.volumes)} volume(s), {len(descriptor.bind_mounts)} bind mount(s)",
            extra={"container": descriptor.name or descriptor.id},
        )
        return descriptor
