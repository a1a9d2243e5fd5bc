################################################################################
# DMR
#
# @file:        docker_runtime.py
# @module:      dmr.cores.docker_runtime
# @description: Thin wrapper around the docker CLI used by backup and restore.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - Every call goes through run_command (no shell, captured output)
# - Calls block without timeout; a hanging daemon hangs the operation
################################################################################

"""
Docker runtime access for DMR.

All container runtime interaction is funnelled through :class:`DockerRuntime`
so the managers can be exercised against a fake in tests.
"""

from __future__ import annotations

import json
import shlex
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..helpers.constants import DOCKER_COMPOSE_PROJECT_LABEL
from ..helpers.logging import get_logger
from ..helpers.ui_utils import SubprocessError, run_command

logger = get_logger(__name__)

_PS_FORMAT = "\t".join(
    [
        "{{.ID}}",
        "{{.Names}}",
        "{{.Image}}",
        "{{.State}}",
        '{{.Label "%s"}}' % DOCKER_COMPOSE_PROJECT_LABEL,
    ]
)


@dataclass
class ContainerSummary:
    """One row of ``docker ps -a``."""

    id: str
    name: str
    image: str
    state: str = ""
    compose_project: str = ""


class DockerRuntime:
    """docker CLI wrapper."""

    def __init__(self, binary: str = "docker"):
        self.binary = binary

    def _docker(self, args: List[str], description: str, check: bool = True) -> subprocess.CompletedProcess:
        return run_command([self.binary, *args], description, check=check)

    def is_available(self) -> bool:
        """True if the daemon answers ``docker info``."""
        try:
            result = self._docker(["info", "--format", "{{.ServerVersion}}"], "Checking Docker daemon", check=False)
        except SubprocessError:
            return False
        return result.returncode == 0

    def list_containers(self) -> List[ContainerSummary]:
        """All containers, running or not, with full IDs."""
        result = self._docker(
            ["ps", "-a", "--no-trunc", "--format", _PS_FORMAT],
            "Listing containers",
        )
        containers = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            fields = line.split("\t")
            fields += [""] * (5 - len(fields))
            containers.append(
                ContainerSummary(
                    id=fields[0],
                    # docker ps joins multiple names with ","
                    name=fields[1].split(",")[0],
                    image=fields[2],
                    state=fields[3],
                    compose_project=fields[4],
                )
            )
        return containers

    def find_ids_by_label(self, key: str, value: str) -> List[str]:
        """Full IDs of all containers carrying label ``key=value``."""
        result = self._docker(
            ["ps", "-a", "--no-trunc", "--filter", f"label={key}={value}", "--format", "{{.ID}}"],
            f"Finding containers with label {key}={value}",
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def inspect_container(self, container_id: str) -> Dict[str, Any]:
        """
        ``docker inspect`` of one container.

        Raises:
            SubprocessError: If docker fails
            ValueError: If the output is not the expected JSON
        """
        result = self._docker(
            ["inspect", "--type", "container", container_id],
            f"Inspecting container {container_id}",
        )
        data = json.loads(result.stdout)
        if not isinstance(data, list) or not data:
            raise ValueError(f"Unexpected inspect output for {container_id}")
        return data[0]

    def inspect_volume(self, name: str) -> Optional[Dict[str, Any]]:
        """``docker volume inspect`` data, or None if the volume does not exist."""
        result = self._docker(["volume", "inspect", name], f"Inspecting volume {name}", check=False)
        if result.returncode != 0:
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.warning(f"Unreadable volume inspect output for {name}", extra={"volume": name})
            return None
        return data[0] if data else None

    def create_volume(self, name: str) -> None:
        self._docker(["volume", "create", name], f"Creating volume {name}")

    def find_container_by_name(self, name: str) -> Optional[str]:
        """ID of the container with exactly this name, if any."""
        for container in self.list_containers():
            if container.name == name:
                return container.id
        return None

    def stop_container(self, container_id: str) -> None:
        self._docker(["stop", container_id], f"Stopping container {container_id}")

    def remove_container(self, container_id: str) -> None:
        self._docker(["rm", container_id], f"Removing container {container_id}")

    def run_command_line(self, command: str) -> str:
        """
        Execute a reconstructed ``docker run`` line without a shell.

        Returns:
            stdout of the command (the new container ID for ``docker run -d``)
        """
        args = shlex.split(command)
        if args and args[0] == "docker":
            args[0] = self.binary
        result = run_command(args, "Recreating container")
        return result.stdout.strip()
