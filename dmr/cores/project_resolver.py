"""
Project resolution for DMR.

Turns an operator-supplied identifier (container name, container ID or
image) into the set of containers that make up one backup project.
"""

from __future__ import annotations

import os
from typing import List, Optional

from ..exceptions import NotFoundError
from ..helpers.constants import (
    DOCKER_COMPOSE_CONFIG_LABEL,
    DOCKER_COMPOSE_PROJECT_LABEL,
    DOCKER_COMPOSE_WORKDIR_LABEL,
)
from ..helpers.logging import get_logger
from ..helpers.naming import sanitize_project_name
from ..helpers.ui_utils import SubprocessError
from ..types import ResolvedProject
from .docker_runtime import ContainerSummary, DockerRuntime

logger = get_logger(__name__)

SHORT_ID_LENGTH = 12


def normalize_image(image: str) -> str:
    """``nginx`` → ``nginx:latest``; tagged and digest references stay as they are."""
    image = (image or "").strip()
    if not image or "@" in image:
        return image
    last = image.rsplit("/", 1)[-1]
    return image if ":" in last else f"{image}:latest"


class ProjectResolver:
    """
    Resolves identifiers to projects.

    Matching order, first non-empty result wins:
    exact name → full or 12-character short ID → image.
    """

    def __init__(self, runtime: DockerRuntime):
        self.runtime = runtime

    def match(self, identifier: str, containers: List[ContainerSummary]) -> List[ContainerSummary]:
        by_name = [c for c in containers if c.name == identifier]
        if by_name:
            return by_name

        by_id = [
            c for c in containers
            if c.id == identifier
            or (len(identifier) == SHORT_ID_LENGTH and c.id.startswith(identifier))
        ]
        if by_id:
            return by_id

        wanted = normalize_image(identifier)
        return [c for c in containers if normalize_image(c.image) == wanted]

    def resolve(self, identifier: str) -> ResolvedProject:
        """
        Resolve an identifier to a project.

        Args:
            identifier: Container name, container ID or image reference

        Returns:
            ResolvedProject with the canonical (sanitized) name

        Raises:
            NotFoundError: If nothing matches
        """
        identifier = (identifier or "").strip()
        matches = self.match(identifier, self.runtime.list_containers()) if identifier else []
        if not matches:
            raise NotFoundError(identifier)

        container_ids = [c.id for c in matches]
        compose_label, config_files, working_dir = self._find_compose_labels(container_ids)

        if compose_label:
            extra = self.runtime.find_ids_by_label(DOCKER_COMPOSE_PROJECT_LABEL, compose_label)
            for cid in extra:
                if cid not in container_ids:
                    container_ids.append(cid)

            source_path = None
            if config_files:
                source_path = os.path.dirname(config_files.split(",")[0].strip()) or None
            if not source_path:
                source_path = working_dir or None

            resolved = ResolvedProject(
                name=sanitize_project_name(compose_label),
                is_compose=True,
                container_ids=container_ids,
                compose_label=compose_label,
                compose_source_path=source_path,
            )
        else:
            resolved = ResolvedProject(
                name=sanitize_project_name(matches[0].name),
                is_compose=False,
                container_ids=container_ids,
            )

        logger.info(
            f"Resolved '{identifier}' to project {resolved.name} "
            f"({len(resolved.container_ids)} container(s), "
            f"{'compose' if resolved.is_compose else 'standalone'})",
            extra={"project": resolved.name},
        )
        return resolved

    def _find_compose_labels(self, container_ids: List[str]):
        """(project, config_files, working_dir) from the first container carrying a compose label."""
        for cid in container_ids:
            try:
                data = self.runtime.inspect_container(cid)
            except (SubprocessError, ValueError) as e:
                logger.warning(f"Cannot read labels of {cid}: {e}", extra={"container": cid})
                continue
            labels = (data.get("Config") or {}).get("Labels") or {}
            project: Optional[str] = labels.get(DOCKER_COMPOSE_PROJECT_LABEL)
            if project:
                return (
                    project,
                    labels.get(DOCKER_COMPOSE_CONFIG_LABEL, ""),
                    labels.get(DOCKER_COMPOSE_WORKDIR_LABEL, ""),
                )
        return None, "", ""

    def all_identifiers(self) -> List[str]:
        """Names of every container, for a full batch run."""
        return [c.name for c in self.runtime.list_containers() if c.name]
