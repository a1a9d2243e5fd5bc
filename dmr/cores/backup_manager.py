################################################################################
# DMR
#
# @file:        backup_manager.py
# @module:      dmr.cores.backup_manager
# @description: Assemble project archives: payloads, manifest, naming, journal.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - Each unique volume / bind path is packed once per project
# - Archive name: <prefix>_<YYYYMMDD_HHMMSS>_<project>[_<n>]<ext>
# - The name is re-checked right before packing; concurrent sessions are
#   not locked against each other
# - The final archive is written under a temporary name and renamed
################################################################################

"""
Backup management module for DMR.

The :class:`BackupManager` turns a resolved project into one archive on
disk and records how to start the project again in the command journal.
"""

from __future__ import annotations

import shlex
import shutil
import tarfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..exceptions import CaptureWarning, DmrError, PackError
from ..helpers.archive import pack_directory, pack_files
from ..helpers.config import Config
from ..helpers.constants import COMPOSE_FILE_CANDIDATES, COMPOSE_FILENAME, MANIFEST_FILENAME
from ..helpers.docker_run_builder import ensure_restart_flag
from ..helpers.logging import get_logger
from ..helpers.naming import archive_filename, bind_payload_name, format_timestamp, volume_payload_name
from ..helpers.prompts import Prompter, StaticPrompter
from ..helpers.system_utils import SystemUtils
from ..helpers.ui_utils import SubprocessError
from ..types import (
    BackupResult,
    BatchReport,
    Issue,
    IssueKind,
    JournalKind,
    ProjectManifest,
    ResolvedProject,
)
from .command_journal import CommandJournal
from .descriptor_builder import CaptureContext, ContainerDescriptorBuilder
from .docker_runtime import DockerRuntime
from .project_resolver import ProjectResolver

logger = get_logger(__name__)


class BackupManager:
    """Creates self-describing project archives."""

    def __init__(
        self,
        config: Config,
        runtime: Optional[DockerRuntime] = None,
        prompter: Optional[Prompter] = None,
        clock: Optional[Callable[[], datetime]] = None,
        journal: Optional[CommandJournal] = None,
    ):
        self.config = config
        self.runtime = runtime or DockerRuntime(config.docker_binary)
        self.prompter = prompter or StaticPrompter()
        self.clock = clock or datetime.now
        self.resolver = ProjectResolver(self.runtime)
        self.builder = ContainerDescriptorBuilder(self.runtime)
        self.journal = journal or CommandJournal(config.journal_path)
        self.base_dir = config.backup_base_dir

    # --------------- Public API ---------------

    def backup_project(self, identifier: str) -> BackupResult:
        """
        Back up the project an identifier resolves to.

        Raises:
            NotFoundError: Identifier matches no container
            PackError: Final archive could not be written
        """
        return self.backup_resolved(identifier, self.resolver.resolve(identifier))

    def backup_resolved(self, identifier: str, resolved: ResolvedProject) -> BackupResult:
        """Back up an already resolved project."""
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PackError(self.base_dir, f"cannot create backup directory: {e}") from e
        self._check_free_space()

        timestamp = format_timestamp(self.clock())
        logger.info(
            f"Starting backup of {resolved.name} ({len(resolved.container_ids)} container(s))",
            extra={"project": resolved.name},
        )

        with CaptureContext(resolved.name) as ctx:
            work_dir = ctx.work_dir
            descriptors = [self.builder.build(cid, ctx) for cid in resolved.container_ids]
            manifest = ProjectManifest(
                project_name=resolved.name,
                backup_timestamp=timestamp,
                is_compose_project=resolved.is_compose,
                compose_source_path=resolved.compose_source_path,
                containers=descriptors,
            )

            payloads: List[Path] = []
            for volume in manifest.unique_volumes():
                try:
                    payloads.append(self._capture_volume(volume, work_dir))
                except CaptureWarning as w:
                    ctx.record(w)

            for host_path in manifest.unique_bind_paths():
                try:
                    payloads.append(self._capture_bind(host_path, work_dir))
                except CaptureWarning as w:
                    ctx.record(w)

            compose_file = None
            if resolved.is_compose:
                try:
                    payloads.append(self._capture_compose_file(resolved.compose_source_path, work_dir))
                    compose_file = COMPOSE_FILENAME
                except CaptureWarning as w:
                    ctx.record(w)

            archive_path, project_name, overwrite = self._choose_archive_path(resolved.name, timestamp)
            # Erneut prüfen: zwischen Auswahl und Packen kann eine Datei entstanden sein
            if not overwrite and archive_path.exists():
                logger.warning(
                    f"{archive_path.name} appeared during capture, choosing a new name",
                    extra={"project": resolved.name},
                )
                archive_path, project_name, overwrite = self._choose_archive_path(resolved.name, timestamp)

            manifest = manifest.model_copy(
                update={"project_name": project_name, "compose_file": compose_file}
            )
            manifest_path = work_dir / MANIFEST_FILENAME
            manifest_path.write_text(manifest.model_dump_json(indent=2), encoding="utf-8")

            try:
                pack_files([manifest_path, *payloads], archive_path)
            except (OSError, tarfile.TarError) as e:
                logger.error(f"Packing failed: {e}", extra={"archive": str(archive_path)})
                raise PackError(archive_path, str(e)) from e

            issues = list(ctx.issues)

        result = BackupResult(
            identifier=identifier,
            project_name=project_name,
            archive_path=archive_path,
            is_compose_project=manifest.is_compose_project,
            container_ids=[d.id for d in manifest.containers],
            container_names=[d.name for d in manifest.containers if d.name],
            issues=issues,
        )
        result.journal_entry = self._append_journal(manifest, result.issues)

        size = SystemUtils.format_bytes(archive_path.stat().st_size)
        log = logger.info if result.success else logger.warning
        log(
            f"Backup of {project_name} {result.status_text}: {archive_path} ({size})",
            extra={"project": project_name, "issues": len(result.issues)},
        )
        return result

    def backup_many(self, identifiers: Iterable[str]) -> Tuple[BatchReport, List[BackupResult]]:
        """
        Back up several projects one after another.

        A failing item never stops the batch. Identifiers whose containers
        were all captured earlier in the same batch (typically further
        members of a compose project) are skipped.
        """
        report = BatchReport()
        results: List[BackupResult] = []
        captured: Dict[str, str] = {}

        for identifier in identifiers:
            try:
                resolved = self.resolver.resolve(identifier)
            except (DmrError, SubprocessError) as e:
                logger.error(str(e))
                report.add(identifier, ok=False, detail=str(e))
                continue

            if resolved.container_ids and all(cid in captured for cid in resolved.container_ids):
                owner = captured[resolved.container_ids[0]]
                logger.info(f"Skipping {identifier}: already captured in {owner}")
                report.add(identifier, ok=True, detail=f"skipped, already captured in {owner}")
                continue

            try:
                result = self.backup_resolved(identifier, resolved)
            except (DmrError, SubprocessError) as e:
                logger.error(f"Backup of {identifier} failed: {e}")
                report.add(identifier, ok=False, detail=str(e))
                continue

            results.append(result)
            for cid in resolved.container_ids:
                captured[cid] = result.project_name
            report.add(
                identifier,
                ok=True,
                detail=str(result.archive_path),
                partial=not result.success,
            )
        return report, results

    def backup_all(self) -> Tuple[BatchReport, List[BackupResult]]:
        """Back up every container known to the runtime."""
        return self.backup_many(self.resolver.all_identifiers())

    # --------------- Naming ---------------

    def _choose_archive_path(self, project_name: str, timestamp: str) -> Tuple[Path, str, bool]:
        """
        Pick the archive path for a project.

        Returns:
            (path, manifest project name, overwrite flag)
        """
        prefix = self.config.file_prefix
        ext = self.config.file_extension
        candidate = self.base_dir / archive_filename(prefix, timestamp, project_name, ext)
        if not candidate.exists():
            return candidate, project_name, False

        if self.prompter.confirm_overwrite(candidate):
            logger.info(f"Overwriting existing archive {candidate}", extra={"project": project_name})
            return candidate, project_name, True

        n = 1
        while True:
            candidate = self.base_dir / archive_filename(prefix, timestamp, project_name, ext, suffix=n)
            if not candidate.exists():
                logger.info(f"Archive name taken, using {candidate.name}", extra={"project": project_name})
                return candidate, f"{project_name}_{n}", False
            n += 1

    # --------------- Payload capture ---------------

    def _capture_volume(self, name: str, work_dir: Path) -> Path:
        try:
            info = self.runtime.inspect_volume(name)
        except SubprocessError as e:
            raise CaptureWarning(f"Cannot inspect volume: {e}", subject=name) from e
        if not info:
            raise CaptureWarning("Volume not found, skipping its data", subject=name)

        mountpoint = info.get("Mountpoint") or ""
        if not mountpoint or not Path(mountpoint).is_dir():
            raise CaptureWarning(f"Volume mountpoint not accessible: {mountpoint or '-'}", subject=name)

        target = work_dir / volume_payload_name(name)
        try:
            pack_directory(Path(mountpoint), target)
        except (OSError, tarfile.TarError) as e:
            raise CaptureWarning(f"Failed to pack volume data: {e}", subject=name) from e
        logger.info(f"Captured volume {name}", extra={"volume": name})
        return target

    def _capture_bind(self, host_path: str, work_dir: Path) -> Path:
        source = Path(host_path)
        if not source.is_dir():
            raise CaptureWarning("Bind mount source is not a directory, skipping", subject=host_path)

        target = work_dir / bind_payload_name(host_path)
        try:
            pack_directory(source, target)
        except (OSError, tarfile.TarError) as e:
            raise CaptureWarning(f"Failed to pack bind mount: {e}", subject=host_path) from e
        logger.info(f"Captured bind mount {host_path}", extra={"path": host_path})
        return target

    def _capture_compose_file(self, source_dir: Optional[str], work_dir: Path) -> Path:
        if not source_dir:
            raise CaptureWarning("No compose directory recorded on the containers", subject="compose")

        for candidate in COMPOSE_FILE_CANDIDATES:
            path = Path(source_dir) / candidate
            if path.is_file():
                target = work_dir / COMPOSE_FILENAME
                try:
                    shutil.copy2(path, target)
                except OSError as e:
                    raise CaptureWarning(f"Cannot copy {path}: {e}", subject="compose") from e
                logger.info(f"Captured compose file {path}")
                return target

        raise CaptureWarning(f"No compose file found in {source_dir}", subject="compose")

    # --------------- Journal ---------------

    def journal_command(self, manifest: ProjectManifest) -> Optional[str]:
        """Command that starts the project again, or None if none is known."""
        if manifest.is_compose_project:
            directory = manifest.compose_source_path or next(
                (d.compose_working_dir for d in manifest.containers if d.compose_working_dir), None
            )
            if not directory:
                return None
            return f"cd {shlex.quote(directory)} && {self.config.compose_up_command}"

        commands = [
            ensure_restart_flag(d.launch_command, d.restart_policy)
            for d in manifest.containers
            if d.launch_command
        ]
        return " && ".join(commands) or None

    def _append_journal(self, manifest: ProjectManifest, issues: List[Issue]):
        command = self.journal_command(manifest)
        if not command:
            logger.warning(
                f"No start command known for {manifest.project_name}, journal not updated",
                extra={"project": manifest.project_name},
            )
            return None

        kind = JournalKind.COMPOSE if manifest.is_compose_project else JournalKind.STANDALONE
        try:
            return self.journal.append(manifest.project_name, kind, command)
        except OSError as e:
            issue = Issue(
                kind=IssueKind.CAPTURE,
                message=f"Cannot write command journal: {e}",
                subject=str(self.journal.path),
            )
            issues.append(issue)
            logger.warning(str(issue), extra={"project": manifest.project_name})
            return None

    # --------------- Checks ---------------

    def _check_free_space(self) -> None:
        free_gb = SystemUtils.get_available_disk_space(self.base_dir)
        required = self.config.min_free_space_gb
        if free_gb < required:
            logger.warning(
                f"Only {free_gb:.1f} GB free in {self.base_dir} (minimum {required:g} GB)",
                extra={"path": str(self.base_dir)},
            )
