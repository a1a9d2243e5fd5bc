################################################################################
# DMR
#
# @file:        restore_manager.py
# @module:      dmr.cores.restore_manager
# @description: Recreate volumes, bind mounts and containers from an archive.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - States: EXTRACTING → MANIFEST_LOADED → MOUNTS_RESTORING →
#   PROJECT_RECONSTRUCTING → DONE | PARTIALLY_FAILED
# - Compose services are never started; the operator gets the command
# - Every destructive step (run, replace) needs a confirmation
# - The manifest is trusted as-is; current compose membership is not compared
################################################################################

"""
Restore management module for DMR.

Restores one archive at a time. Only a broken archive aborts a restore;
every other problem is recorded on the :class:`~dmr.types.RestoreResult`
and the restore continues with the next item.
"""

from __future__ import annotations

import json
import shlex
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

from ..exceptions import (
    ConfirmationDeclined,
    DmrError,
    DmrWarning,
    ExtractionError,
    InvalidArchiveError,
    ReconstructionWarning,
)
from ..helpers.archive import extract_archive, unpack_stripped
from ..helpers.config import Config
from ..helpers.constants import MANIFEST_FILENAME
from ..helpers.docker_run_builder import ensure_restart_flag
from ..helpers.logging import get_logger
from ..helpers.naming import bind_payload_name, volume_payload_name
from ..helpers.prompts import Prompter, StaticPrompter
from ..helpers.ui_utils import SubprocessError
from ..types import (
    BatchReport,
    ContainerDescriptor,
    Issue,
    IssueKind,
    ProjectManifest,
    RestoreResult,
    RestoreState,
)
from .docker_runtime import DockerRuntime

logger = get_logger(__name__)

VERIFY_NOTICE = (
    "Verify the restored containers, volumes and bind mounts manually "
    "(docker ps -a, application logs, file permissions)."
)


class RestoreManager:
    """Restores projects from DMR archives."""

    def __init__(
        self,
        config: Config,
        runtime: Optional[DockerRuntime] = None,
        prompter: Optional[Prompter] = None,
    ):
        self.config = config
        self.runtime = runtime or DockerRuntime(config.docker_binary)
        self.prompter = prompter or StaticPrompter()

    # --------------- Public API ---------------

    def restore_archive(self, archive_path: Path, compose_dir: Optional[str] = None) -> RestoreResult:
        """
        Restore one archive.

        Args:
            archive_path: Archive to restore
            compose_dir: Target directory for the compose file; asked for
                interactively when None

        Returns:
            RestoreResult in state DONE or PARTIALLY_FAILED

        Raises:
            ExtractionError: Archive cannot be unpacked
            InvalidArchiveError: Manifest missing, unreadable or empty
        """
        archive_path = Path(archive_path)
        result = RestoreResult(archive_path=archive_path)
        logger.info(f"Starting restore of {archive_path}", extra={"archive": str(archive_path)})

        work_dir = Path(tempfile.mkdtemp(prefix="dmr-restore-"))
        try:
            try:
                extract_archive(archive_path, work_dir)
            except (OSError, tarfile.TarError, EOFError) as e:
                raise ExtractionError(archive_path, str(e)) from e

            manifest = self.load_manifest(work_dir, archive_path)
            result.state = RestoreState.MANIFEST_LOADED
            result.project_name = manifest.project_name

            result.state = RestoreState.MOUNTS_RESTORING
            for volume in manifest.unique_volumes():
                try:
                    self._restore_volume(volume, work_dir)
                    result.restored_volumes.append(volume)
                except DmrWarning as w:
                    self._record(result, w)

            for host_path in manifest.unique_bind_paths():
                try:
                    self._restore_bind(host_path, work_dir)
                    result.restored_bind_paths.append(host_path)
                except DmrWarning as w:
                    self._record(result, w)

            result.state = RestoreState.PROJECT_RECONSTRUCTING
            if manifest.is_compose_project:
                try:
                    self._restore_compose(manifest, work_dir, result, compose_dir)
                except DmrWarning as w:
                    self._record(result, w)
            else:
                for descriptor in manifest.containers:
                    try:
                        self._recreate_container(descriptor, result)
                    except DmrWarning as w:
                        self._record(result, w)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

        result.state = RestoreState.PARTIALLY_FAILED if result.issues else RestoreState.DONE
        result.next_steps.append(VERIFY_NOTICE)

        log = logger.info if result.success else logger.warning
        log(
            f"Restore of {result.project_name} finished: {result.state.value}",
            extra={"project": result.project_name, "issues": len(result.issues)},
        )
        return result

    def restore_many(
        self, archives: Iterable[Path], compose_dir: Optional[str] = None
    ) -> Tuple[BatchReport, List[RestoreResult]]:
        """Restore archives in order; a failing archive never stops the batch."""
        report = BatchReport()
        results: List[RestoreResult] = []
        for archive in archives:
            try:
                result = self.restore_archive(Path(archive), compose_dir=compose_dir)
            except DmrError as e:
                logger.error(str(e))
                report.add(str(archive), ok=False, detail=str(e))
                continue
            results.append(result)
            report.add(
                str(archive),
                ok=True,
                detail=result.state.value,
                partial=not result.success,
            )
        return report, results

    @staticmethod
    def load_manifest(work_dir: Path, archive_path: Path) -> ProjectManifest:
        """
        Read and validate the manifest of an extracted archive.

        Raises:
            InvalidArchiveError: Missing, unparsable or without containers
        """
        manifest_path = work_dir / MANIFEST_FILENAME
        if not manifest_path.is_file():
            raise InvalidArchiveError(archive_path, f"{MANIFEST_FILENAME} missing")
        try:
            raw = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidArchiveError(archive_path, f"unreadable manifest: {e}") from e
        if not isinstance(raw, dict) or not raw.get("containers"):
            raise InvalidArchiveError(archive_path, "manifest lists no containers")
        try:
            return ProjectManifest.model_validate(raw)
        except ValidationError as e:
            raise InvalidArchiveError(archive_path, f"invalid manifest: {e}") from e

    # --------------- Mounts ---------------

    def _restore_volume(self, name: str, work_dir: Path) -> None:
        payload = work_dir / volume_payload_name(name)
        if not payload.is_file():
            raise ReconstructionWarning("No data for volume in archive", subject=name)

        try:
            info = self.runtime.inspect_volume(name)
            if info is None:
                logger.info(f"Creating volume {name}", extra={"volume": name})
                self.runtime.create_volume(name)
                info = self.runtime.inspect_volume(name)
        except SubprocessError as e:
            raise ReconstructionWarning(f"Cannot create volume: {e}", subject=name) from e

        mountpoint = (info or {}).get("Mountpoint") or ""
        # Rootless or remote daemons report paths this host cannot see
        if not mountpoint or not Path(mountpoint).is_dir():
            raise ReconstructionWarning(f"Volume mountpoint not accessible: {mountpoint or '-'}", subject=name)

        try:
            unpack_stripped(payload, Path(mountpoint))
        except (OSError, tarfile.TarError) as e:
            raise ReconstructionWarning(f"Failed to restore volume data: {e}", subject=name) from e
        logger.info(f"Restored volume {name}", extra={"volume": name})

    def _restore_bind(self, host_path: str, work_dir: Path) -> None:
        payload = work_dir / bind_payload_name(host_path)
        if not payload.is_file():
            raise ReconstructionWarning("No data for bind mount in archive", subject=host_path)

        try:
            target = Path(host_path)
            target.mkdir(parents=True, exist_ok=True)
            unpack_stripped(payload, target)
        except (OSError, tarfile.TarError) as e:
            raise ReconstructionWarning(f"Failed to restore bind mount: {e}", subject=host_path) from e
        logger.info(f"Restored bind mount {host_path}", extra={"path": host_path})

    # --------------- Project ---------------

    def _restore_compose(
        self,
        manifest: ProjectManifest,
        work_dir: Path,
        result: RestoreResult,
        compose_dir: Optional[str],
    ) -> None:
        if not manifest.compose_file or not (work_dir / manifest.compose_file).is_file():
            raise ReconstructionWarning("Archive contains no compose file", subject=manifest.project_name)

        target_dir = compose_dir
        if not target_dir:
            suggested = self.config.compose_target_dir or manifest.compose_source_path or str(Path.cwd())
            target_dir = self.prompter.ask_compose_target(manifest.project_name, suggested)
        if not target_dir:
            raise ConfirmationDeclined("Compose file not restored", subject=manifest.project_name)

        try:
            target = Path(target_dir).expanduser()
            target.mkdir(parents=True, exist_ok=True)
            shutil.copy2(work_dir / manifest.compose_file, target / manifest.compose_file)
        except OSError as e:
            raise ReconstructionWarning(f"Cannot write compose file: {e}", subject=target_dir) from e

        logger.info(
            f"Compose file restored to {target / manifest.compose_file}",
            extra={"project": manifest.project_name},
        )
        result.next_steps.append(
            f"Start the project: cd {shlex.quote(str(target))} && {self.config.compose_up_command}"
        )

    def _recreate_container(self, descriptor: ContainerDescriptor, result: RestoreResult) -> None:
        label = descriptor.name or descriptor.id
        if not descriptor.launch_command:
            raise ReconstructionWarning("No run command recorded, recreate it manually", subject=label)

        command = ensure_restart_flag(descriptor.launch_command, descriptor.restart_policy)
        logger.info(f"Run command for {label}: {command}", extra={"container": label})

        if not self.prompter.confirm_execute(label, command):
            result.next_steps.append(f"Recreate {label} manually: {command}")
            raise ConfirmationDeclined("Container not recreated", subject=label)

        if descriptor.name:
            try:
                existing = self.runtime.find_container_by_name(descriptor.name)
            except SubprocessError as e:
                raise ReconstructionWarning(f"Cannot check for existing container: {e}", subject=label) from e
            if existing:
                if not self.prompter.confirm_replace(descriptor.name):
                    raise ConfirmationDeclined("Existing container kept, new one not started", subject=label)
                try:
                    self.runtime.stop_container(existing)
                    self.runtime.remove_container(existing)
                except SubprocessError as e:
                    raise ReconstructionWarning(f"Cannot remove existing container: {e}", subject=label) from e
                logger.info(f"Removed existing container {descriptor.name}", extra={"container": label})

        try:
            self.runtime.run_command_line(command)
        except (SubprocessError, ValueError) as e:
            raise ReconstructionWarning(f"Container start failed: {e}", subject=label) from e
        result.started_containers.append(label)
        logger.info(f"Recreated container {label}", extra={"container": label})

    # --------------- Helpers ---------------

    @staticmethod
    def _record(result: RestoreResult, warning: DmrWarning) -> None:
        kind = IssueKind.DECLINED if isinstance(warning, ConfirmationDeclined) else IssueKind.RECONSTRUCTION
        issue = Issue(kind=kind, message=str(warning), subject=warning.subject)
        result.issues.append(issue)
        logger.warning(str(issue), extra={"project": result.project_name})
