"""Backup commands."""

from typing import List, Optional

import typer

from ..cores.backup_manager import BackupManager
from ..helpers import ui_utils
from ..types import BackupResult
from .common import ensure_config, ensure_docker, make_prompter, print_report


def _print_result(result: BackupResult) -> None:
    if result.success:
        ui_utils.print_success(f"Backup of {result.project_name} successful: {result.archive_path}")
    else:
        ui_utils.print_warning(f"Backup of {result.project_name} partially successful: {result.archive_path}")
        for issue in result.issues:
            ui_utils.print_warning(f"  {issue}")

    kind = "compose project" if result.is_compose_project else "standalone"
    ui_utils.print_info(f"{kind}, containers: {', '.join(result.container_names) or '-'}")
    if result.journal_entry:
        ui_utils.print_command(result.journal_entry.command, title="Start command (journal)")


def cmd_backup(
    ctx: typer.Context,
    identifiers: Optional[List[str]] = None,
    all_containers: bool = False,
    yes: bool = False,
):
    """Back up one or more projects."""
    cfg = ensure_config(ctx)
    if not identifiers and not all_containers:
        ui_utils.print_error("Name a container, ID or image, or use --all")
        raise typer.Exit(code=2)

    runtime = ensure_docker(ctx)
    manager = BackupManager(cfg, runtime=runtime, prompter=make_prompter(yes))

    ui_utils.print_header("DMR Backup", f"Target directory: {cfg.backup_base_dir}")
    if all_containers:
        report, results = manager.backup_all()
    else:
        report, results = manager.backup_many(identifiers)

    for result in results:
        _print_result(result)

    if not report.items:
        ui_utils.print_warning("No containers found, nothing to back up")
        return

    if len(report.items) > 1 or report.failed:
        print_report("Backup summary", report)

    if report.failed:
        raise typer.Exit(code=1)


def register(app: typer.Typer):
    """Register backup commands."""

    @app.command("backup")
    def _backup_cmd(
        ctx: typer.Context,
        identifiers: Optional[List[str]] = typer.Argument(
            None, help="Container names, IDs or images to back up"
        ),
        all_containers: bool = typer.Option(False, "--all", "-a", help="Back up every container"),
        yes: bool = typer.Option(
            False, "--yes", "-y", help="Do not ask; existing archives are never overwritten"
        ),
    ):
        """Back up containers (compose projects are backed up as a whole)."""
        cmd_backup(ctx, identifiers, all_containers, yes)
