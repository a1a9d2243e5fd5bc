"""Restore commands."""

from typing import List, Optional

import typer

from ..cores.archive_store import ArchiveStore
from ..cores.restore_manager import RestoreManager
from ..helpers import ui_utils
from ..types import RestoreResult
from .common import ensure_config, ensure_docker, make_prompter, print_report


def _print_result(result: RestoreResult) -> None:
    name = result.project_name or result.archive_path.name
    if result.success:
        ui_utils.print_success(f"Restore of {name} successful")
    else:
        ui_utils.print_warning(f"Restore of {name} partially successful")
        for issue in result.issues:
            ui_utils.print_warning(f"  {issue}")

    if result.restored_volumes:
        ui_utils.print_info(f"Volumes: {', '.join(result.restored_volumes)}")
    if result.restored_bind_paths:
        ui_utils.print_info(f"Bind mounts: {', '.join(result.restored_bind_paths)}")
    if result.started_containers:
        ui_utils.print_info(f"Started: {', '.join(result.started_containers)}")
    ui_utils.print_next_steps(result.next_steps, title=f"Restore {name}")


def cmd_restore(
    ctx: typer.Context,
    archives: Optional[List[str]] = None,
    all_archives: bool = False,
    yes: bool = False,
    compose_dir: Optional[str] = None,
):
    """Restore one or more archives."""
    cfg = ensure_config(ctx)
    store = ArchiveStore(cfg)

    if all_archives:
        paths = [a.path for a in store.list_archives()]
        if not paths:
            ui_utils.print_warning(f"No archives in {cfg.backup_base_dir}")
            return
    elif archives:
        paths = [store.resolve(a) for a in archives]
    else:
        ui_utils.print_error("Name an archive or use --all")
        raise typer.Exit(code=2)

    runtime = ensure_docker(ctx)
    manager = RestoreManager(cfg, runtime=runtime, prompter=make_prompter(yes))

    ui_utils.print_header("DMR Restore", f"{len(paths)} archive(s)")
    report, results = manager.restore_many(paths, compose_dir=compose_dir)

    for result in results:
        _print_result(result)

    if len(report.items) > 1 or report.failed:
        print_report("Restore summary", report)

    if report.failed:
        raise typer.Exit(code=1)


def register(app: typer.Typer):
    """Register restore commands."""

    @app.command("restore")
    def _restore_cmd(
        ctx: typer.Context,
        archives: Optional[List[str]] = typer.Argument(
            None, help="Archive file names (in the backup directory) or paths"
        ),
        all_archives: bool = typer.Option(False, "--all", "-a", help="Restore every archive"),
        yes: bool = typer.Option(
            False, "--yes", "-y", help="Answer yes to all questions (runs and replaces containers)"
        ),
        compose_dir: Optional[str] = typer.Option(
            None, "--compose-dir", help="Directory for restored compose files"
        ),
    ):
        """Restore volumes, bind mounts and containers from archives."""
        cmd_restore(ctx, archives, all_archives, yes, compose_dir)
