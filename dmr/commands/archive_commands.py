"""Housekeeping commands: archives, containers, journal and log."""

from typing import Optional

import typer
from rich.markup import escape

from ..cores.archive_store import ArchiveStore
from ..cores.command_journal import CommandJournal
from ..helpers import ui_utils
from ..helpers.logging import get_logger
from ..helpers.system_utils import SystemUtils
from .common import ensure_config, ensure_docker

logger = get_logger(__name__)

DELETE_ALL_CONFIRMATION = "YES"


def cmd_list(ctx: typer.Context):
    """List archives in the backup directory."""
    cfg = ensure_config(ctx)
    archives = ArchiveStore(cfg).list_archives()
    if not archives:
        ui_utils.print_warning(f"No archives in {cfg.backup_base_dir}")
        return

    table = ui_utils.create_table(
        f"Archives in {cfg.backup_base_dir}",
        [("#", "dim", 4), ("Archive", "cyan", None), ("Size", "green", 12), ("Modified", "yellow", 20)],
    )
    for idx, archive in enumerate(archives, 1):
        table.add_row(
            str(idx),
            escape(archive.name),
            SystemUtils.format_bytes(archive.size),
            archive.modified.strftime("%Y-%m-%d %H:%M:%S"),
        )
    ui_utils.console.print(table)
    ui_utils.print_info(f"Total: {len(archives)} archive(s)")


def cmd_ps(ctx: typer.Context):
    """List containers with their compose project."""
    runtime = ensure_docker(ctx)
    containers = runtime.list_containers()
    if not containers:
        ui_utils.print_warning("No containers found")
        return

    table = ui_utils.create_table(
        "Docker containers",
        [("ID", "dim", 12), ("Name", "cyan", None), ("Image", "white", None),
         ("State", "green", 10), ("Compose project", "yellow", None)],
    )
    for c in containers:
        table.add_row(c.id[:12], escape(c.name), escape(c.image), c.state, escape(c.compose_project or "-"))
    ui_utils.console.print(table)


def cmd_delete(ctx: typer.Context, name: Optional[str], all_archives: bool, yes: bool):
    """Delete one archive, or all archives plus the command journal."""
    cfg = ensure_config(ctx)
    store = ArchiveStore(cfg)

    if all_archives:
        count = len(store.list_archives())
        if not yes:
            if not ui_utils.confirm_action(
                f"Delete all {count} archive(s) and the command journal in {cfg.backup_base_dir}?"
            ):
                ui_utils.print_info("Nothing deleted")
                return
            typed = ui_utils.prompt_text(f"Type {DELETE_ALL_CONFIRMATION} to confirm", default="")
            if typed != DELETE_ALL_CONFIRMATION:
                ui_utils.print_info("Nothing deleted")
                return
        deleted = store.delete_all(include_journal=True)
        if deleted < count:
            ui_utils.print_warning(f"Deleted {deleted} of {count} archive(s); see the log for the rest")
            raise typer.Exit(code=1)
        ui_utils.print_success(f"Deleted {deleted} archive(s) and the command journal")
        return

    if not name:
        ui_utils.print_error("Name an archive or use --all")
        raise typer.Exit(code=2)

    path = store.resolve(name)
    if not yes and not ui_utils.confirm_action(f"Delete {path}?"):
        ui_utils.print_info("Nothing deleted")
        return
    try:
        store.delete(name)
    except FileNotFoundError as e:
        ui_utils.print_error(str(e))
        raise typer.Exit(code=1)
    except OSError as e:
        logger.error(f"Cannot delete {path}: {e}")
        ui_utils.print_error(f"Cannot delete {path}: {e}")
        raise typer.Exit(code=1)
    ui_utils.print_success(f"Deleted {path}")


def cmd_journal(ctx: typer.Context):
    """Show the command journal."""
    cfg = ensure_config(ctx)
    journal = CommandJournal(cfg.journal_path)
    entries = journal.entries()
    if not entries:
        ui_utils.print_warning(f"Command journal is empty ({journal.path})")
        return

    table = ui_utils.create_table(
        f"Command journal ({journal.path})",
        [("#", "dim", 4), ("Project", "cyan", None), ("Kind", "yellow", 10), ("Command", "white", None)],
    )
    for entry in entries:
        table.add_row(
            f"{entry.sequence:02d}", escape(entry.project_name), entry.kind.value, escape(entry.command)
        )
    ui_utils.console.print(table)


def cmd_log(ctx: typer.Context, lines: int):
    """Show the end of the backup/restore log."""
    cfg = ensure_config(ctx)
    tail = ArchiveStore(cfg).tail_log(lines)
    if not tail:
        ui_utils.print_warning(f"No log entries ({cfg.log_file_path or 'file logging disabled'})")
        return
    for line in tail:
        typer.echo(line)


def register(app: typer.Typer):
    """Register housekeeping commands."""

    @app.command("list")
    def _list_cmd(ctx: typer.Context):
        """List available backup archives."""
        cmd_list(ctx)

    @app.command("ps")
    def _ps_cmd(ctx: typer.Context):
        """List docker containers and their compose projects."""
        cmd_ps(ctx)

    @app.command("delete")
    def _delete_cmd(
        ctx: typer.Context,
        name: Optional[str] = typer.Argument(None, help="Archive file name or path"),
        all_archives: bool = typer.Option(
            False, "--all", "-a", help="Delete ALL archives and the command journal"
        ),
        yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    ):
        """Delete backup archives."""
        cmd_delete(ctx, name, all_archives, yes)

    @app.command("journal")
    def _journal_cmd(ctx: typer.Context):
        """Show the recorded start commands."""
        cmd_journal(ctx)

    @app.command("log")
    def _log_cmd(
        ctx: typer.Context,
        lines: int = typer.Option(50, "--lines", "-n", help="Number of lines"),
    ):
        """Show the backup/restore log."""
        cmd_log(ctx, lines)
