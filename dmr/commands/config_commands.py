"""Configuration management commands."""

from pathlib import Path
from typing import Optional

import typer

from ..helpers import ui_utils
from ..helpers.config import create_default_config, default_config_path
from .common import ensure_config

config_app = typer.Typer(help="Show, validate or create the configuration.")


def cmd_config_show(ctx: typer.Context):
    """Show current configuration."""
    cfg = ensure_config(ctx)
    cfg.display()


def cmd_config_validate(ctx: typer.Context):
    """Validate configuration values."""
    cfg = ensure_config(ctx)
    errors = cfg.validate()
    if errors:
        for error in errors:
            ui_utils.print_error(error)
        raise typer.Exit(code=1)
    ui_utils.print_success(f"Configuration OK: {cfg.config_file}")


def cmd_config_new(path: Optional[Path] = None, force: bool = False):
    """Create new configuration file."""
    target = path or default_config_path()
    if target.exists() and not force:
        ui_utils.print_warning(f"Config already exists at: {target} (use --force to overwrite)")
        raise typer.Exit(code=1)
    created = create_default_config(target, force=force)
    ui_utils.print_success(f"Configuration written to {created}")


def register(app: typer.Typer):
    """Register all configuration commands."""

    @config_app.command("show")
    def _show_cmd(ctx: typer.Context):
        """Show current configuration."""
        cmd_config_show(ctx)

    @config_app.command("validate")
    def _validate_cmd(ctx: typer.Context):
        """Check configuration values."""
        cmd_config_validate(ctx)

    @config_app.command("new")
    def _new_cmd(
        path: Optional[Path] = typer.Option(None, "--path", help="Custom config path"),
        force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
    ):
        """Create a configuration file with default values."""
        cmd_config_new(path, force)

    app.add_typer(config_app, name="config")
