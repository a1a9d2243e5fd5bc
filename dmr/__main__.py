#!/usr/bin/env python3
################################################################################
# DMR
#
# @file:        __main__.py
# @module:      dmr.__main__
# @description: Typer-based CLI entry point for backup, restore and housekeeping.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
DMR - main CLI

Typer-based CLI following the "Werkzeugtisch" (tool bench) pattern:
- Configuration is loaded once at startup
- Commands retrieve tools from context instead of parameters
"""

from __future__ import annotations

import configparser
import sys
from pathlib import Path
from typing import Optional

import typer

from .commands import archive_commands, backup_commands, config_commands, restore_commands
from .helpers.config import Config
from .helpers.constants import VERSION
from .helpers.logging import get_logger, log_manager

app = typer.Typer(
    add_completion=False,
    help="DMR – Backup & Restore for Docker containers, volumes and compose projects.",
)
logger = get_logger(__name__)


# -------------------------
# Application Context
# -------------------------

@app.callback()
def initialize_context(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to configuration file."
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR). Default from config."
    ),
):
    """
    Initialize application context before any command runs.
    Sets up logging and loads configuration once.
    """
    log_manager.configure(level=(log_level or "INFO").upper())

    ctx.ensure_object(dict)

    try:
        cfg = Config(config_path)
    except (OSError, ValueError, configparser.Error) as e:
        logger.error(f"Cannot load configuration: {e}")
        cfg = None

    if cfg is not None:
        # Ab hier auch in die dauerhafte Logdatei schreiben
        log_manager.configure(
            level=(log_level or cfg.log_level).upper(),
            log_file=cfg.log_file_path,
        )

    ctx.obj["config"] = cfg
    ctx.obj["config_path"] = config_path


# -------------------------
# Commands
# -------------------------

backup_commands.register(app)
restore_commands.register(app)
archive_commands.register(app)
config_commands.register(app)


@app.command("version")
def cmd_version():
    """Show DMR version."""
    typer.echo(f"DMR version {VERSION}")


def main():
    """Main entry point for the application."""
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("\nInterrupted.")
        sys.exit(130)


if __name__ == "__main__":
    main()
