"""Tool bench accessors shared by the command modules."""

from typing import Optional

import typer
from rich.markup import escape

from ..cores.docker_runtime import DockerRuntime
from ..helpers import ui_utils
from ..helpers.config import Config
from ..helpers.prompts import ConsolePrompter, Prompter, StaticPrompter
from ..types import BatchReport


def get_config(ctx: typer.Context) -> Optional[Config]:
    """Get config from context."""
    return ctx.obj.get("config")


def ensure_config(ctx: typer.Context) -> Config:
    """Ensure config exists or exit."""
    cfg = get_config(ctx)
    if not cfg:
        ui_utils.print_error("No usable configuration found")
        typer.echo("Run: dmr config new")
        raise typer.Exit(code=1)
    return cfg


def get_runtime(ctx: typer.Context) -> DockerRuntime:
    """Get or create the docker runtime on the tool bench."""
    if "runtime" not in ctx.obj:
        ctx.obj["runtime"] = DockerRuntime(ensure_config(ctx).docker_binary)
    return ctx.obj["runtime"]


def ensure_docker(ctx: typer.Context) -> DockerRuntime:
    """Return the runtime, or exit if the daemon does not answer."""
    runtime = get_runtime(ctx)
    if not runtime.is_available():
        ui_utils.print_error("Docker daemon not reachable (is docker running, are you allowed to use it?)")
        raise typer.Exit(code=1)
    return runtime


def make_prompter(yes: bool) -> Prompter:
    """Interactive prompts, or fixed answers for --yes."""
    if yes:
        return StaticPrompter(answer=True, overwrite=False)
    return ConsolePrompter()


def print_report(title: str, report: BatchReport) -> None:
    """Summary table of a batch run."""
    table = ui_utils.create_table(
        title,
        [("Target", "cyan", None), ("Result", "white", 20), ("Detail", "dim", None)],
    )
    for item in report.items:
        if not item.ok:
            status = "[red]failed[/red]"
        elif item.partial:
            status = "[yellow]partial[/yellow]"
        else:
            status = "[green]ok[/green]"
        table.add_row(escape(item.target), status, escape(item.detail))
    ui_utils.console.print(table)
