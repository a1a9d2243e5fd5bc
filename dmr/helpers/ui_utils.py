"""
CLI Utilities for DMR

Rich-based helpers for consistent CLI output, plus the subprocess wrapper
every external command goes through.
"""

import subprocess
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from .logging import get_logger

console = Console()
logger = get_logger(__name__)


class SubprocessError(Exception):
    """An external command exited non-zero (or could not be started)."""

    def __init__(self, cmd: Sequence[str], returncode: int, stderr: str = ""):
        self.cmd = list(cmd) if not isinstance(cmd, str) else [cmd]
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        super().__init__(
            f"Command failed ({returncode}): {' '.join(self.cmd)}"
            + (f": {self.stderr}" if self.stderr else "")
        )


def run_command(
    cmd: List[str],
    description: str,
    timeout: Optional[float] = None,
    check: bool = True,
    **kwargs,
) -> subprocess.CompletedProcess:
    """
    Run an external command with captured text output.

    Args:
        cmd: Command and arguments (never a shell string)
        description: What the command does, for debug logging
        timeout: Optional timeout in seconds (None = wait forever)
        check: Raise SubprocessError on non-zero exit

    Returns:
        CompletedProcess with stdout/stderr as text

    Raises:
        SubprocessError: Command missing, timed out, or failed with check=True
    """
    logger.debug(f"{description}: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            **kwargs,
        )
    except FileNotFoundError as e:
        raise SubprocessError(cmd, 127, str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise SubprocessError(cmd, -1, f"timed out after {timeout}s") from e

    if check and result.returncode != 0:
        raise SubprocessError(cmd, result.returncode, result.stderr)
    return result


def print_header(title: str, subtitle: str = ""):
    """Print styled header with optional subtitle"""
    content = f"[bold cyan]{escape(title)}[/bold cyan]"
    if subtitle:
        content += f"\n[dim]{escape(subtitle)}[/dim]"

    console.print(Panel(content, border_style="cyan"))


def print_success(message: str):
    """Print success message with green checkmark"""
    console.print(f"[green]✓[/green] {escape(message)}")


def print_error(message: str):
    """Print error message with red X"""
    console.print(f"[red]✗[/red] {escape(message)}")


def print_warning(message: str):
    """Print warning message with yellow warning symbol"""
    console.print(f"[yellow]⚠[/yellow]  {escape(message)}")


def print_info(message: str):
    """Print info message with cyan arrow"""
    console.print(f"[cyan]→[/cyan] {escape(message)}")


def print_command(command: str, title: str = "Command"):
    """Show a shell command verbatim in a panel (no markup interpretation)."""
    console.print(Panel(escape(command), title=title, border_style="yellow"))


def create_table(title: str, columns: List[tuple]) -> Table:
    """
    Create a styled Rich table

    Args:
        title: Table title
        columns: List of (name, style, width) tuples; width may be None

    Returns:
        Rich Table instance
    """
    table = Table(title=title, show_header=True, header_style="bold cyan", box=box.SIMPLE)
    for name, style, width in columns:
        table.add_column(name, style=style, width=width)
    return table


def prompt_text(message: str, default: Optional[str] = None) -> str:
    return Prompt.ask(message, default=default, console=console)


def confirm_action(message: str, default_no: bool = True) -> bool:
    """
    Confirm action with clear y/N or Y/n prompt.

    Args:
        message: Question to ask
        default_no: If True, default is No (y/N); if False, default is Yes (Y/n)

    Returns:
        True if user confirmed, False otherwise
    """
    if default_no:
        prompt = f"{message} [y/N]"
    else:
        prompt = f"{message} [Y/n]"

    response = console.input(f"[cyan]{escape(prompt)}:[/cyan] ").strip().lower()

    if response in ("y", "yes"):
        return True
    elif response in ("n", "no"):
        return False
    else:
        # Empty = use default
        return not default_no


def print_next_steps(steps: List[str], title: str = "What's Next") -> None:
    """
    Print a list of next steps in a styled panel.

    Args:
        steps: List of step descriptions
        title: Panel title
    """
    content = "[bold]Next Steps:[/bold]\n\n"
    for i, step in enumerate(steps, 1):
        content += f"\\[{i}] {escape(step)}\n"

    console.print()
    console.print(Panel.fit(
        content.strip(),
        title=f"[bold cyan]{title}[/bold cyan]",
        border_style="cyan"
    ))
    console.print()
