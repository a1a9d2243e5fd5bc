"""
Operator confirmation capability.

Backup and restore never talk to the terminal directly; they receive a
:class:`Prompter` with one method per destructive decision. The CLI passes a
:class:`ConsolePrompter` for interactive sessions and a
:class:`StaticPrompter` for ``--yes`` / scripted runs. Declining is always a
safe no-op for the caller.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

from . import ui_utils


class Prompter(Protocol):
    def confirm_overwrite(self, archive: Path) -> bool:
        ...

    def confirm_execute(self, container_name: str, command: str) -> bool:
        ...

    def confirm_replace(self, container_name: str) -> bool:
        ...

    def ask_compose_target(self, project_name: str, suggested: str) -> Optional[str]:
        ...


class ConsolePrompter:
    """Interactive prompts on the rich console."""

    def _confirm(self, message: str) -> bool:
        try:
            return ui_utils.confirm_action(message, default_no=True)
        except (EOFError, KeyboardInterrupt):
            ui_utils.console.print()
            return False

    def confirm_overwrite(self, archive: Path) -> bool:
        return self._confirm(f"Backup file '{archive}' already exists. Overwrite?")

    def confirm_execute(self, container_name: str, command: str) -> bool:
        ui_utils.print_command(command, title=f"Recreate {container_name}")
        return self._confirm(f"Run this command to recreate '{container_name}'?")

    def confirm_replace(self, container_name: str) -> bool:
        return self._confirm(
            f"Container '{container_name}' already exists. Stop and remove it first?"
        )

    def ask_compose_target(self, project_name: str, suggested: str) -> Optional[str]:
        try:
            answer = ui_utils.prompt_text(
                f"Directory for the compose file of '{project_name}' (empty = skip)",
                default=suggested,
            )
        except (EOFError, KeyboardInterrupt):
            ui_utils.console.print()
            return None
        answer = (answer or "").strip()
        return answer or None


class StaticPrompter:
    """
    Non-interactive prompter with fixed answers.

    Args:
        answer: Reply to execute/replace questions
        overwrite: Reply to the overwrite-existing-archive question; False by
            default so unattended runs never clobber archives
        compose_target: Compose directory; None accepts the suggestion
    """

    def __init__(
        self,
        answer: bool = False,
        overwrite: bool = False,
        compose_target: Optional[str] = None,
    ):
        self.answer = answer
        self.overwrite = overwrite
        self.compose_target = compose_target
        self.asked: list[str] = []

    def confirm_overwrite(self, archive: Path) -> bool:
        self.asked.append(f"overwrite:{archive.name}")
        return self.overwrite

    def confirm_execute(self, container_name: str, command: str) -> bool:
        self.asked.append(f"execute:{container_name}")
        return self.answer

    def confirm_replace(self, container_name: str) -> bool:
        self.asked.append(f"replace:{container_name}")
        return self.answer

    def ask_compose_target(self, project_name: str, suggested: str) -> Optional[str]:
        self.asked.append(f"compose_target:{project_name}")
        if not self.answer:
            return None
        return self.compose_target or suggested
