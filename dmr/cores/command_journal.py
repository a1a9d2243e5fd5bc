"""
Command journal for DMR.

Append-only text file with one line per successful backup::

    01 web1 standalone docker run -d ... --name web1 nginx:latest
    02 shop compose cd /srv/shop && docker compose up -d

The sequence number is one more than the number of non-empty lines already
present; it is informational and not guaranteed unique if the file is
edited by hand.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from ..helpers.logging import get_logger
from ..types import CommandJournalEntry, JournalKind

logger = get_logger(__name__)


class CommandJournal:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _lines(self) -> List[str]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            return [line.rstrip("\n") for line in f if line.strip()]

    def next_sequence(self) -> int:
        return len(self._lines()) + 1

    def append(self, project_name: str, kind: JournalKind, command: str) -> CommandJournalEntry:
        """
        Append one entry.

        Newlines inside ``command`` are folded to spaces so the entry stays
        on one line.

        Raises:
            OSError: If the journal cannot be written
        """
        entry = CommandJournalEntry(
            sequence=self.next_sequence(),
            project_name=project_name,
            kind=kind,
            command=" ".join(command.splitlines()),
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(entry.to_line() + "\n")
        logger.info(
            f"Journal entry {entry.sequence:02d} written to {self.path}",
            extra={"project": project_name},
        )
        return entry

    def entries(self) -> List[CommandJournalEntry]:
        """Parse all well-formed lines; anything else is skipped."""
        result = []
        for line in self._lines():
            parts = line.split(" ", 3)
            if len(parts) < 4 or not parts[0].isdigit():
                logger.debug(f"Skipping journal line: {line}")
                continue
            try:
                kind = JournalKind(parts[2])
            except ValueError:
                logger.debug(f"Unknown journal kind in line: {line}")
                continue
            result.append(
                CommandJournalEntry(
                    sequence=int(parts[0]),
                    project_name=parts[1],
                    kind=kind,
                    command=parts[3],
                )
            )
        return result
