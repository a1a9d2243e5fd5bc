"""CLI command modules for DMR."""

from . import (
    archive_commands,
    backup_commands,
    config_commands,
    restore_commands,
)

__all__ = [
    'archive_commands',
    'backup_commands',
    'config_commands',
    'restore_commands',
]
