#!/usr/bin/env python3
################################################################################
# DMR
#
# @file:        config.py
# @module:      dmr.helpers.config
# @description: INI configuration for backup root, naming, docker and logging
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Configuration management for DMR.

Handles loading, validation, and access to configuration settings.
A missing configuration file is created from the built-in defaults.
"""

from __future__ import annotations

import configparser
import os
from pathlib import Path
from typing import Optional, List, Dict, Any, Union

from .constants import (
    DEFAULT_BACKUP_BASE,
    DEFAULT_COMPOSE_UP_COMMAND,
    DEFAULT_CONFIG_PATHS,
    DEFAULT_FILE_EXTENSION,
    DEFAULT_FILE_PREFIX,
    DEFAULT_JOURNAL_FILE,
    DEFAULT_LOG_FILE,
)
from .logging import get_logger

logger = get_logger(__name__)


class Config:
    """
    Configuration manager for DMR.

    Loads and validates configuration from INI files.
    """

    def __init__(self, config_path: Optional[Union[Path, str]] = None):
        """
        Initialize configuration.

        Args:
            config_path: Optional path to config file
        """
        # Interpolation deaktivieren: Befehle dürfen % enthalten
        self._config = configparser.ConfigParser(interpolation=None)
        self._config.read_dict(self._get_default_config())

        self.config_file = self._find_config_file(config_path)
        if not self.config_file.exists():
            logger.info(f"No configuration found. Creating default at {self.config_file}")
            create_default_config(self.config_file)

        self._load_config()

    # --------------- Properties ---------------

    @property
    def backup_base_dir(self) -> Path:
        return Path(self.get('backup', 'base_dir', DEFAULT_BACKUP_BASE)).expanduser()

    @property
    def file_prefix(self) -> str:
        return self.get('backup', 'file_prefix', DEFAULT_FILE_PREFIX)

    @property
    def file_extension(self) -> str:
        return self.get('backup', 'file_extension', DEFAULT_FILE_EXTENSION)

    @property
    def journal_path(self) -> Path:
        return self._inside_base(self.get('backup', 'journal_file', DEFAULT_JOURNAL_FILE))

    @property
    def log_file_path(self) -> Optional[Path]:
        value = self.get('logging', 'file', DEFAULT_LOG_FILE)
        return self._inside_base(value) if value else None

    @property
    def log_level(self) -> str:
        return self.get('logging', 'level', 'INFO')

    @property
    def docker_binary(self) -> str:
        return self.get('docker', 'binary', 'docker')

    @property
    def compose_up_command(self) -> str:
        return self.get('docker', 'compose_up_command', DEFAULT_COMPOSE_UP_COMMAND)

    @property
    def compose_target_dir(self) -> Optional[str]:
        return self.get('restore', 'compose_target_dir', '') or None

    @property
    def min_free_space_gb(self) -> float:
        try:
            return float(self.get('backup', 'min_free_space_gb', 1))
        except ValueError:
            return 1.0

    # --------------- Core Methods ---------------

    def get(self, section: str, option: str, fallback: Any = None) -> Any:
        """Get configuration value with fallback."""
        try:
            return self._config.get(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {section: dict(self._config.items(section)) for section in self._config.sections()}

    def display(self) -> None:
        """Print the effective configuration."""
        from rich.markup import escape

        from .ui_utils import console, create_table

        table = create_table(
            f"Configuration ({self.config_file})",
            [("Section", "cyan", None), ("Option", "white", None), ("Value", "green", None)],
        )
        for section, options in self.as_dict().items():
            for option, value in options.items():
                table.add_row(section, option, escape(value))
        console.print(table)

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if everything is fine)
        """
        errors = []

        base = self.backup_base_dir
        if base.exists() and not os.access(base, os.W_OK):
            errors.append(f"Backup directory not writable: {base}")
        elif not base.exists() and not os.access(_first_existing_parent(base), os.W_OK):
            errors.append(f"Backup directory cannot be created: {base}")

        prefix = self.file_prefix
        if not prefix or '/' in prefix:
            errors.append(f"file_prefix must be a plain file name part: {prefix!r}")

        extension = self.file_extension
        if not extension.startswith('.') or '/' in extension:
            errors.append(f"file_extension must start with '.': {extension!r}")

        if not self.get('backup', 'journal_file', ''):
            errors.append("[backup] journal_file must not be empty")

        if not self.compose_up_command.strip():
            errors.append("[docker] compose_up_command must not be empty")

        try:
            if float(self.get('backup', 'min_free_space_gb', 1)) < 0:
                errors.append("min_free_space_gb must be >= 0")
        except ValueError:
            errors.append(f"min_free_space_gb must be a number: {self.get('backup', 'min_free_space_gb')}")

        return errors

    # --------------- Private Methods ---------------

    @staticmethod
    def _get_default_config() -> Dict[str, Dict[str, Any]]:
        """
        Get default configuration structure.

        Returns:
            Dictionary of default configuration sections and values
        """
        return {
            'backup': {
                'base_dir': DEFAULT_BACKUP_BASE,
                'file_prefix': DEFAULT_FILE_PREFIX,
                'file_extension': DEFAULT_FILE_EXTENSION,
                'journal_file': DEFAULT_JOURNAL_FILE,
                'min_free_space_gb': '1',
            },
            'docker': {
                'binary': 'docker',
                'compose_up_command': DEFAULT_COMPOSE_UP_COMMAND,
            },
            'restore': {
                'compose_target_dir': '',
            },
            'logging': {
                'level': 'INFO',
                'file': DEFAULT_LOG_FILE,
            },
        }

    def _inside_base(self, value: str) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.backup_base_dir / path

    def _find_config_file(self, config_path: Optional[Union[Path, str]] = None) -> Path:
        """
        Find or determine configuration file path.

        Args:
            config_path: Explicitly provided configuration path

        Returns:
            Path to configuration file
        """
        # Expliziten Pfad respektieren, auch wenn die Datei noch nicht existiert
        if config_path:
            config_path = Path(config_path).expanduser().resolve()
            config_path.parent.mkdir(parents=True, exist_ok=True)
            return config_path

        search_order = [
            DEFAULT_CONFIG_PATHS['user'],
            DEFAULT_CONFIG_PATHS['root'],
        ]

        for location in search_order:
            expanded_location = Path(location).expanduser()
            if expanded_location.exists():
                if os.access(expanded_location, os.R_OK):
                    logger.debug(f"Using config file: {expanded_location}")
                    return expanded_location
                logger.warning(f"Config file exists but not readable: {expanded_location}")

        path = default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug(f"Using default config path: {path}")
        return path

    def _load_config(self) -> None:
        """Load configuration from file with UTF-8 encoding."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                self._config.read_file(f)
            logger.debug(f"Configuration loaded from {self.config_file}")
        except UnicodeDecodeError as e:
            logger.error(f"Config file encoding error (expected UTF-8): {e}")
            raise
        except (OSError, configparser.Error) as e:
            logger.error(f"Failed to load configuration: {e}")
            raise


def default_config_path() -> Path:
    """System-wide config for root, per-user config otherwise."""
    if os.geteuid() == 0:
        return Path(DEFAULT_CONFIG_PATHS['root'])
    return Path(DEFAULT_CONFIG_PATHS['user']).expanduser()


def _first_existing_parent(path: Path) -> Path:
    for parent in [path, *path.parents]:
        if parent.exists():
            return parent
    return Path('/')


def create_default_config(path: Optional[Path] = None, force: bool = False) -> Path:
    """
    Write the default configuration file.

    Args:
        path: Where to create the config file (default depends on euid)
        force: Overwrite existing file if True

    Returns:
        Path to the config file
    """
    path = Path(path).expanduser() if path is not None else default_config_path()

    if path.exists() and not force:
        logger.warning(f"Configuration file already exists at {path}")
        return path

    path.parent.mkdir(parents=True, exist_ok=True)

    parser = configparser.ConfigParser(interpolation=None)
    parser.read_dict(Config._get_default_config())
    with open(path, 'w', encoding='utf-8') as f:
        f.write("# DMR configuration\n")
        f.write("# Relative journal/log file paths are placed inside base_dir.\n\n")
        parser.write(f)
    path.chmod(0o600)

    logger.info(f"Configuration created at {path}")
    return path
