################################################################################
# DMR
#
# @file:        __init__.py
# @module:      dmr
# @description: Exposes version, logging, and core managers for package consumers.
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - Re-exports Config, BackupManager, RestoreManager and the manifest models
# - Sets __version__ from constants.VERSION for tooling introspection
################################################################################

"""
DMR: Docker project backup and restore.

Captures the configuration and persistent data of containers (standalone or
compose projects) into self-describing archives and recreates them later.
"""

from .helpers.constants import VERSION

__version__ = VERSION
__author__ = "DMR Contributors"

from .helpers.logging import (
    get_logger,
    log_manager,
    setup_logging,
    StructuredFormatter,
    Colors,
)

from .types import (
    BindMount,
    ContainerDescriptor,
    ProjectManifest,
    VolumeMount,
    BackupResult,
    RestoreResult,
)

from .helpers.config import Config
from .cores import BackupManager, RestoreManager, DockerRuntime

__all__ = [
    "VERSION",
    "BindMount",
    "ContainerDescriptor",
    "ProjectManifest",
    "VolumeMount",
    "BackupResult",
    "RestoreResult",
    "Config",
    "BackupManager",
    "RestoreManager",
    "DockerRuntime",
    "get_logger",
    "log_manager",
    "setup_logging",
    "StructuredFormatter",
    "Colors",
]
