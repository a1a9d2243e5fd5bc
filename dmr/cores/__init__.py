"""Core business logic modules for DMR."""

from .archive_store import ArchiveInfo, ArchiveStore
from .backup_manager import BackupManager
from .command_journal import CommandJournal
from .descriptor_builder import CaptureContext, ContainerDescriptorBuilder, classify_mounts
from .docker_runtime import ContainerSummary, DockerRuntime
from .project_resolver import ProjectResolver
from .restore_manager import RestoreManager

__all__ = [
    'ArchiveInfo',
    'ArchiveStore',
    'BackupManager',
    'CaptureContext',
    'CommandJournal',
    'ContainerDescriptorBuilder',
    'ContainerSummary',
    'DockerRuntime',
    'ProjectResolver',
    'RestoreManager',
    'classify_mounts',
]
