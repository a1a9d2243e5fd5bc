"""
Constants used throughout the DMR application.

This module defines all constant values used across different modules
to ensure consistency and ease of maintenance.
"""

from pathlib import Path

# Version information
VERSION = "1.0.0"

# Manifest format version (bump on incompatible manifest changes)
MANIFEST_FORMAT_VERSION = 1

# Default paths
DEFAULT_CONFIG_PATHS = {
    'root': Path('/etc/dmr.conf'),
    'user': Path.home() / '.config' / 'dmr' / 'config.conf'
}

# Docker labels
DOCKER_COMPOSE_PROJECT_LABEL = 'com.docker.compose.project'
DOCKER_COMPOSE_CONFIG_LABEL = 'com.docker.compose.project.config_files'
DOCKER_COMPOSE_WORKDIR_LABEL = 'com.docker.compose.project.working_dir'

# Compose files searched in a project directory, in order
COMPOSE_FILE_CANDIDATES = (
    'docker-compose.yml',
    'docker-compose.yaml',
    'compose.yml',
    'compose.yaml',
)

# Backup defaults
DEFAULT_BACKUP_BASE = '/home/docker_backups'
DEFAULT_FILE_PREFIX = 'docker_project_backup'
DEFAULT_FILE_EXTENSION = '.tar.gz'
DEFAULT_JOURNAL_FILE = 'docker_run_commands.txt'
DEFAULT_LOG_FILE = 'docker_backup_restore.log'
DEFAULT_COMPOSE_UP_COMMAND = 'docker compose up -d'

# Archive layout
MANIFEST_FILENAME = 'manifest.json'
COMPOSE_FILENAME = 'docker-compose.yml'
VOLUME_PAYLOAD_PREFIX = 'volume_'
BIND_PAYLOAD_PREFIX = 'bind_'
PAYLOAD_EXTENSION = '.tar.gz'

# Naming
TIMESTAMP_FORMAT = '%Y%m%d_%H%M%S'
FALLBACK_PROJECT_NAME = 'unnamed_project'

# Restart policies that mean "do not restart"
NO_RESTART_POLICIES = ('', 'no')

# Environment variables injected by the image/runtime, not worth replaying
DOCKER_INJECTED_ENV_PREFIXES = (
    'PATH=',
    'HOSTNAME=',
    'HOME=',
    'TERM=',
    'container=',
)

# Logging
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
