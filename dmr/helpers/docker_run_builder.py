################################################################################
# DMR
#
# @file:        docker_run_builder.py
# @module:      dmr.helpers
# @description: Reconstruct docker run commands from container inspect data
# @author:      DMR Contributors
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Reconstruct ``docker run`` commands from ``docker inspect`` data.

The command is a single line in which every user-supplied value is quoted
with :func:`shlex.quote`, so ``shlex.split`` yields exactly the original
arguments again, including arguments that contain spaces or quotes.

Example:
    >>> builder = DockerRunBuilder(inspect_data)
    >>> builder.build_command()
    "docker run -d -e 'TZ=Europe/Berlin' -p 127.0.0.1:8080:80 -v /data/web1:/usr/share/nginx/html --name web1 nginx:latest"
"""

import shlex
from typing import Any, Dict, List, Optional

from .constants import DOCKER_INJECTED_ENV_PREFIXES, NO_RESTART_POLICIES
from .logging import get_logger

logger = get_logger(__name__)

# Network modes docker picks on its own; anything else was chosen explicitly
_IMPLICIT_NETWORK_MODES = ("", "default", "bridge")


class DockerRunBuilder:
    """
    Build a ``docker run`` command from container inspect data.

    Covers environment, published ports, ``-v`` mounts, ``--volumes-from``,
    ``--link``, an explicit network mode, name, image and the original
    command arguments. The restart policy is deliberately left out; restore
    adds it via :func:`ensure_restart_flag`.
    """

    def __init__(self, inspect_data: Dict[str, Any]):
        """
        Initialize builder with inspect data.

        Args:
            inspect_data: Dictionary containing Docker inspect output
        """
        self.data = inspect_data or {}
        self.config = self.data.get("Config") or {}
        self.host_config = self.data.get("HostConfig") or {}
        self.network_settings = self.data.get("NetworkSettings") or {}
        self.mounts = self.data.get("Mounts") or []

    def build_args(self) -> List[str]:
        """Return the command as an argument vector (unquoted)."""
        args = ["docker", "run", "-d"]

        for env in self.config.get("Env") or []:
            if not env.startswith(DOCKER_INJECTED_ENV_PREFIXES):
                args += ["-e", env]

        for spec in self.port_specs():
            args += ["-p", spec]

        for spec in self.volume_specs():
            args += ["-v", spec]

        for source in self.host_config.get("VolumesFrom") or []:
            args += ["--volumes-from", source]

        for link in self.host_config.get("Links") or []:
            args += ["--link", self._normalize_link(link)]

        network = self.host_config.get("NetworkMode") or ""
        if network not in _IMPLICIT_NETWORK_MODES:
            args += ["--network", network]

        name = self.get_container_name()
        if name:
            args += ["--name", name]

        args.append(self.get_image())

        # CMD wird als Liste übernommen, nicht neu geparst
        cmd = self.config.get("Cmd")
        if isinstance(cmd, list):
            args += [str(part) for part in cmd]
        elif isinstance(cmd, str) and cmd.strip():
            args.append(cmd)

        return args

    def build_command(self) -> str:
        """
        Build the complete, shell-escaped ``docker run`` command line.

        Returns:
            Single-line command string
        """
        return shlex.join(self.build_args())

    def port_specs(self) -> List[str]:
        """``host-ip:host-port:container-port`` (or shorter) for each binding."""
        specs: List[str] = []
        port_bindings = self.host_config.get("PortBindings") or {}
        for container_port, bindings in port_bindings.items():
            port, _, proto = container_port.partition("/")
            target = port if proto in ("", "tcp") else f"{port}/{proto}"
            for binding in bindings or []:
                host_ip = (binding or {}).get("HostIp", "")
                host_port = (binding or {}).get("HostPort", "")
                if host_ip:
                    if ":" in host_ip and not host_ip.startswith("["):
                        host_ip = f"[{host_ip}]"
                    spec = f"{host_ip}:{host_port}:{target}"
                elif host_port:
                    spec = f"{host_port}:{target}"
                else:
                    spec = target
                if spec not in specs:
                    specs.append(spec)
        return specs

    def volume_specs(self) -> List[str]:
        """
        ``-v`` values: ``HostConfig.Binds`` first, then any volume or bind
        mount from ``Mounts`` whose destination is not already covered.
        """
        specs: List[str] = []
        covered = set()
        for bind in self.host_config.get("Binds") or []:
            specs.append(bind)
            parts = bind.split(":")
            if len(parts) >= 2:
                covered.add(parts[1])

        for mount in self.mounts:
            dest = mount.get("Destination", "")
            if not dest or dest in covered:
                continue
            mount_type = mount.get("Type")
            if mount_type == "volume" and mount.get("Name"):
                source = mount["Name"]
            elif mount_type == "bind" and mount.get("Source"):
                source = mount["Source"]
            else:
                continue
            spec = f"{source}:{dest}"
            if mount.get("RW") is False:
                spec += ":ro"
            specs.append(spec)
            covered.add(dest)
        return specs

    def get_container_name(self) -> str:
        """Container name without leading slash ('' if unknown)."""
        return (self.data.get("Name") or "").lstrip("/")

    def get_image(self) -> str:
        return self.config.get("Image") or self.data.get("Image") or "unknown"

    def get_restart_policy(self) -> str:
        return (self.host_config.get("RestartPolicy") or {}).get("Name") or ""

    def get_networks(self) -> List[str]:
        """Names of all networks the container is attached to."""
        return list((self.network_settings.get("Networks") or {}).keys())

    @staticmethod
    def _normalize_link(link: str) -> str:
        """``/db:/web/database`` (inspect form) → ``db:database`` (CLI form)."""
        if ":" not in link:
            return link.lstrip("/")
        target, alias = link.split(":", 1)
        return f"{target.lstrip('/')}:{alias.rsplit('/', 1)[-1]}"


def ensure_restart_flag(command: str, policy: Optional[str]) -> str:
    """
    Add ``--restart <policy>`` right after ``docker run``.

    Nothing is added if the command already carries a restart flag or the
    policy means "never restart".

    Args:
        command: Reconstructed command line
        policy: Recorded restart policy name

    Returns:
        Possibly extended command line
    """
    policy = (policy or "").strip()
    if policy in NO_RESTART_POLICIES:
        return command

    try:
        args = shlex.split(command)
    except ValueError as e:
        logger.warning(f"Cannot parse command to add restart policy: {e}")
        return command

    if any(a == "--restart" or a.startswith("--restart=") for a in args):
        return command

    if len(args) >= 2 and args[0] == "docker" and args[1] == "run":
        args[2:2] = ["--restart", policy]
    else:
        logger.warning(f"Not a 'docker run' command, leaving restart policy out: {command}")
        return command
    return shlex.join(args)
