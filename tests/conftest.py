"""
Shared pytest fixtures for DMR tests.

Provides a temporary configuration, a fixed clock and an in-memory stand-in
for the docker CLI (``FakeRuntime``) that keeps volume data on disk below
``tmp_path``.
"""

import copy
import shlex
from datetime import datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dmr.cores.docker_runtime import ContainerSummary
from dmr.helpers.config import Config
from dmr.helpers.constants import (
    DOCKER_COMPOSE_CONFIG_LABEL,
    DOCKER_COMPOSE_PROJECT_LABEL,
    DOCKER_COMPOSE_WORKDIR_LABEL,
)
from dmr.helpers.logging import log_manager
from dmr.helpers.ui_utils import SubprocessError


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external dependencies")
    config.addinivalue_line("markers", "integration: full backup/restore cycles on disk")


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by a test (CliRunner streams are closed afterwards)."""
    yield
    log_manager.configure(level="WARNING", log_file=None, console=False)


class FakeRuntime:
    """In-memory docker with volume mountpoints under a temp directory."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.containers = {}
        self.volumes = {}
        self.calls = []
        self.available = True
        self.fail_inspect = set()
        self.fail_run = False

    # ---- setup helpers ----

    def add_volume(self, name: str) -> Path:
        mountpoint = self.root / "volumes" / name / "_data"
        mountpoint.mkdir(parents=True, exist_ok=True)
        self.volumes[name] = mountpoint
        return mountpoint

    def add_container(
        self,
        name: str,
        image: str = "nginx:latest",
        container_id: str = None,
        labels: dict = None,
        mounts: list = None,
        env: list = None,
        ports: dict = None,
        binds: list = None,
        restart: str = "no",
        cmd: list = None,
        network_mode: str = "default",
        networks: tuple = ("bridge",),
        state: str = "running",
    ) -> str:
        cid = container_id or (name.encode().hex() + "0" * 64)[:64]
        self.containers[cid] = {
            "Id": cid,
            "Name": f"/{name}",
            "State": {"Status": state},
            "Config": {
                "Image": image,
                "Env": list(env or ["PATH=/usr/local/bin:/usr/bin"]),
                "Cmd": cmd,
                "Labels": dict(labels or {}),
            },
            "HostConfig": {
                "Binds": list(binds or []),
                "PortBindings": dict(ports or {}),
                "RestartPolicy": {"Name": restart},
                "NetworkMode": network_mode,
            },
            "NetworkSettings": {"Networks": {n: {} for n in networks}},
            "Mounts": list(mounts or []),
        }
        return cid

    # ---- DockerRuntime surface ----

    def is_available(self) -> bool:
        return self.available

    def list_containers(self):
        self.calls.append(("ps",))
        return [
            ContainerSummary(
                id=cid,
                name=data["Name"].lstrip("/"),
                image=data["Config"]["Image"],
                state=data["State"]["Status"],
                compose_project=data["Config"]["Labels"].get(DOCKER_COMPOSE_PROJECT_LABEL, ""),
            )
            for cid, data in self.containers.items()
        ]

    def find_ids_by_label(self, key, value):
        self.calls.append(("label", key, value))
        return [
            cid for cid, data in self.containers.items()
            if data["Config"]["Labels"].get(key) == value
        ]

    def inspect_container(self, container_id):
        self.calls.append(("inspect", container_id))
        if container_id in self.fail_inspect or container_id not in self.containers:
            raise SubprocessError(["docker", "inspect", container_id], 1, "No such container")
        return copy.deepcopy(self.containers[container_id])

    def inspect_volume(self, name):
        if name not in self.volumes:
            return None
        return {"Name": name, "Driver": "local", "Mountpoint": str(self.volumes[name])}

    def create_volume(self, name):
        self.calls.append(("volume_create", name))
        self.add_volume(name)

    def find_container_by_name(self, name):
        for cid, data in self.containers.items():
            if data["Name"].lstrip("/") == name:
                return cid
        return None

    def stop_container(self, container_id):
        self.calls.append(("stop", container_id))

    def remove_container(self, container_id):
        self.calls.append(("rm", container_id))
        self.containers.pop(container_id, None)

    def run_command_line(self, command):
        self.calls.append(("run", command))
        if self.fail_run:
            raise SubprocessError(shlex.split(command), 125, "docker: Error response from daemon")
        args = shlex.split(command)
        name = args[args.index("--name") + 1] if "--name" in args else "anonymous"
        return self.add_container(name, image="restored")

    @property
    def run_commands(self):
        return [c[1] for c in self.calls if c[0] == "run"]


@pytest.fixture
def cli_runner():
    """Typer CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def fake_runtime(tmp_path):
    return FakeRuntime(tmp_path / "docker")


@pytest.fixture
def tmp_config(tmp_path):
    """Write a config file whose backup root lives below tmp_path."""
    backup_dir = tmp_path / "backups"
    config_file = tmp_path / "dmr.conf"
    config_file.write_text(
        "[backup]\n"
        f"base_dir = {backup_dir}\n"
        "file_prefix = docker_project_backup\n"
        "file_extension = .tar.gz\n"
        "journal_file = docker_run_commands.txt\n"
        "min_free_space_gb = 0\n"
        "\n"
        "[docker]\n"
        "binary = docker\n"
        "compose_up_command = docker compose up -d\n"
        "\n"
        "[restore]\n"
        "compose_target_dir =\n"
        "\n"
        "[logging]\n"
        "level = INFO\n"
        "file = docker_backup_restore.log\n",
        encoding="utf-8",
    )
    return config_file


@pytest.fixture
def config(tmp_config):
    return Config(tmp_config)


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 5, 17, 14, 30, 0)


@pytest.fixture
def target_runtime(tmp_path):
    """Second, empty docker host to restore into."""
    return FakeRuntime(tmp_path / "docker-target")


@pytest.fixture
def web1(fake_runtime, tmp_path):
    """Standalone nginx with a bind-mounted document root; returns the bind path."""
    html = tmp_path / "data" / "web1"
    html.mkdir(parents=True)
    (html / "index.html").write_text("<h1>hello</h1>")
    fake_runtime.add_container(
        "web1",
        restart="always",
        binds=[f"{html}:/usr/share/nginx/html"],
        mounts=[{"Type": "bind", "Source": str(html), "Destination": "/usr/share/nginx/html"}],
        ports={"80/tcp": [{"HostIp": "127.0.0.1", "HostPort": "8080"}]},
    )
    return html


@pytest.fixture
def shop(fake_runtime, tmp_path):
    """Compose project with two services sharing a volume; returns the project dir."""
    project_dir = tmp_path / "srv" / "shop"
    project_dir.mkdir(parents=True)
    (project_dir / "docker-compose.yml").write_text("services:\n  web: {}\n  db: {}\n")
    labels = {
        DOCKER_COMPOSE_PROJECT_LABEL: "shop",
        DOCKER_COMPOSE_CONFIG_LABEL: str(project_dir / "docker-compose.yml"),
        DOCKER_COMPOSE_WORKDIR_LABEL: str(project_dir),
    }
    (fake_runtime.add_volume("shop_static") / "app.css").write_text("body {}")
    (fake_runtime.add_volume("shop_db") / "PG_VERSION").write_text("16")
    fake_runtime.add_container(
        "shop-web-1",
        labels=labels,
        mounts=[{"Type": "volume", "Name": "shop_static", "Destination": "/static"}],
    )
    fake_runtime.add_container(
        "shop-db-1",
        image="postgres:16",
        labels=labels,
        mounts=[
            {"Type": "volume", "Name": "shop_db", "Destination": "/var/lib/postgresql/data"},
            {"Type": "volume", "Name": "shop_static", "Destination": "/srv/static"},
        ],
    )
    return project_dir
