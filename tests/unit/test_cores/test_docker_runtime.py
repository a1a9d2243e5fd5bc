"""Unit tests for DockerRuntime (docker CLI calls are mocked)."""

import json
import subprocess

import pytest

from dmr.cores import docker_runtime
from dmr.cores.docker_runtime import DockerRuntime
from dmr.helpers.ui_utils import SubprocessError


class CommandRecorder:
    """Replaces run_command; answers from a queue of (returncode, stdout)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, cmd, description, check=True, **kwargs):
        self.calls.append(list(cmd))
        returncode, stdout = self.responses.pop(0) if self.responses else (0, "")
        if check and returncode != 0:
            raise SubprocessError(cmd, returncode, "error")
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")


@pytest.fixture
def recorder(monkeypatch):
    def install(*responses):
        rec = CommandRecorder(*responses)
        monkeypatch.setattr(docker_runtime, "run_command", rec)
        return rec
    return install


@pytest.mark.unit
class TestDockerRuntime:
    def test_is_available(self, recorder):
        rec = recorder((0, "24.0.7\n"))
        assert DockerRuntime().is_available() is True
        assert rec.calls[0][:2] == ["docker", "info"]

    def test_not_available(self, recorder):
        recorder((1, ""))
        assert DockerRuntime().is_available() is False

    def test_missing_binary(self, monkeypatch):
        def missing(cmd, description, check=True, **kwargs):
            raise SubprocessError(cmd, 127, "not found")
        monkeypatch.setattr(docker_runtime, "run_command", missing)
        assert DockerRuntime("podman-x").is_available() is False

    def test_list_containers(self, recorder):
        rec = recorder(
            (0, "abc\tweb1\tnginx:latest\trunning\t\n"
                "def\tshop-db-1,alias\tpostgres:16\texited\tshop\n\n")
        )
        containers = DockerRuntime().list_containers()

        assert [c.name for c in containers] == ["web1", "shop-db-1"]
        assert containers[1].compose_project == "shop"
        assert containers[1].state == "exited"
        assert "--no-trunc" in rec.calls[0]

    def test_find_ids_by_label(self, recorder):
        rec = recorder((0, "abc\ndef\n"))
        ids = DockerRuntime().find_ids_by_label("com.docker.compose.project", "shop")

        assert ids == ["abc", "def"]
        assert "label=com.docker.compose.project=shop" in rec.calls[0]

    def test_inspect_container(self, recorder):
        recorder((0, json.dumps([{"Id": "abc", "Name": "/web1"}])))
        assert DockerRuntime().inspect_container("abc")["Name"] == "/web1"

    def test_inspect_container_empty_output(self, recorder):
        recorder((0, "[]"))
        with pytest.raises(ValueError):
            DockerRuntime().inspect_container("abc")

    def test_inspect_container_failure(self, recorder):
        recorder((1, ""))
        with pytest.raises(SubprocessError):
            DockerRuntime().inspect_container("abc")

    def test_inspect_volume(self, recorder):
        recorder((0, json.dumps([{"Name": "data", "Mountpoint": "/var/lib/docker/volumes/data/_data"}])))
        assert DockerRuntime().inspect_volume("data")["Mountpoint"].endswith("/_data")

    def test_inspect_missing_volume(self, recorder):
        recorder((1, ""))
        assert DockerRuntime().inspect_volume("nope") is None

    def test_find_container_by_name(self, recorder):
        recorder((0, "abc\tweb1\tnginx\trunning\t\n"))
        assert DockerRuntime().find_container_by_name("web1") == "abc"

    def test_run_command_line_uses_binary_without_shell(self, recorder):
        rec = recorder((0, "newid\n"))
        output = DockerRuntime("/usr/local/bin/docker").run_command_line(
            "docker run -d -e 'A=b c' --name web1 nginx:latest"
        )

        assert output == "newid"
        assert rec.calls[0] == [
            "/usr/local/bin/docker", "run", "-d", "-e", "A=b c", "--name", "web1", "nginx:latest"
        ]
