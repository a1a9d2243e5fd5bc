"""Unit tests for the manifest models and result records."""

import pytest
from pydantic import ValidationError

from dmr.types import (
    BatchReport,
    BindMount,
    CommandJournalEntry,
    ContainerDescriptor,
    JournalKind,
    ProjectManifest,
    VolumeMount,
)


def make_manifest(**overrides):
    data = dict(
        project_name="shop",
        backup_timestamp="20240517_143000",
        is_compose_project=True,
        containers=[
            ContainerDescriptor(
                id="1", name="shop-web-1",
                mounts=[VolumeMount(name="shop_static", destination="/static")],
            ),
            ContainerDescriptor(
                id="2", name="shop-db-1",
                mounts=[
                    VolumeMount(name="shop_db", destination="/var/lib/postgresql/data"),
                    VolumeMount(name="shop_static", destination="/srv/static"),
                    BindMount(host_path="/srv/shop/conf", destination="/etc/shop"),
                ],
            ),
        ],
    )
    data.update(overrides)
    return ProjectManifest(**data)


@pytest.mark.unit
class TestContainerDescriptor:
    def test_frozen(self):
        descriptor = ContainerDescriptor(id="1", name="web1")
        with pytest.raises(ValidationError):
            descriptor.name = "other"

    def test_launch_command_and_compose_dir_exclusive(self):
        with pytest.raises(ValidationError):
            ContainerDescriptor(id="1", launch_command="docker run x", compose_working_dir="/srv")

    def test_volume_and_bind_views(self):
        descriptor = make_manifest().containers[1]
        assert [v.name for v in descriptor.volumes] == ["shop_db", "shop_static"]
        assert [b.host_path for b in descriptor.bind_mounts] == ["/srv/shop/conf"]


@pytest.mark.unit
class TestProjectManifest:
    def test_unique_volumes_first_seen_order(self):
        assert make_manifest().unique_volumes() == ["shop_static", "shop_db"]

    def test_unique_bind_paths(self):
        assert make_manifest().unique_bind_paths() == ["/srv/shop/conf"]

    def test_requires_containers(self):
        with pytest.raises(ValidationError):
            make_manifest(containers=[])

    @pytest.mark.parametrize("name", ["", "my shop", "a/b", "ü"])
    def test_rejects_unsafe_project_name(self, name):
        with pytest.raises(ValidationError):
            make_manifest(project_name=name)

    def test_json_round_trip_keeps_mount_kinds(self):
        manifest = make_manifest()
        loaded = ProjectManifest.model_validate_json(manifest.model_dump_json())

        assert loaded == manifest
        assert isinstance(loaded.containers[1].mounts[2], BindMount)
        assert isinstance(loaded.containers[1].mounts[0], VolumeMount)


@pytest.mark.unit
class TestJournalEntry:
    def test_line_format(self):
        entry = CommandJournalEntry(
            sequence=3, project_name="web1", kind=JournalKind.STANDALONE, command="docker run -d nginx"
        )
        assert entry.to_line() == "03 web1 standalone docker run -d nginx"


@pytest.mark.unit
class TestBatchReport:
    def test_classification(self):
        report = BatchReport()
        report.add("a", ok=True, detail="x")
        report.add("b", ok=True, detail="y", partial=True)
        report.add("c", ok=False, detail="z")

        assert [i.target for i in report.failed] == ["c"]
        assert [i.target for i in report.partial] == ["b"]
        assert report.all_ok is False
