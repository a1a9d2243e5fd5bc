"""Unit tests for project, payload and archive naming."""

import pytest

from dmr.helpers.naming import (
    archive_filename,
    bind_payload_name,
    decode_host_path,
    encode_host_path,
    host_path_from_payload_name,
    sanitize_project_name,
    volume_payload_name,
)


@pytest.mark.unit
class TestSanitizeProjectName:
    def test_safe_name_unchanged(self):
        assert sanitize_project_name("web-1.prod_a") == "web-1.prod_a"

    def test_unsafe_runs_collapse(self):
        assert sanitize_project_name("my shop / v2") == "my_shop_v2"

    def test_leading_and_trailing_underscores_trimmed(self):
        assert sanitize_project_name("  @@web@@ ") == "web"

    def test_empty_falls_back(self):
        assert sanitize_project_name("") == "unnamed_project"
        assert sanitize_project_name(None) == "unnamed_project"
        assert sanitize_project_name("$$$") == "unnamed_project"


@pytest.mark.unit
class TestHostPathEncoding:
    @pytest.mark.parametrize(
        "path",
        ["/data/web1", "/", "/srv/with space/and'quote", "/opt/ümlaut/数据", "/a/b/c/" * 20],
    )
    def test_round_trip(self, path):
        assert decode_host_path(encode_host_path(path)) == path

    def test_encoded_form_is_filename_safe(self):
        encoded = encode_host_path("/var/lib/app/../x")
        assert "/" not in encoded
        assert "=" not in encoded

    def test_distinct_paths_stay_distinct(self):
        assert encode_host_path("/data/a_b") != encode_host_path("/data/a/b")

    def test_decode_rejects_garbage(self):
        with pytest.raises(ValueError):
            decode_host_path("a")


@pytest.mark.unit
class TestPayloadNames:
    def test_volume_payload_name(self):
        assert volume_payload_name("shop_db") == "volume_shop_db.tar.gz"

    def test_bind_payload_name_round_trip(self):
        name = bind_payload_name("/data/web1")
        assert name.startswith("bind_") and name.endswith(".tar.gz")
        assert host_path_from_payload_name(name) == "/data/web1"

    def test_non_bind_name_returns_none(self):
        assert host_path_from_payload_name("volume_db.tar.gz") is None
        assert host_path_from_payload_name("manifest.json") is None


@pytest.mark.unit
class TestArchiveFilename:
    def test_without_suffix(self):
        assert (
            archive_filename("docker_project_backup", "20240517_143000", "web1", ".tar.gz")
            == "docker_project_backup_20240517_143000_web1.tar.gz"
        )

    def test_with_suffix(self):
        assert (
            archive_filename("p", "20240517_143000", "web1", ".tar.gz", suffix=2)
            == "p_20240517_143000_web1_2.tar.gz"
        )
