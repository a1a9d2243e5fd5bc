"""Unit tests for ArchiveStore."""

from pathlib import Path

import pytest

from dmr.cores.archive_store import ArchiveStore


def touch(path, content=b"data"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.mark.unit
class TestArchiveStore:
    def test_list_filters_and_sorts(self, config):
        base = config.backup_base_dir
        touch(base / "docker_project_backup_20240517_143000_web1.tar.gz")
        touch(base / "docker_project_backup_20240101_000000_shop.tar.gz")
        touch(base / "other_20240101_000000_x.tar.gz")
        touch(base / "docker_project_backup_20240101_000000_x.zip")
        touch(base / "docker_run_commands.txt")

        names = [a.name for a in ArchiveStore(config).list_archives()]

        assert names == [
            "docker_project_backup_20240101_000000_shop.tar.gz",
            "docker_project_backup_20240517_143000_web1.tar.gz",
        ]

    def test_list_without_base_dir(self, config):
        assert ArchiveStore(config).list_archives() == []

    def test_resolve_bare_name_in_base_dir(self, config):
        store = ArchiveStore(config)
        assert store.resolve("a.tar.gz") == config.backup_base_dir / "a.tar.gz"

    def test_resolve_absolute_path(self, config, tmp_path):
        path = tmp_path / "elsewhere.tar.gz"
        assert ArchiveStore(config).resolve(str(path)) == path

    def test_delete(self, config):
        archive = touch(config.backup_base_dir / "docker_project_backup_20240517_143000_web1.tar.gz")
        ArchiveStore(config).delete(archive.name)
        assert not archive.exists()

    def test_delete_missing(self, config):
        with pytest.raises(FileNotFoundError):
            ArchiveStore(config).delete("docker_project_backup_nope.tar.gz")

    def test_delete_all_removes_journal(self, config):
        base = config.backup_base_dir
        touch(base / "docker_project_backup_20240517_143000_web1.tar.gz")
        touch(base / "docker_project_backup_20240517_143000_web1_1.tar.gz")
        keep = touch(base / "notes.txt")
        touch(config.journal_path, b"01 web1 standalone docker run nginx\n")

        assert ArchiveStore(config).delete_all() == 2
        assert not config.journal_path.exists()
        assert keep.exists()

    def test_delete_all_keeps_journal_on_request(self, config):
        touch(config.journal_path)
        assert ArchiveStore(config).delete_all(include_journal=False) == 0
        assert config.journal_path.exists()

    def test_delete_all_skips_undeletable_archive(self, config, monkeypatch):
        base = config.backup_base_dir
        locked = touch(base / "docker_project_backup_20240517_143000_shop.tar.gz")
        other = touch(base / "docker_project_backup_20240517_143000_web1.tar.gz")
        touch(config.journal_path)
        real_unlink = Path.unlink

        def unlink(path, *args, **kwargs):
            if path == locked:
                raise PermissionError(13, "Permission denied", str(path))
            return real_unlink(path, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", unlink)

        assert ArchiveStore(config).delete_all() == 1
        assert locked.exists()
        assert not other.exists()
        assert not config.journal_path.exists()

    def test_tail_log(self, config):
        touch(config.log_file_path, "".join(f"line {i}\n" for i in range(10)).encode())
        assert ArchiveStore(config).tail_log(3) == ["line 7", "line 8", "line 9"]

    def test_tail_log_missing(self, config):
        assert ArchiveStore(config).tail_log() == []
