"""Unit tests for the tarball primitives."""

import tarfile

import pytest

from dmr.helpers.archive import extract_archive, pack_directory, pack_files, unpack_stripped


@pytest.fixture
def source_dir(tmp_path):
    src = tmp_path / "_data"
    (src / "sub").mkdir(parents=True)
    (src / "index.html").write_text("<h1>hi</h1>")
    (src / "sub" / "a.txt").write_text("a")
    return src


@pytest.mark.unit
class TestPackDirectory:
    def test_single_top_level_member(self, source_dir, tmp_path):
        target = tmp_path / "payload.tar.gz"
        size = pack_directory(source_dir, target)

        assert size == target.stat().st_size
        with tarfile.open(target) as tar:
            tops = {name.split("/")[0] for name in tar.getnames()}
        assert tops == {"_data"}

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(NotADirectoryError):
            pack_directory(tmp_path / "missing", tmp_path / "x.tar.gz")


@pytest.mark.unit
class TestUnpackStripped:
    def test_content_lands_in_destination(self, source_dir, tmp_path):
        payload = tmp_path / "payload.tar.gz"
        pack_directory(source_dir, payload)

        dest = tmp_path / "restored"
        unpack_stripped(payload, dest)

        assert (dest / "index.html").read_text() == "<h1>hi</h1>"
        assert (dest / "sub" / "a.txt").read_text() == "a"
        assert not (dest / "_data").exists()

    def test_unpacking_twice_gives_same_tree(self, source_dir, tmp_path):
        payload = tmp_path / "payload.tar.gz"
        pack_directory(source_dir, payload)
        dest = tmp_path / "restored"

        unpack_stripped(payload, dest)
        unpack_stripped(payload, dest)

        assert sorted(p.relative_to(dest).as_posix() for p in dest.rglob("*")) == [
            "index.html", "sub", "sub/a.txt"
        ]

    def test_unsafe_members_skipped(self, tmp_path):
        evil = tmp_path / "evil.tar.gz"
        victim = tmp_path / "victim.txt"
        payload_file = tmp_path / "f.txt"
        payload_file.write_text("x")
        with tarfile.open(evil, "w:gz") as tar:
            tar.add(payload_file, arcname="top/../../victim.txt")
            tar.add(payload_file, arcname="top/ok.txt")

        dest = tmp_path / "out" / "dest"
        unpack_stripped(evil, dest)

        assert (dest / "ok.txt").exists()
        assert not victim.exists()


@pytest.mark.unit
class TestPackFiles:
    def test_files_are_top_level_and_no_partial_left(self, tmp_path):
        a = tmp_path / "manifest.json"
        a.write_text("{}")
        b = tmp_path / "volume_x.tar.gz"
        b.write_bytes(b"data")
        target = tmp_path / "out" / "archive.tar.gz"
        target.parent.mkdir()

        pack_files([a, b], target)

        with tarfile.open(target) as tar:
            assert sorted(tar.getnames()) == ["manifest.json", "volume_x.tar.gz"]
        assert list(target.parent.iterdir()) == [target]

    def test_failure_leaves_no_partial(self, tmp_path):
        target = tmp_path / "archive.tar.gz"
        with pytest.raises(OSError):
            pack_files([tmp_path / "does-not-exist"], target)
        assert list(tmp_path.iterdir()) == []

    def test_extract_archive_roundtrip(self, tmp_path):
        a = tmp_path / "manifest.json"
        a.write_text('{"x": 1}')
        target = tmp_path / "archive.tar.gz"
        pack_files([a], target)

        out = tmp_path / "out"
        extract_archive(target, out)
        assert (out / "manifest.json").read_text() == '{"x": 1}'

    def test_corrupt_stream_raises_read_error(self, tmp_path):
        target = tmp_path / "corrupt.tar.gz"
        # gzip header, then a deflate block of the reserved type
        target.write_bytes(b"\x1f\x8b\x08\x00\x00\x00\x00\x00\x00\xff\x07" + b"\x00" * 64)

        with pytest.raises(tarfile.ReadError):
            extract_archive(target, tmp_path / "out")
