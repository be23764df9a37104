import logging

import fs
import fs.opener.errors
import pytest
from fs import errors
from fs.copy import copy_fs
from fs.memoryfs import MemoryFS
from fs.opener import registry
from relic.core.errors import RelicToolError

from relic.bigfile import BigFile
from relic.bigfile.filesystem import BIGFILE_NAMESPACE, BigFileFS
from relic.bigfile.hashtools import hash_path
from relic.bigfile.opener import BigFileOpener
from tests.dummy_bigfile import (
    DummyBigFile,
    DummyDir,
    random_root,
    sample_root,
    write_hash_table,
)
from tests.util import TempBigFileHandle


@pytest.fixture
def sample_fs() -> BigFileFS:
    archive = DummyBigFile.build(sample_root())
    with BigFileFS(BigFile.from_streams(*archive.streams())) as bigfile_fs:
        yield bigfile_fs


class TestBigFileFS:
    def test_listdir(self, sample_fs: BigFileFS):
        assert sample_fs.listdir("/") == ["root"]
        assert sorted(sample_fs.listdir("/root")) == ["foo.bin", "sub"]
        assert sample_fs.listdir("/root/sub") == ["bar.bin"]

    def test_read(self, sample_fs: BigFileFS):
        assert sample_fs.readbytes("/root/foo.bin") == b"\x00\x01\x02\x03"
        with sample_fs.openbin("root/sub/bar.bin") as h:
            assert h.read() == bytes(range(4, 12))

    def test_getinfo(self, sample_fs: BigFileFS):
        info = sample_fs.getinfo("/root/sub/bar.bin", ["details", BIGFILE_NAMESPACE])
        assert info.name == "bar.bin"
        assert info.is_file
        assert info.size == 8
        raw = info.raw[BIGFILE_NAMESPACE]
        assert raw["path"] == "root/sub/bar.bin"
        assert raw["offset"] == 4
        assert raw["hash"] == hash_path("root/sub/bar.bin")

        assert sample_fs.getinfo("/root/sub").is_dir
        assert sample_fs.getsize("/root/foo.bin") == 4
        assert sample_fs.getmeta()["read_only"]

    def test_not_found(self, sample_fs: BigFileFS):
        with pytest.raises(errors.ResourceNotFound):
            sample_fs.getinfo("/root/missing.bin")
        with pytest.raises(errors.ResourceNotFound):
            sample_fs.listdir("/root/foo.bin/child")

    def test_expected_types(self, sample_fs: BigFileFS):
        with pytest.raises(errors.DirectoryExpected):
            sample_fs.listdir("/root/foo.bin")
        with pytest.raises(errors.FileExpected):
            sample_fs.openbin("/root/sub")

    @pytest.mark.parametrize("mode", ["w", "a", "r+", "x"])
    def test_read_only(self, sample_fs: BigFileFS, mode: str):
        with pytest.raises(errors.ResourceReadOnly):
            sample_fs.openbin("/root/foo.bin", mode)

    def test_read_only_ops(self, sample_fs: BigFileFS):
        with pytest.raises(errors.ResourceReadOnly):
            sample_fs.makedir("/root/new")
        with pytest.raises(errors.ResourceReadOnly):
            sample_fs.remove("/root/foo.bin")
        with pytest.raises(errors.ResourceReadOnly):
            sample_fs.removedir("/root/sub")
        with pytest.raises(errors.ResourceReadOnly):
            sample_fs.setinfo("/root/foo.bin", {})

    def test_copy(self, sample_fs: BigFileFS):
        with MemoryFS() as mem:
            copy_fs(sample_fs, mem)
            assert mem.readbytes("/root/foo.bin") == b"\x00\x01\x02\x03"
            assert mem.readbytes("/root/sub/bar.bin") == bytes(range(4, 12))

    def test_read_failure(self):
        archive = DummyBigFile.build(sample_root())
        bfn, bfdb, bfdata = archive.streams()
        bfdata.truncate(4)
        with BigFileFS(BigFile.from_streams(bfn, bfdb, bfdata)) as bigfile_fs:
            assert bigfile_fs.readbytes("/root/foo.bin") == b"\x00\x01\x02\x03"
            with pytest.raises(errors.OperationFailed):
                bigfile_fs.readbytes("/root/sub/bar.bin")

    def test_read_offset_beyond_any_position(self):
        bfn, bfdb, bfdata = DummyBigFile.build(sample_root()).streams()
        bfdb.seek(0)
        bfdb.truncate()
        write_hash_table(
            bfdb,
            [
                (hash_path("root/foo.bin"), 2**63, 4),
                (hash_path("root/sub/bar.bin"), 4, 8),
            ],
        )
        bfdb.seek(0)
        with BigFileFS(BigFile.from_streams(bfn, bfdb, bfdata)) as bigfile_fs:
            with pytest.raises(errors.OperationFailed):
                bigfile_fs.readbytes("/root/foo.bin")
            assert bigfile_fs.readbytes("/root/sub/bar.bin") == bytes(range(4, 12))

    def test_hides_conflicts(self, caplog: pytest.LogCaptureFixture):
        root = DummyDir("root", files={"a": b"file"})
        root.add_dir("a").files["b.bin"] = b"nested"
        archive = DummyBigFile.build(root)
        with caplog.at_level(logging.WARNING):
            bigfile_fs = BigFileFS(BigFile.from_streams(*archive.streams()))
        with bigfile_fs:
            assert bigfile_fs.listdir("/root") == ["a"]
            assert bigfile_fs.isfile("/root/a")
        assert "root/a/b.bin" in caplog.text

    def test_close(self):
        archive = DummyBigFile.build(sample_root())
        bigfile = BigFile.from_streams(*archive.streams())
        BigFileFS(bigfile, close_bigfile=False).close()
        assert bigfile.get("root/foo.bin") == b"\x00\x01\x02\x03"
        BigFileFS(bigfile).close()
        with pytest.raises(RelicToolError):
            bigfile.get("root/foo.bin")

    @pytest.mark.parametrize("seed", [8675309, 20040920, 20250318, 500500])
    def test_walk_random(self, seed: int):
        archive = DummyBigFile.build(random_root(seed))
        with BigFileFS(BigFile.from_streams(*archive.streams())) as bigfile_fs:
            found = {
                path.lstrip("/"): bigfile_fs.readbytes(path)
                for path in bigfile_fs.walk.files()
            }
        assert found == archive.files


class TestBigFileOpener:
    @pytest.fixture(autouse=True)
    def install(self):
        registry.install(BigFileOpener)

    def test_open_fs_no_create(self):
        with pytest.raises(RelicToolError):
            fs.open_fs("", create=True, default_protocol="bigfile")

    def test_open_fs_no_empty_fsurl(self):
        with pytest.raises(fs.opener.errors.OpenerError):
            fs.open_fs("", create=False, default_protocol="bigfile")

    @pytest.mark.parametrize("params", ["", "?in_memory=1"])
    def test_open(self, params: str):
        archive = DummyBigFile.build(sample_root())
        with TempBigFileHandle(archive) as h:
            with fs.open_fs(f"bigfile://{h.bfn}{params}") as bigfile_fs:
                assert isinstance(bigfile_fs, BigFileFS)
                assert bigfile_fs.readbytes("/root/foo.bin") == b"\x00\x01\x02\x03"

    def test_default_protocol(self):
        archive = DummyBigFile.build(sample_root())
        with TempBigFileHandle(archive) as h:
            with fs.open_fs(h.bfn, default_protocol="bigfile") as bigfile_fs:
                assert bigfile_fs.listdir("/") == ["root"]
