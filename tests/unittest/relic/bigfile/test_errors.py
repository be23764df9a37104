from typing import Optional

import pytest
from relic.core.errors import MismatchError, RelicToolError

from relic.bigfile.errors import (
    BigFileDecodeError,
    BigFileError,
    BigFileIOError,
    EntryNotFoundError,
    HashCollisionError,
    HashEntryNotFoundError,
    PathHashMismatchError,
    TruncatedReadError,
)


def test_hierarchy():
    assert issubclass(BigFileError, RelicToolError)
    assert issubclass(BigFileDecodeError, BigFileIOError)
    assert issubclass(TruncatedReadError, BigFileIOError)
    assert issubclass(EntryNotFoundError, KeyError)
    assert issubclass(PathHashMismatchError, MismatchError)


@pytest.mark.parametrize("file", [None, "archive.bfdata"])
@pytest.mark.parametrize("offset", [None, 12])
class TestBigFileIOError:
    def test_str(self, file: Optional[str], offset: Optional[int]):
        err = BigFileIOError(OSError("boom"), file, offset)
        result = str(err)
        assert "boom" in result
        if file is not None:
            assert file in result
        if offset is not None:
            assert "offset 12" in result

    def test_attrs(self, file: Optional[str], offset: Optional[int]):
        inner = OSError("boom")
        err = BigFileIOError(inner, file, offset)
        assert err.err is inner
        assert err.file == file
        assert err.offset == offset


def test_truncated_read_error():
    err = TruncatedReadError(8, 3, "archive.bfdata", 4)
    assert err.expected == 8
    assert err.received == 3
    assert err.offset == 4
    assert "'8'" in str(err) and "'3'" in str(err)


@pytest.mark.parametrize("path", [None, "root/foo.bin"])
def test_hash_entry_not_found_error(path: Optional[str]):
    err = HashEntryNotFoundError(0xDEADBEEF, path)
    result = str(err)
    assert "0x00000000DEADBEEF" in result
    if path is not None:
        assert path in result


def test_entry_not_found_error():
    err = EntryNotFoundError("root/missing.bin")
    assert err.path == "root/missing.bin"
    assert "root/missing.bin" in str(err)


def test_hash_collision_error():
    err = HashCollisionError(1, 0, 16)
    result = str(err)
    assert "`0`" in result and "`16`" in result


@pytest.mark.parametrize("received", [None, 1])
@pytest.mark.parametrize("expected", [None, 2])
def test_path_hash_mismatch_error(received: Optional[int], expected: Optional[int]):
    # Ensure init does not raise error
    _ = PathHashMismatchError("Path Hash", received, expected)
