import pytest

from relic.bigfile.definitions import Entry, ExtractResult, RawHashEntry


@pytest.mark.parametrize(["offset", "size"], [(0, 0), (4, 8), (2**63, 2**63 - 1)])
def test_entry_end(offset: int, size: int):
    assert Entry(offset, size).end == offset + size


def test_raw_hash_entry_to_entry():
    assert RawHashEntry(0xABC, 16, 32).to_entry() == Entry(16, 32)


def test_entry_frozen():
    entry = Entry(0, 4)
    with pytest.raises(AttributeError):
        entry.size = 8  # type: ignore


def test_extract_result():
    assert not ExtractResult("root/foo.bin", "foo.bin").has_errors
    failed = ExtractResult.create_error("root/foo.bin", "boom")
    assert failed.has_errors
    assert failed.destination is None
