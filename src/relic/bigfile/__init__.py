"""
Reader and extractor for BigFile archives (.bfn tree index, .bfdb hash table, .bfdata blob)
"""
from relic.bigfile.archive import (
    BigFile,
    find_siblings,
    load_bigfile,
    load_bigfile_from_streams,
)
from relic.bigfile.datasource import BufferDataSource, DataSource, FileDataSource
from relic.bigfile.definitions import Entry, ExtractResult, RawHashEntry
from relic.bigfile.errors import (
    BigFileDecodeError,
    BigFileError,
    BigFileIOError,
    EntryNotFoundError,
    HashCollisionError,
    HashEntryNotFoundError,
    TruncatedReadError,
)
from relic.bigfile.hashtools import fnv1a64, hash_path, normalize_path

__version__ = "1.0.0"

__all__ = [
    "BigFile",
    "find_siblings",
    "load_bigfile",
    "load_bigfile_from_streams",
    "DataSource",
    "FileDataSource",
    "BufferDataSource",
    "Entry",
    "RawHashEntry",
    "ExtractResult",
    "BigFileError",
    "BigFileIOError",
    "BigFileDecodeError",
    "TruncatedReadError",
    "HashEntryNotFoundError",
    "EntryNotFoundError",
    "HashCollisionError",
    "fnv1a64",
    "hash_path",
    "normalize_path",
]
