"""Definitions expressed concretely in bigfile."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

# File extensions of the three parts of an archive
BFN_EXT = ".bfn"  # tree index (names)
BFDB_EXT = ".bfdb"  # hash table (hash -> offset, size)
BFDATA_EXT = ".bfdata"  # data blob

# Separator used in logical paths; also the separator the producer hashes with
ROOT_SEP = "/"

FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3


@dataclass(frozen=True)
class Entry:
    """Byte range of one archived file within the data blob."""

    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(frozen=True)
class RawHashEntry:
    """A (hash, offset, size) triple, as stored in the hash table."""

    hash: int
    offset: int
    size: int

    def to_entry(self) -> Entry:
        return Entry(self.offset, self.size)


@dataclass
class ExtractResult:
    """Outcome of extracting a single logical path.

    Args:
        path (str): The logical path that was requested.
        destination (Optional[str]): Where the file was (or would have been) written.
        error (Optional[Exception]): The failure, None on success.
    """

    path: str
    destination: Optional[str] = None
    error: Optional[Union[str, Exception]] = None

    @property
    def has_errors(self) -> bool:
        return self.error is not None

    @classmethod
    def create_error(
        cls, path: str, error: Union[str, Exception], destination: Optional[str] = None
    ) -> ExtractResult:
        return cls(path=path, destination=destination, error=error)


@dataclass
class ExtractionStats:
    """Statistics for an extraction operation."""

    total_files: int = 0
    extracted_files: int = 0
    failed_files: int = 0
    extracted_bytes: int = 0
    failed_paths: List[str] = field(default_factory=list)


__all__ = [
    "BFN_EXT",
    "BFDB_EXT",
    "BFDATA_EXT",
    "ROOT_SEP",
    "FNV64_OFFSET_BASIS",
    "FNV64_PRIME",
    "Entry",
    "RawHashEntry",
    "ExtractResult",
    "ExtractionStats",
]
