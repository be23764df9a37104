"""Errors raised while reading or extracting a BigFile archive."""

from __future__ import annotations

from typing import Optional, Union

from relic.core.errors import MismatchError, RelicToolError


class BigFileError(RelicToolError):
    """Base class for all errors raised by relic.bigfile."""


class BigFileIOError(BigFileError):
    """Reading, writing, opening or seeking a file/stream failed.

    Context is attached once, where the failure happens;
    `file` and `offset` are None when they could not be determined.

    Args:
        err (Union[Exception, str]): The underlying error, or a message describing the failure.
        file (Optional[str]): The file (or stream name) being read/written.
        offset (Optional[int]): The byte offset at which the failure occurred.
    """

    def __init__(
        self,
        err: Union[Exception, str],
        file: Optional[str] = None,
        offset: Optional[int] = None,
    ):
        super().__init__(err, file, offset)
        self.err = err
        self.file = file
        self.offset = offset

    def __str__(self) -> str:
        parts = []
        if self.file is not None:
            parts.append(str(self.file))
        if self.offset is not None:
            parts.append(f"at offset {self.offset}")
        location = " ".join(parts)
        if len(location) == 0:
            return str(self.err)
        return f"{location}: {self.err}"


class BigFileDecodeError(BigFileIOError):
    """A length-prefixed field was truncated or a name was not valid UTF-8."""


class TruncatedReadError(BigFileIOError):
    """Fewer bytes were available than an entry (or field) requires."""

    def __init__(
        self,
        expected: int,
        received: int,
        file: Optional[str] = None,
        offset: Optional[int] = None,
    ):
        super().__init__(
            f"Expected to read '{expected}' bytes, but only '{received}' were available",
            file,
            offset,
        )
        self.expected = expected
        self.received = received


class HashEntryNotFoundError(BigFileError):
    """A path from the tree index has no matching entry in the hash table.

    This means the .bfn and .bfdb files do not belong together (or one is corrupt).
    """

    def __init__(self, hash: int, path: Optional[str] = None):
        super().__init__(hash, path)
        self.hash = hash
        self.path = path

    def __str__(self) -> str:
        msg = f"Hash entry `0x{self.hash:016X}` was not found in the hash table"
        if self.path is not None:
            msg += f" (required by `{self.path}`)"
        return msg


class EntryNotFoundError(BigFileError, KeyError):
    """The requested path is not part of the archive."""

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"Couldn't find the entry `{self.path}`"


class HashCollisionError(BigFileError):
    """The hash table lists the same hash more than once."""

    def __init__(self, hash: int, first_offset: int, second_offset: int):
        super().__init__(hash, first_offset, second_offset)
        self.hash = hash
        self.first_offset = first_offset
        self.second_offset = second_offset

    def __str__(self) -> str:
        return (
            f"Hash `0x{self.hash:016X}` appears more than once in the hash table"
            f" (offsets `{self.first_offset}` and `{self.second_offset}`)"
        )


class PathHashMismatchError(MismatchError):
    """A logical path does not hash to the expected value."""


__all__ = [
    "BigFileError",
    "BigFileIOError",
    "BigFileDecodeError",
    "TruncatedReadError",
    "HashEntryNotFoundError",
    "EntryNotFoundError",
    "HashCollisionError",
    "PathHashMismatchError",
]
