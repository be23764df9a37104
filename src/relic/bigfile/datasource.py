"""Random access to the data blob (.bfdata).

Reads never share a cursor: FileDataSource opens the file for each read, and
BufferDataSource slices a fresh memoryview over one immutable buffer. An
assembled BigFile can therefore be read from several threads without locking.
"""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional, Union

from relic.core.lazyio import read_chunks

from relic.bigfile.errors import BigFileIOError, TruncatedReadError
from relic.bigfile.reader import _safe_get_parent_name

_KiB = 1024


def _validate_range(offset: int, size: int, file: Optional[str]) -> None:
    if offset < 0 or size < 0:
        raise BigFileIOError(
            f"Invalid range; offset='{offset}', size='{size}'", file, offset
        )


class DataSource(ABC):
    """Where the bytes of an archive's data blob live."""

    @property
    def name(self) -> Optional[str]:
        return None

    @property
    @abstractmethod
    def size(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def read(self, offset: int, size: int) -> bytes:
        """Read exactly `size` bytes starting at `offset`.

        :raises TruncatedReadError: The blob ends before `offset + size`.
        :raises BigFileIOError: The blob could not be opened/seeked/read.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> DataSource:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FileDataSource(DataSource):
    """Reads the data blob from disk on demand."""

    def __init__(self, path: Union[str, os.PathLike], *, chunk_size: int = 64 * _KiB):
        self._path = os.fspath(path)
        self._chunk_size = chunk_size

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._path!r})"

    @property
    def name(self) -> str:
        return self._path

    @property
    def path(self) -> str:
        return self._path

    @property
    def size(self) -> int:
        try:
            return os.path.getsize(self._path)
        except OSError as e:
            raise BigFileIOError(e, self._path) from e

    def read(self, offset: int, size: int) -> bytes:
        _validate_range(offset, size, self._path)
        if offset > sys.maxsize and size > 0:
            # beyond any seekable position
            raise TruncatedReadError(size, 0, self._path, offset)
        try:
            with open(self._path, "rb") as handle:
                buffer = b"".join(
                    read_chunks(handle, offset, size, self._chunk_size)
                )
        except (OSError, ValueError, OverflowError) as e:
            raise BigFileIOError(e, self._path, offset) from e

        if len(buffer) != size:
            raise TruncatedReadError(size, len(buffer), self._path, offset)
        return buffer


class BufferDataSource(DataSource):
    """Serves the data blob from memory; the whole blob is loaded up front."""

    def __init__(self, buffer: Union[bytes, bytearray], name: Optional[str] = None):
        # bytes are immutable; a bytearray is copied so no caller can mutate it
        self._buffer: Optional[bytes] = bytes(buffer)
        self._name = name

    def __repr__(self) -> str:
        size = len(self._buffer) if self._buffer is not None else "closed"
        return f"{self.__class__.__name__}(name={self._name!r}, size={size})"

    @classmethod
    def from_stream(cls, stream: BinaryIO, name: Optional[str] = None) -> BufferDataSource:
        name = name or _safe_get_parent_name(stream)
        try:
            buffer = stream.read()
        except OSError as e:
            raise BigFileIOError(e, name) from e
        return cls(buffer, name=name)

    @classmethod
    def from_path(cls, path: Union[str, os.PathLike]) -> BufferDataSource:
        path = os.fspath(path)
        try:
            with open(path, "rb") as handle:
                return cls.from_stream(handle, name=path)
        except OSError as e:
            raise BigFileIOError(e, path) from e

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def _data(self) -> bytes:
        if self._buffer is None:
            raise BigFileIOError("Data source is closed", self._name)
        return self._buffer

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, offset: int, size: int) -> bytes:
        _validate_range(offset, size, self._name)
        data = self._data
        available = max(len(data) - offset, 0)
        if size > available:
            raise TruncatedReadError(size, available, self._name, offset)
        with memoryview(data) as view:
            return bytes(view[offset : offset + size])

    def close(self) -> None:
        self._buffer = None


__all__ = ["DataSource", "FileDataSource", "BufferDataSource"]
