from __future__ import annotations

import struct
from typing import BinaryIO, Optional

from relic.core.lazyio import read_chunks

from relic.bigfile.errors import BigFileDecodeError, BigFileIOError

_UINT32 = struct.Struct("<I")
_UINT64 = struct.Struct("<Q")


def _safe_get_parent_name(parent: BinaryIO, default: Optional[str] = None):
    name = getattr(parent, "name", None)
    # Streams opened from a file descriptor report an int
    return name if isinstance(name, str) else default


def _safe_tell(stream: BinaryIO) -> Optional[int]:
    try:
        if stream.seekable():
            return stream.tell()
    except (OSError, ValueError, AttributeError):
        pass
    return None


class BigFileReader:
    """Sequential little-endian reader used by the .bfn/.bfdb decoders.

    Every failure is raised as a BigFileIOError (or BigFileDecodeError) carrying
    the stream's name and the offset at which the failing field began.
    The offset is tracked by counting consumed bytes, so it is also available for
    non-seekable streams (relative to where reading began).
    """

    def __init__(self, stream: BinaryIO, name: Optional[str] = None):
        self._stream = stream
        self.name = name or _safe_get_parent_name(stream)
        start = _safe_tell(stream)
        self._pos = start if start is not None else 0

    @property
    def pos(self) -> int:
        return self._pos

    def read_exact(self, size: int) -> bytes:
        offset = self._pos
        try:
            # length fields are untrusted; only allocate what the stream actually yields
            buffer = b"".join(read_chunks(self._stream, size=size))
        except OSError as e:
            raise BigFileIOError(e, self.name, offset) from e
        if len(buffer) != size:
            raise BigFileDecodeError(
                f"unexpected end of stream; expected '{size}' bytes, got '{len(buffer)}'",
                self.name,
                offset,
            )
        self._pos += size
        return buffer

    def read_u32(self) -> int:
        return _UINT32.unpack(self.read_exact(_UINT32.size))[0]

    def read_u64(self) -> int:
        return _UINT64.unpack(self.read_exact(_UINT64.size))[0]

    def read_string(self, size: int, encoding: str = "utf-8") -> str:
        offset = self._pos
        buffer = self.read_exact(size)
        try:
            return buffer.decode(encoding)
        except UnicodeDecodeError as e:
            raise BigFileDecodeError(
                f"read string was not {encoding.upper()} ({e.reason})",
                self.name,
                offset,
            ) from e

    def read_sized_string(self) -> str:
        """Read a `u32` length followed by that many bytes of UTF-8."""
        size = self.read_u32()
        return self.read_string(size)


__all__ = ["BigFileReader"]
