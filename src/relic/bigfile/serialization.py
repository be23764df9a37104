"""Decoders for the tree index (.bfn) and hash table (.bfdb) files.

Tree index; a single directory record (the root), all integers little-endian::

    name_len:u32, name:bytes[name_len],
    file_count:u32, (name_len:u32, name:bytes[name_len]) * file_count,
    subdir_count:u32, (directory record) * subdir_count

Hash table::

    entry_count:u32, (size:u64, offset:u64, hash:u64) * entry_count

Names are UTF-8.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Dict, List, Optional, Union

from relic.core.logmsg import BraceMessage

from relic.bigfile.definitions import ROOT_SEP, RawHashEntry
from relic.bigfile.errors import HashCollisionError
from relic.bigfile.reader import BigFileReader

logger = logging.getLogger(__name__)

_Readable = Union[BinaryIO, BigFileReader]


def _as_reader(stream: _Readable) -> BigFileReader:
    if isinstance(stream, BigFileReader):
        return stream
    return BigFileReader(stream)


@dataclass
class _DirFrame:
    path: str
    remaining_subdirs: int


class TreeIndexSerializer:
    @staticmethod
    def _read_dir_header(reader: BigFileReader, parent: Optional[str]) -> str:
        name = reader.read_sized_string()
        return name if parent is None else f"{parent}{ROOT_SEP}{name}"

    @staticmethod
    def _read_files(reader: BigFileReader, dir_path: str, out: List[str]) -> None:
        file_count = reader.read_u32()
        for _ in range(file_count):
            file_name = reader.read_sized_string()
            out.append(f"{dir_path}{ROOT_SEP}{file_name}")

    @classmethod
    def _read_dir(
        cls, reader: BigFileReader, parent: Optional[str], out: List[str]
    ) -> _DirFrame:
        dir_path = cls._read_dir_header(reader, parent)
        cls._read_files(reader, dir_path, out)
        subdir_count = reader.read_u32()
        return _DirFrame(dir_path, subdir_count)

    @classmethod
    def read(cls, stream: _Readable) -> List[str]:
        """Decode a tree index into a flat list of logical paths.

        Sub-directory records are nested inline, so they are walked depth-first
        with an explicit stack; arbitrarily deep trees do not grow the call stack.

        :returns: Every file's logical path, rooted at the root directory's name.
            No ordering is implied and duplicates are kept.
        :raises BigFileDecodeError: A field is truncated or a name is not UTF-8.
        """
        reader = _as_reader(stream)
        files: List[str] = []
        stack = [cls._read_dir(reader, None, files)]
        while stack:
            frame = stack[-1]
            if frame.remaining_subdirs == 0:
                stack.pop()
                continue
            frame.remaining_subdirs -= 1
            stack.append(cls._read_dir(reader, frame.path, files))

        logger.debug(
            BraceMessage(
                "Read {0} file names from tree index `{1}`", len(files), reader.name
            )
        )
        return files


class HashTableSerializer:
    @classmethod
    def read(cls, stream: _Readable, strict: bool = False) -> Dict[int, RawHashEntry]:
        """Decode a hash table into a mapping of path hash to its entry.

        :param strict: Raise HashCollisionError when a hash appears twice;
            otherwise the last entry wins and a warning is logged.
        :raises BigFileDecodeError: The table is truncated.
        """
        reader = _as_reader(stream)
        count = reader.read_u32()
        entries: Dict[int, RawHashEntry] = {}
        for _ in range(count):
            size = reader.read_u64()
            offset = reader.read_u64()
            hash = reader.read_u64()

            previous = entries.get(hash)
            if previous is not None:
                if strict:
                    raise HashCollisionError(hash, previous.offset, offset)
                logger.warning(
                    BraceMessage(
                        "Hash `0x{0:016X}` appears more than once in `{1}`; using offset `{2}`",
                        hash,
                        reader.name,
                        offset,
                    )
                )

            entries[hash] = RawHashEntry(hash, offset, size)

        logger.debug(
            BraceMessage(
                "Read {0} hash entries from hash table `{1}`", len(entries), reader.name
            )
        )
        return entries


def read_tree_index(stream: BinaryIO) -> List[str]:
    return TreeIndexSerializer.read(stream)


def read_hash_table(stream: BinaryIO, strict: bool = False) -> Dict[int, RawHashEntry]:
    return HashTableSerializer.read(stream, strict=strict)


__all__ = [
    "TreeIndexSerializer",
    "HashTableSerializer",
    "read_tree_index",
    "read_hash_table",
]
