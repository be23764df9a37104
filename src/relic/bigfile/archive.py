from __future__ import annotations

import logging
import os
from io import BytesIO
from types import MappingProxyType
from typing import (
    BinaryIO,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    Union,
)

from fs.base import FS
from relic.core.logmsg import BraceMessage

from relic.bigfile import extract
from relic.bigfile.datasource import BufferDataSource, DataSource, FileDataSource
from relic.bigfile.definitions import (
    BFDATA_EXT,
    BFDB_EXT,
    Entry,
    ExtractResult,
    RawHashEntry,
)
from relic.bigfile.errors import (
    BigFileIOError,
    EntryNotFoundError,
    HashEntryNotFoundError,
)
from relic.bigfile.hashtools import path_hasher
from relic.bigfile.serialization import HashTableSerializer, TreeIndexSerializer

logger = logging.getLogger(__name__)

_PathLike = Union[str, os.PathLike]
_Output = Union[_PathLike, FS]


def find_siblings(bfn_path: _PathLike) -> Tuple[str, str]:
    """Locate the hash table and data blob stored next to a tree index.

    The three parts share a stem; `foo.bfn` pairs with `foo.bfdb` and `foo.bfdata`.

    :raises BigFileIOError: A sibling does not exist.
    """
    stem, _ = os.path.splitext(os.fspath(bfn_path))
    siblings = []
    for ext in (BFDB_EXT, BFDATA_EXT):
        path = stem + ext
        if not os.path.isfile(path):
            raise BigFileIOError(
                FileNotFoundError(f"Missing `{ext}` file next to the tree index"),
                path,
            )
        siblings.append(path)
    bfdb_path, bfdata_path = siblings
    return bfdb_path, bfdata_path


def _open_for_read(path: str) -> BinaryIO:
    try:
        return open(path, "rb")
    except OSError as e:
        raise BigFileIOError(e, path) from e


class BigFile:
    """An assembled archive; maps logical paths to byte ranges of its data blob.

    Instances are read-only after assembly. Use one of the constructors
    (:meth:`from_paths`, :meth:`from_streams`, :meth:`open`) rather than `__init__`.
    """

    def __init__(self, entries: Dict[str, Entry], data_source: DataSource):
        self._entries = entries
        self._data_source = data_source

    def __repr__(self) -> str:
        return f"<{self.__class__.__qualname__} entries={len(self._entries)} data={self._data_source!r}>"

    # Construction

    @classmethod
    def assemble(
        cls,
        paths: Iterable[str],
        hash_table: Mapping[int, RawHashEntry],
        data_source: DataSource,
    ) -> BigFile:
        """Resolve every logical path against the hash table.

        :raises HashEntryNotFoundError: A path's hash is not in the hash table;
            no archive is produced.
        """
        entries: Dict[str, Entry] = {}
        for path in paths:
            hash = path_hasher.hash(path)
            raw = hash_table.get(hash)
            if raw is None:
                raise HashEntryNotFoundError(hash, path)
            entries[path] = raw.to_entry()

        logger.debug(BraceMessage("Assembled archive with {0} entries", len(entries)))
        return cls(entries, data_source)

    @classmethod
    def from_paths(
        cls,
        bfn_path: _PathLike,
        bfdb_path: _PathLike,
        data_source: Union[DataSource, _PathLike],
        *,
        in_memory: bool = False,
        strict: bool = False,
    ) -> BigFile:
        """Load an archive from its three files.

        :param data_source: A DataSource, or the path of the data blob.
        :param in_memory: When `data_source` is a path; load the whole blob up front
            instead of reading from disk on demand.
        :param strict: Fail on duplicate hashes in the hash table.
        """
        bfn_path, bfdb_path = os.fspath(bfn_path), os.fspath(bfdb_path)
        with _open_for_read(bfn_path) as handle:
            paths = TreeIndexSerializer.read(handle)
        with _open_for_read(bfdb_path) as handle:
            hash_table = HashTableSerializer.read(handle, strict=strict)

        if not isinstance(data_source, DataSource):
            data_source = (
                BufferDataSource.from_path(data_source)
                if in_memory
                else FileDataSource(data_source)
            )
        return cls.assemble(paths, hash_table, data_source)

    @classmethod
    def from_streams(
        cls,
        bfn_stream: BinaryIO,
        bfdb_stream: BinaryIO,
        bfdata_stream: BinaryIO,
        *,
        strict: bool = False,
    ) -> BigFile:
        """Load an archive from open streams; the data stream is read into memory."""
        paths = TreeIndexSerializer.read(bfn_stream)
        hash_table = HashTableSerializer.read(bfdb_stream, strict=strict)
        data_source = BufferDataSource.from_stream(bfdata_stream)
        return cls.assemble(paths, hash_table, data_source)

    @classmethod
    def open(
        cls, bfn_path: _PathLike, *, in_memory: bool = False, strict: bool = False
    ) -> BigFile:
        """Load an archive from its tree index, finding the other parts beside it."""
        bfdb_path, bfdata_path = find_siblings(bfn_path)
        return cls.from_paths(
            bfn_path, bfdb_path, bfdata_path, in_memory=in_memory, strict=strict
        )

    # Lookup

    @property
    def entries(self) -> Mapping[str, Entry]:
        return MappingProxyType(self._entries)

    @property
    def data_source(self) -> DataSource:
        return self._data_source

    def list_paths(self) -> Set[str]:
        return set(self._entries.keys())

    def get_entry(self, path: str) -> Entry:
        try:
            return self._entries[path]
        except KeyError:
            raise EntryNotFoundError(path) from None

    def get(self, path: str) -> bytes:
        """Read one file's bytes.

        :raises EntryNotFoundError: `path` is not in the archive.
        :raises BigFileIOError: The data blob could not be read (or is too short).
        """
        entry = self.get_entry(path)
        return self._data_source.read(entry.offset, entry.size)

    def open_file(self, path: str) -> BytesIO:
        return BytesIO(self.get(path))

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    # Extraction

    def extract_all(
        self,
        output: _Output,
        strict: bool = True,
        *,
        strip_root: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> int:
        """Extract every file under `output`.

        :param strict: Stop at (and raise) the first failure; otherwise skip failures.
        :returns: The number of files written.
        """
        func = extract.extract_all if strict else extract.extract_lossy
        return func(self, output, strip_root=strip_root, logger=logger)

    def extract_selected(
        self,
        paths: Iterable[str],
        output: _Output,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> List[ExtractResult]:
        return extract.extract_selected(self, paths, output, logger=logger)

    # Lifetime

    def close(self) -> None:
        self._data_source.close()

    def __enter__(self) -> BigFile:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def load_bigfile(
    bfn_path: _PathLike,
    bfdb_path: _PathLike,
    data_source: Union[DataSource, _PathLike],
    *,
    in_memory: bool = False,
    strict: bool = False,
) -> BigFile:
    return BigFile.from_paths(
        bfn_path, bfdb_path, data_source, in_memory=in_memory, strict=strict
    )


def load_bigfile_from_streams(
    bfn_stream: BinaryIO,
    bfdb_stream: BinaryIO,
    bfdata_stream: BinaryIO,
    *,
    strict: bool = False,
) -> BigFile:
    return BigFile.from_streams(bfn_stream, bfdb_stream, bfdata_stream, strict=strict)


__all__ = [
    "BigFile",
    "find_siblings",
    "load_bigfile",
    "load_bigfile_from_streams",
]
