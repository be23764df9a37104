from __future__ import annotations

import logging
from io import BytesIO
from typing import Any, Collection, Dict, List, Optional, Union

from fs import ResourceType, errors
from fs.base import FS
from fs.info import Info
from fs.mode import Mode
from fs.path import iteratepath
from relic.core.logmsg import BraceMessage

from relic.bigfile.archive import BigFile
from relic.bigfile.definitions import ROOT_SEP
from relic.bigfile.errors import BigFileError
from relic.bigfile.hashtools import hash_path

logger = logging.getLogger(__name__)

BIGFILE_NAMESPACE = "bigfile"


class _DirNode:
    is_dir = True

    def __init__(self, name: str):
        self.name = name
        self.children: Dict[str, Union[_DirNode, _FileNode]] = {}


class _FileNode:
    is_dir = False

    def __init__(self, name: str, logical_path: str):
        self.name = name
        self.logical_path = logical_path


class BigFileFS(FS):
    """A read-only pyfilesystem2 view of an assembled archive.

    Directories are derived from the logical paths; the top level holds the
    archive's root directory. Closing the FS closes the archive unless
    `close_bigfile` is False.
    """

    _meta = {
        "case_insensitive": False,
        "invalid_path_chars": "\0",
        "network": False,
        "read_only": True,
        "thread_safe": True,
        "unicode_paths": True,
        "virtual": False,
    }

    def __init__(self, bigfile: BigFile, close_bigfile: bool = True):
        super().__init__()
        self._bigfile = bigfile
        self._close_bigfile = close_bigfile
        self._root = _DirNode("")
        for path in bigfile:
            self._insert(path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._bigfile!r})"

    @property
    def bigfile(self) -> BigFile:
        return self._bigfile

    def _insert(self, logical_path: str) -> None:
        try:
            parts = iteratepath(logical_path.replace("\\", ROOT_SEP))
        except errors.IllegalBackReference:
            logger.warning(BraceMessage("Hiding `{0}`; it escapes the root", logical_path))
            return
        if len(parts) == 0:
            return
        node = self._root
        for part in parts[:-1]:
            child = node.children.get(part)
            if child is None:
                child = node.children[part] = _DirNode(part)
            elif not child.is_dir:
                logger.warning(
                    BraceMessage(
                        "`{0}` is both a file and a directory; hiding `{1}`",
                        part,
                        logical_path,
                    )
                )
                return
            node = child  # type: ignore

        name = parts[-1]
        if name in node.children:
            logger.warning(
                BraceMessage("`{0}` is already listed; hiding `{1}`", name, logical_path)
            )
            return
        node.children[name] = _FileNode(name, logical_path)

    def _get_node(self, path: str) -> Union[_DirNode, _FileNode]:
        _path = self.validatepath(path)
        node: Union[_DirNode, _FileNode] = self._root
        for part in iteratepath(_path):
            if not node.is_dir:
                raise errors.ResourceNotFound(path)
            child = node.children.get(part)  # type: ignore
            if child is None:
                raise errors.ResourceNotFound(path)
            node = child
        return node

    def getinfo(self, path: str, namespaces: Optional[Collection[str]] = None) -> Info:
        self.check()
        namespaces = namespaces or ()
        with self._lock:
            node = self._get_node(path)
            raw_info: Dict[str, Dict[str, Any]] = {
                "basic": {"name": node.name, "is_dir": node.is_dir}
            }
            entry = None if node.is_dir else self._bigfile.get_entry(node.logical_path)  # type: ignore
            if "details" in namespaces:
                raw_info["details"] = {
                    "type": int(
                        ResourceType.directory if node.is_dir else ResourceType.file
                    ),
                    "size": 0 if entry is None else entry.size,
                    "accessed": None,
                    "modified": None,
                    "created": None,
                    "metadata_changed": None,
                }
            if BIGFILE_NAMESPACE in namespaces and entry is not None:
                raw_info[BIGFILE_NAMESPACE] = {
                    "path": node.logical_path,  # type: ignore
                    "offset": entry.offset,
                    "size": entry.size,
                    "hash": hash_path(node.logical_path),  # type: ignore
                }
            return Info(raw_info)

    def listdir(self, path: str) -> List[str]:
        self.check()
        with self._lock:
            node = self._get_node(path)
            if not node.is_dir:
                raise errors.DirectoryExpected(path)
            return list(node.children.keys())  # type: ignore

    def openbin(self, path: str, mode: str = "r", buffering: int = -1, **options: Any):
        self.check()
        _mode = Mode(mode)
        _mode.validate_bin()
        if _mode.writing:
            raise errors.ResourceReadOnly(path)
        with self._lock:
            node = self._get_node(path)
            if node.is_dir:
                raise errors.FileExpected(path)
            try:
                data = self._bigfile.get(node.logical_path)  # type: ignore
            except BigFileError as e:
                raise errors.OperationFailed(path, exc=e) from e
        return BytesIO(data)

    def makedir(self, path: str, permissions=None, recreate: bool = False):
        self.check()
        raise errors.ResourceReadOnly(path)

    def remove(self, path: str) -> None:
        self.check()
        raise errors.ResourceReadOnly(path)

    def removedir(self, path: str) -> None:
        self.check()
        raise errors.ResourceReadOnly(path)

    def setinfo(self, path: str, info) -> None:
        self.check()
        raise errors.ResourceReadOnly(path)

    def close(self) -> None:
        if not self.isclosed() and self._close_bigfile:
            self._bigfile.close()
        super().close()


__all__ = ["BigFileFS", "BIGFILE_NAMESPACE"]
