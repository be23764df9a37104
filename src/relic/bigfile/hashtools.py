from typing import Callable, Optional, Type

from relic.bigfile.definitions import FNV64_OFFSET_BASIS, FNV64_PRIME, ROOT_SEP
from relic.bigfile.errors import PathHashMismatchError

_U64_MASK = 0xFFFFFFFFFFFFFFFF


def fnv1a64(text: str) -> int:
    """64-bit FNV-1a over the code points of `text` (not its encoded bytes)."""
    value = FNV64_OFFSET_BASIS
    for char in text:
        value = ((value ^ ord(char)) * FNV64_PRIME) & _U64_MASK
    return value


def normalize_path(path: str) -> str:
    """Normalize a logical path the way the archive producer does before hashing.

    Backslashes become forward slashes, the path is lower-cased,
    and the root segment (the tree index's root directory) is dropped;
    hashes are always relative to the archive root.

    :param path: A logical path as produced by the tree index, e.g. `root/Sub/Bar.bin`
    :returns: The hashable form, e.g. `sub/bar.bin`
    """
    path = path.replace("\\", ROOT_SEP).lower()
    _, _, relative = path.partition(ROOT_SEP)
    return relative


def hash_path(path: str) -> int:
    return fnv1a64(normalize_path(path))


class _Hasher:
    HASHER_NAME = "Hash"

    def __init__(
        self,
        hash_func: Callable[[str], int],
        error_cls: Type[PathHashMismatchError] = PathHashMismatchError,
    ):
        self._hasher = hash_func
        # Overridable, so callers can tell mismatches apart
        self._error = error_cls

    def __call__(self, path: str) -> int:
        return self.hash(path)

    def hash(self, path: str) -> int:
        return self._hasher(path)

    def check(self, path: str, expected: int) -> bool:
        result = self.hash(path)
        return result == expected

    def validate(self, path: str, expected: int, *, name: Optional[str] = None) -> None:
        result = self.hash(path)
        if result != expected:
            raise self._error(name or self.HASHER_NAME, result, expected)


class PathHasher(_Hasher):
    """Hashes logical paths; normalization is applied unless `normalize` is False."""

    HASHER_NAME = "FNV-1a 64"

    def __init__(self, normalize: bool = True):
        super().__init__(hash_path if normalize else fnv1a64)


path_hasher = PathHasher()

__all__ = [
    "fnv1a64",
    "normalize_path",
    "hash_path",
    "PathHasher",
    "path_hasher",
]
