import os
import tempfile
from typing import Dict

from tests.dummy_bigfile import DummyBigFile


class TempBigFileHandle:
    """Writes a dummy archive into a temporary directory, removed on exit."""

    def __init__(self, archive: DummyBigFile, stem: str = "archive", **kwargs):
        self._dir = tempfile.TemporaryDirectory()
        self.archive = archive
        self.bfn = archive.write(self._dir.name, stem, **kwargs)
        base, _ = os.path.splitext(self.bfn)
        self.bfdb = base + ".bfdb"
        self.bfdata = base + ".bfdata"

    @property
    def directory(self) -> str:
        return self._dir.name

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._dir.cleanup()


def read_tree(root: str) -> Dict[str, bytes]:
    """Map every file below `root` (as a '/' joined relative path) to its contents."""
    result = {}
    for dir_path, _, file_names in os.walk(root):
        for name in file_names:
            path = os.path.join(dir_path, name)
            rel = os.path.relpath(path, root).replace(os.sep, "/")
            with open(path, "rb") as h:
                result[rel] = h.read()
    return result
