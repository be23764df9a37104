from __future__ import annotations

import os
from os.path import expanduser

import fs.opener.errors
from fs.base import FS
from fs.opener import Opener
from fs.opener.parse import ParseResult
from relic.core.errors import RelicToolError

from relic.bigfile.archive import BigFile
from relic.bigfile.filesystem import BigFileFS


class BigFileOpener(Opener):
    """Opens `bigfile://path/to/archive.bfn` as a read-only BigFileFS.

    The .bfdb and .bfdata files must sit next to the .bfn.
    Pass `?in_memory=1` to load the data blob up front.
    """

    protocols = ["bigfile"]

    def open_fs(
        self,
        fs_url: str,
        parse_result: ParseResult,
        writeable: bool,
        create: bool,
        cwd: str,
    ) -> FS:
        if create:
            raise RelicToolError(
                "Cannot create a BigFile archive from fs.open_fs; packing archives is not supported."
            )
        if len(parse_result.resource) == 0:
            raise fs.opener.errors.OpenerError("No path was given to open!")

        _path = os.path.abspath(os.path.join(cwd, expanduser(parse_result.resource)))
        path = os.path.normpath(_path)

        in_memory = parse_result.params.get("in_memory", "0") not in ("", "0", "false")
        bigfile = BigFile.open(path, in_memory=in_memory)
        return BigFileFS(bigfile)


__all__ = ["BigFileOpener"]
