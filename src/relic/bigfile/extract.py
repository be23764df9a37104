"""Bulk extraction of an archive onto a filesystem.

The destination can be a directory path (created when missing) or any
writable pyfilesystem2 FS. Files are written at their logical path,
relative to the destination; existing files are overwritten.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Sequence, Union

from fs import open_fs
from fs.base import FS
from fs.errors import FSError, IllegalBackReference
from fs.path import abspath, dirname, normpath
from relic.core.logmsg import BraceMessage

from relic.bigfile.definitions import ROOT_SEP, ExtractionStats, ExtractResult
from relic.bigfile.errors import BigFileError, BigFileIOError

if TYPE_CHECKING:
    from relic.bigfile.archive import BigFile

_logger = logging.getLogger(__name__)

_Output = Union[str, os.PathLike, FS]


def _split(path: str) -> List[str]:
    return [part for part in path.replace("\\", ROOT_SEP).split(ROOT_SEP) if part]


def common_parent(paths: Iterable[str]) -> str:
    """The longest parent directory shared by every path.

    Each path's parent components are walked in lock-step until they diverge
    or one runs out; e.g. `a/b/x.txt` and `a/b/c/y.txt` share `a/b`.
    Returns an empty string when nothing is shared (or no paths are given).
    """
    parents = [_split(path)[:-1] for path in paths]
    if len(parents) == 0:
        return ""

    prefix: List[str] = []
    for components in zip(*parents):
        first = components[0]
        if any(component != first for component in components[1:]):
            break
        prefix.append(first)
    return ROOT_SEP.join(prefix)


def _relative_parts(path: str, prefix: Sequence[str]) -> List[str]:
    parts = _split(path)
    if parts[: len(prefix)] == list(prefix):
        return parts[len(prefix) :]
    return parts


@contextmanager
def _open_output(output: _Output) -> Iterator[FS]:
    if isinstance(output, FS):
        # Borrowed; the caller owns it
        yield output
        return
    with open_fs(os.fspath(output), writeable=True, create=True) as dst:
        yield dst


def _write(dst: FS, dst_path: str, data: bytes) -> None:
    try:
        dst_path = abspath(normpath(dst_path))
        parent = dirname(dst_path)
        if parent != ROOT_SEP:
            dst.makedirs(parent, recreate=True)
        dst.writebytes(dst_path, data)
    except (FSError, IllegalBackReference, OSError) as e:
        raise BigFileIOError(e, dst_path) from e


def _extract_one(bigfile: BigFile, path: str, dst: FS, dst_path: str) -> int:
    data = bigfile.get(path)
    _write(dst, dst_path, data)
    return len(data)


def _dst_path(path: str, strip_root: bool) -> str:
    parts = _split(path)
    if strip_root and len(parts) > 1:
        parts = parts[1:]
    return ROOT_SEP.join(parts)


def _extract_entries(
    bigfile: BigFile,
    output: _Output,
    strict: bool,
    strip_root: bool,
    logger: logging.Logger,
) -> ExtractionStats:
    stats = ExtractionStats(total_files=len(bigfile))
    with _open_output(output) as dst:
        for path in bigfile:
            dst_path = _dst_path(path, strip_root)
            try:
                stats.extracted_bytes += _extract_one(bigfile, path, dst, dst_path)
            except BigFileError as e:
                if strict:
                    raise
                stats.failed_files += 1
                stats.failed_paths.append(path)
                logger.warning(BraceMessage("Skipping `{0}`; {1}", path, e))
                continue
            stats.extracted_files += 1
            logger.debug(BraceMessage("Extracted `{0}`", path))
    return stats


def extract_all(
    bigfile: BigFile,
    output: _Output,
    *,
    strip_root: bool = False,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Extract every file, stopping at the first failure.

    Files written before the failure are left in place.

    :returns: The number of files written.
    :raises BigFileError: The first read or write failure.
    """
    logger = logger or _logger
    stats = _extract_entries(bigfile, output, True, strip_root, logger)
    logger.info(BraceMessage("Extracted {0} files", stats.extracted_files))
    return stats.extracted_files


def extract_lossy(
    bigfile: BigFile,
    output: _Output,
    *,
    strip_root: bool = False,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Extract every file, skipping (and logging) the ones that fail.

    :returns: The number of files successfully written.
    """
    logger = logger or _logger
    stats = _extract_entries(bigfile, output, False, strip_root, logger)
    logger.info(
        BraceMessage(
            "Extracted {0}/{1} files ({2} failed)",
            stats.extracted_files,
            stats.total_files,
            stats.failed_files,
        )
    )
    return stats.extracted_files


def extract_selected(
    bigfile: BigFile,
    paths: Iterable[str],
    output: _Output,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[ExtractResult]:
    """Extract the given files, without their shared parent directory.

    Selecting `a/b/x.txt` and `a/b/c/y.txt` writes `output/x.txt` and
    `output/c/y.txt`. Every path is attempted; each one's outcome is reported.
    """
    logger = logger or _logger
    selected = list(dict.fromkeys(paths))
    prefix = _split(common_parent(selected))

    results: List[ExtractResult] = []
    with _open_output(output) as dst:
        for path in selected:
            dst_path = ROOT_SEP.join(_relative_parts(path, prefix))
            try:
                _extract_one(bigfile, path, dst, dst_path)
            except BigFileError as e:
                logger.error(BraceMessage("Failed to extract file `{0}`; {1}", path, e))
                results.append(ExtractResult.create_error(path, e, dst_path))
            else:
                results.append(ExtractResult(path, dst_path))
    return results


__all__ = [
    "common_parent",
    "extract_all",
    "extract_lossy",
    "extract_selected",
]
