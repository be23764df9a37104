from __future__ import annotations

import dataclasses
import json
import logging
import os.path
from argparse import ArgumentParser, Namespace
from io import StringIO
from logging import Logger
from typing import Any, Dict, List, Optional

from relic.core.cli import (
    CliPlugin,
    CliPluginGroup,
    RelicArgParser,
    _SubParsersAction,
    get_dir_type_validator,
    get_file_type_validator,
    get_path_validator,
)
from relic.core.logmsg import BraceMessage

from relic.bigfile.archive import BigFile
from relic.bigfile.definitions import BFDATA_EXT, BFDB_EXT
from relic.bigfile.errors import BigFileError
from relic.bigfile.filesystem import BigFileFS
from relic.bigfile.hashtools import hash_path, normalize_path

_SUCCESS = 0
_FAILURE = 1


def _add_archive_arguments(parser: ArgumentParser) -> None:
    parser.add_argument(
        "src_bfn",
        type=get_file_type_validator(exists=True),
        help="Source tree index (.bfn) file",
    )
    parser.add_argument(
        "--bfdb",
        type=get_file_type_validator(exists=True),
        help=f"Hash table file (default: the {BFDB_EXT} next to src_bfn)",
        default=None,
    )
    parser.add_argument(
        "--bfdata",
        type=get_file_type_validator(exists=True),
        help=f"Data blob file (default: the {BFDATA_EXT} next to src_bfn)",
        default=None,
    )
    parser.add_argument(
        "--in-memory",
        help="Load the entire data blob into memory instead of reading from disk as needed",
        action="store_true",
        default=False,
    )


def _load_bigfile(ns: Namespace) -> BigFile:
    bfn: str = ns.src_bfn
    bfdb: Optional[str] = ns.bfdb
    bfdata: Optional[str] = ns.bfdata
    in_memory: bool = ns.in_memory

    if bfdb is None and bfdata is None:
        return BigFile.open(bfn, in_memory=in_memory)

    stem, _ = os.path.splitext(bfn)
    return BigFile.from_paths(
        bfn,
        bfdb or stem + BFDB_EXT,
        bfdata or stem + BFDATA_EXT,
        in_memory=in_memory,
    )


class RelicBigFileCli(CliPluginGroup):
    GROUP = "relic.cli.bigfile"

    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        name = "bigfile"
        if command_group is None:
            return RelicArgParser(name)
        return command_group.add_parser(name)


class RelicBigFileUnpackCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Unpack a BigFile archive to the filesystem.
            By default, extraction stops at the first file that cannot be read or written.
            Use '--lossy' to skip failed files instead, or '--select' to extract specific files."""
        if command_group is None:
            parser = RelicArgParser("unpack", description=desc)
        else:
            parser = command_group.add_parser("unpack", description=desc)

        _add_archive_arguments(parser)
        parser.add_argument(
            "out_dir",
            type=get_dir_type_validator(exists=False),
            help="Output Directory",
        )
        mode_flags = parser.add_mutually_exclusive_group()
        mode_flags.add_argument(
            "-l",
            "--lossy",
            help="Skip files that fail to extract, and report how many succeeded",
            action="store_true",
        )
        mode_flags.add_argument(
            "-s",
            "--select",
            help="Only extract this file (repeatable); their shared parent folder is stripped",
            action="append",
            default=None,
            metavar="PATH",
        )
        parser.add_argument(
            "--strip-root",
            help="Do not recreate the archive's root folder inside out_dir",
            action="store_true",
        )

        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        outdir: str = ns.out_dir
        lossy: bool = ns.lossy
        selected: Optional[List[str]] = ns.select
        strip_root: bool = ns.strip_root

        logger.info(BraceMessage("Unpacking `{0}`", ns.src_bfn))

        with _load_bigfile(ns) as bigfile:
            if selected is not None:
                results = bigfile.extract_selected(selected, outdir, logger=logger)
                failed = [result for result in results if result.has_errors]
                logger.info(
                    BraceMessage(
                        "Extracted {0}/{1} selected files",
                        len(results) - len(failed),
                        len(results),
                    )
                )
                return _FAILURE if failed else _SUCCESS

            try:
                extracted = bigfile.extract_all(
                    outdir, strict=not lossy, strip_root=strip_root, logger=logger
                )
            except BigFileError as e:
                logger.error(BraceMessage("Extraction stopped; {0}", e))
                return _FAILURE
            if extracted != len(bigfile):
                logger.warning(
                    BraceMessage("Failed: {0} files", len(bigfile) - extracted)
                )
                return _FAILURE

        return _SUCCESS


class RelicBigFileListCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Lists every file in a BigFile archive."""
        if command_group is None:
            parser = RelicArgParser("list", description=desc)
        else:
            parser = command_group.add_parser("list", description=desc)

        _add_archive_arguments(parser)
        return parser

    def command(self, ns: Namespace, *, logger: logging.Logger) -> Optional[int]:
        with _load_bigfile(ns) as bigfile:
            for path in sorted(bigfile.list_paths()):
                logger.info(path)
            if len(bigfile) == 0:
                logger.info("No Files Found!")
        return None


class RelicBigFileTreeCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Reads a BigFile archive and prints it's hierarchy"""
        if command_group is None:
            parser = RelicArgParser("tree", description=desc)
        else:
            parser = command_group.add_parser("tree", description=desc)

        _add_archive_arguments(parser)
        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        logger.info(BraceMessage("Printing Tree `{0}`", ns.src_bfn))

        with _load_bigfile(ns) as bigfile:
            with BigFileFS(bigfile, close_bigfile=False) as bigfile_fs:
                with StringIO() as writer:
                    bigfile_fs.tree(file=writer, with_color=True, dirs_first=True)
                    writer.seek(0)
                    logger.info(writer.read())
        return None


class RelicBigFileInfoCli(CliPlugin):
    _JSON_MINIFY_KWARGS: Dict[str, Any] = {"separators": (",", ":"), "indent": None}
    _JSON_MAXIFY_KWARGS: Dict[str, Any] = {"separators": (", ", ": "), "indent": 4}

    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Reads a BigFile archive and writes the offset, size and hash of every file to a json object.
            If out_json is a directory; the name of the file will be '[name of bfn].json'
        """
        if command_group is None:
            parser = RelicArgParser("info", description=desc)
        else:
            parser = command_group.add_parser("info", description=desc)

        _add_archive_arguments(parser)
        parser.add_argument(
            "out_json",
            type=get_path_validator(exists=False),
            help="Output File or Directory",
        )
        parser.add_argument(
            "-m",
            "--minify",
            action="store_true",
            default=False,
            help="Minifies the resulting json by stripping whitespace, newlines, and indentations. Reduces filesize",
        )

        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        infile: str = ns.src_bfn
        outjson: str = ns.out_json
        minify: bool = ns.minify

        logger.info(BraceMessage("Reading Info `{0}`", infile))

        with _load_bigfile(ns) as bigfile:
            info = {
                path: {**dataclasses.asdict(entry), "hash": hash_path(path)}
                for path, entry in sorted(bigfile.entries.items())
            }

        outjson_dir, outjson_file = os.path.split(outjson)
        if len(outjson_file) == 0 or (
            os.path.exists(outjson) and os.path.isdir(outjson)
        ):  # Directory
            # Get name of bfn without extension, then add .json extension
            outjson_dir = outjson
            outjson_file = os.path.splitext(os.path.split(infile)[1])[0] + ".json"

        if len(outjson_dir) > 0:
            os.makedirs(outjson_dir, exist_ok=True)
        outjson = os.path.join(outjson_dir, outjson_file)

        with open(outjson, "w", encoding="utf-8") as info_h:
            json_kwargs: Dict[str, Any] = (
                self._JSON_MINIFY_KWARGS if minify else self._JSON_MAXIFY_KWARGS
            )
            json.dump(info, info_h, **json_kwargs)

        logger.info(BraceMessage("Wrote `{0}`", outjson))
        return _SUCCESS


class RelicBigFileHashCli(CliPlugin):
    def _create_parser(
        self, command_group: Optional[_SubParsersAction] = None
    ) -> ArgumentParser:
        parser: ArgumentParser
        desc = """Prints the normalized form and hash of logical paths, as they are looked up in the hash table."""
        if command_group is None:
            parser = RelicArgParser("hash", description=desc)
        else:
            parser = command_group.add_parser("hash", description=desc)

        parser.add_argument(
            "paths",
            nargs="+",
            help="Logical paths, including the root folder (e.g. 'root/textures/foo.png')",
        )
        return parser

    def command(self, ns: Namespace, *, logger: Logger) -> Optional[int]:
        paths: List[str] = ns.paths
        for path in paths:
            logger.info(
                BraceMessage(
                    "{0} -> `{1}` 0x{2:016X}", path, normalize_path(path), hash_path(path)
                )
            )
        return None
