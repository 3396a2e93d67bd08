"""fileversions CLI.

    versions add FILE [COMMENT...]
    versions list [FILE]
    versions get VERSION FILE [--out PATH]
    versions status
    versions init [--mode project|global]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from .. import __version__
from ..config import ConfigLoader, StorageMode, VersionsConfig
from ..core.engine import AddError, VersionEngine
from ..core.version_log import VersionLogError, VersionRecord
from ..utils.env import DEBUG_ENV_VAR


DIGEST_PREFIX_LEN = 12


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="versions",
        description="Keep versions of individual files in a content-addressed store",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )
    parser.add_argument(
        "--repo",
        default=None,
        help="Repository directory (overrides configuration)",
    )

    subparsers = parser.add_subparsers(dest="command")

    add = subparsers.add_parser("add", help="Add a version of a file")
    add.add_argument("file", help="File to version")
    add.add_argument("comment", nargs="*", help="Optional comment")

    list_p = subparsers.add_parser("list", help="List versions")
    list_p.add_argument("file", nargs="?", default=None, help="Only versions of this file")

    get = subparsers.add_parser("get", help="Restore a version of a file")
    get.add_argument("number", type=int, help="Version number (1 = first)")
    get.add_argument("file", help="File name as it was added")
    get.add_argument("--out", default=None, help="Write to this path instead of FILE")

    subparsers.add_parser("status", help="Show repository status")

    init = subparsers.add_parser("init", help="Create the repository")
    init.add_argument(
        "--mode",
        choices=[m.value for m in StorageMode],
        default=None,
        help="Save storage mode to the project config",
    )

    return parser


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.debug:
        os.environ[DEBUG_ENV_VAR] = "1"

    if not parsed.command:
        parser.print_help()
        return 1

    loader = ConfigLoader(project_root=Path.cwd())

    if parsed.command == "init":
        return cmd_init(parsed, loader)

    engine = VersionEngine(loader.repository_config(parsed.repo))

    if parsed.command == "add":
        return cmd_add(parsed, engine)
    if parsed.command == "list":
        return cmd_list(parsed, engine)
    if parsed.command == "get":
        return cmd_get(parsed, engine)
    if parsed.command == "status":
        return cmd_status(engine)

    parser.print_help()
    return 1


def cmd_init(args: argparse.Namespace, loader: ConfigLoader) -> int:
    if args.mode:
        config = loader.config
        loader.save_config(
            VersionsConfig(
                storage_mode=StorageMode(args.mode),
                hash_algorithm=config.hash_algorithm,
                lock_timeout_seconds=config.lock_timeout_seconds,
                verify_on_get=config.verify_on_get,
                fsync=config.fsync,
            ),
            scope="project",
        )

    engine = VersionEngine(loader.repository_config(args.repo))
    try:
        root = engine.init()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Initialized repository: {root}")
    return 0


def cmd_add(args: argparse.Namespace, engine: VersionEngine) -> int:
    comment = " ".join(args.comment).strip() if args.comment else ""
    result = engine.add(args.file, comment)

    if result.error == AddError.ALREADY_EXISTS and result.record is not None:
        print(
            f"Unchanged: {args.file} already stored as version {result.record.version}",
            file=sys.stderr,
        )
        return 1
    if not result.success or result.record is None:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    record = result.record
    print(f"Added: {record.filename} version {record.version} ({record.digest[:DIGEST_PREFIX_LEN]})")
    return 0


def cmd_list(args: argparse.Namespace, engine: VersionEngine) -> int:
    result = engine.list(args.file)
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    if not result.records:
        print("No versions found.")
        return 0

    print(format_header())
    for record in result.records:
        print(format_record(record))
    return 0


def cmd_get(args: argparse.Namespace, engine: VersionEngine) -> int:
    result = engine.get(args.file, args.number, destination=args.out)
    if not result.success or result.path is None:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    print(f"Restored: {args.file} version {args.number} -> {result.path}")
    return 0


def cmd_status(engine: VersionEngine) -> int:
    try:
        status = engine.status()
    except VersionLogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    state = "yes" if status.initialized else "no"
    print(f"Repository:  {status.repository_root}")
    print(f"Initialized: {state}")
    print(f"Algorithm:   {status.hash_algorithm}")
    print(f"Versions:    {status.record_count}")
    print(f"Blobs:       {status.blob_count}")
    return 0


def format_header() -> str:
    return f"{'Seq':<5} {'Ver':<4} {'Hash':<{DIGEST_PREFIX_LEN}} {'Date':<19} {'File':<24} Comment"


def format_record(record: VersionRecord) -> str:
    date = record.timestamp[:19].replace("T", " ")
    return (
        f"{record.sequence:<5} {record.version:<4} {record.digest[:DIGEST_PREFIX_LEN]:<{DIGEST_PREFIX_LEN}} "
        f"{date:<19} {record.filename:<24} {record.comment}"
    )
