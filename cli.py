#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Command line interface for linkconf."""

import argparse
import json
import pathlib
import sys
from config import CONFLICT_STRATEGIES, READ_ONLY_MODE
from core import create_hardlink, create_symlink
from link_index import dangling_symlinks, find_aliases, scan_links
from logger_utils import enable_console, get_logger
from permissions_helper import format_mode, parse_mode
from scenario import demonstrate_link_types, run_advanced_scenario
from shared_config import ConfigError, get_value, init_config, parse_value, safe_update

logger = get_logger("linkconf.cli")


def _mode(value):
    try:
        return parse_mode(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="linkconf", description="Share one config file between projects with hardlinks.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Also log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Write the default config")
    p.add_argument("path", type=pathlib.Path)
    p.add_argument("--mode", type=_mode, default=READ_ONLY_MODE, help="Octal mode (default 444)")
    p.add_argument("--force", action="store_true", help="Overwrite an existing config in place")

    for command, help_text in (("link", "Create a hardlink"), ("symlink", "Create a symbolic link")):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("source", type=pathlib.Path)
        p.add_argument("destination_dir", type=pathlib.Path)
        p.add_argument("--name")
        p.add_argument("--conflict", choices=CONFLICT_STRATEGIES, default="fail")
        if command == "symlink":
            p.add_argument("--relative", action="store_true")

    p = sub.add_parser("get", help="Print the value at a dotted key path")
    p.add_argument("path", type=pathlib.Path)
    p.add_argument("key")

    p = sub.add_parser("update", help="Set a dotted key path under a temporary write permission")
    p.add_argument("path", type=pathlib.Path)
    p.add_argument("key")
    p.add_argument("value", help="JSON literal, or plain text")
    p.add_argument("--restore-mode", type=_mode, default=None, help="Mode to set afterwards (default: the mode before the update)")
    p.add_argument("--create-missing", action="store_true", help="Create missing intermediate objects")

    p = sub.add_parser("scan", help="List entries with inode and link count")
    p.add_argument("directory", type=pathlib.Path)
    p.add_argument("--dangling", action="store_true", help="Only list broken symlinks")

    p = sub.add_parser("aliases", help="List every name of a file's inode under the given roots")
    p.add_argument("path", type=pathlib.Path)
    p.add_argument("roots", type=pathlib.Path, nargs="+")

    p = sub.add_parser("scenario", help="Run the shared config walkthrough")
    p.add_argument("directory", type=pathlib.Path)
    p.add_argument("--host", default="new_secure_host")

    p = sub.add_parser("demo", help="Show a hardlink surviving where a symlink dangles")
    p.add_argument("directory", type=pathlib.Path)

    p = sub.add_parser("browse", help="Open the TUI browser")
    p.add_argument("directory", nargs="?")
    return parser


def _run(args) -> int:
    if args.command == "init":
        path = init_config(args.path, mode=args.mode, overwrite=args.force)
        print(f"Created {path} ({format_mode(args.mode)})")
        return 0

    if args.command == "link":
        ok = create_hardlink(args.source, args.destination_dir, args.name, args.conflict)
        print("Hardlink created." if ok else "Hardlink failed. See log for details.", file=sys.stdout if ok else sys.stderr)
        return 0 if ok else 1

    if args.command == "symlink":
        ok = create_symlink(args.source, args.destination_dir, args.name, args.conflict, relative=args.relative)
        print("Symlink created." if ok else "Symlink failed. See log for details.", file=sys.stdout if ok else sys.stderr)
        return 0 if ok else 1

    if args.command == "get":
        value = get_value(args.path, args.key)
        print(value if isinstance(value, str) else json.dumps(value))
        return 0

    if args.command == "update":
        ok = safe_update(args.path, args.key, parse_value(args.value),
                         restore_mode=args.restore_mode, create_missing=args.create_missing)
        if ok:
            print("Configuration updated successfully.")
            return 0
        print("Configuration update failed.", file=sys.stderr)
        return 1

    if args.command == "scan":
        entries = dangling_symlinks(args.directory) if args.dangling else scan_links(args.directory)
        for e in entries:
            extra = f" -> {e.symlink_target}" if e.is_symlink else ""
            print(f"{e.inode:>10} {e.nlink:>3} {format_mode(e.mode)} {e.kind:<14} {e.path}{extra}")
        return 0

    if args.command == "aliases":
        for path in find_aliases(args.path, args.roots):
            print(path)
        return 0

    if args.command == "scenario":
        result = run_advanced_scenario(args.directory, args.host)
        for path, host in result.hosts.items():
            print(f"{path}: database.host = {host}")
        print(f"inode {result.inode}, mode {format_mode(result.mode)}")
        if not result.updated:
            print("Configuration update failed.", file=sys.stderr)
            return 1
        print("Configuration updated successfully.")
        return 0

    if args.command == "demo":
        result = demonstrate_link_types(args.directory)
        print(f"Removed {result.original}")
        print(f"{result.hardlink}: {result.hardlink_content!r}")
        state = "dangling" if result.symlink_dangling else repr(result.symlink_content)
        print(f"{result.symlink}: {state}")
        return 0

    if args.command == "browse":
        from tui_browser import LinkBrowserTUI
        LinkBrowserTUI(start_dir=args.directory).run()
        return 0

    return 2


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        enable_console()
    try:
        return _run(args)
    except (ConfigError, OSError) as e:
        logger.exception(f"Command '{args.command}' failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
