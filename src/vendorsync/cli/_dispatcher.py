"""CLI entry point: builds the parser from the command modules and dispatches."""
from __future__ import annotations

import argparse
import importlib
import sys

from vendorsync import __version__
from vendorsync.cli._args import add_verbose_flag
from vendorsync.core.logging_setup import configure_logging, suppress_lastresort_in_json_mode

COMMANDS = {
    "sync": "vendorsync.cli.sync",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vendorsync",
        description="Fill a project's vendor tree from pinned git and Mercurial sources.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    add_verbose_flag(parser)
    subparsers = parser.add_subparsers(dest="command")

    for name, module_path in COMMANDS.items():
        module = importlib.import_module(module_path)
        cmd_parser = subparsers.add_parser(name, help=getattr(module, "SUMMARY", name))
        module.register_args(cmd_parser)
        cmd_parser.set_defaults(_func=module.main)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the vendorsync CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "_func", None):
        parser.print_help()
        return 0

    if getattr(args, "json", False):
        suppress_lastresort_in_json_mode()
    else:
        configure_logging("DEBUG" if args.verbose else "INFO")

    return int(args._func(args))


__all__ = ["main", "build_parser", "COMMANDS"]
