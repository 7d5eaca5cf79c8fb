"""Common CLI argument registration helpers."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --repo-root flag for repository root override."""
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override repository root path",
    )


def add_config_flag(parser: argparse.ArgumentParser) -> None:
    """Add --config flag for the config file override."""
    parser.add_argument(
        "--config",
        type=str,
        help="Config file path (default: <repo-root>/vendorsync.yml)",
    )


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )


__all__ = [
    "add_json_flag",
    "add_repo_root_flag",
    "add_config_flag",
    "add_verbose_flag",
]
