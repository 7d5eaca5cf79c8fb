"""
vendorsync sync command.

SUMMARY: Sync vendored directories to their configured sources
"""
from __future__ import annotations

import argparse
import sys

from vendorsync.cli import (
    OutputFormatter,
    add_config_flag,
    add_json_flag,
    add_repo_root_flag,
    get_repo_root,
)
from vendorsync.core.exceptions import VendorsyncError

SUMMARY = "Sync vendored directories to their configured sources"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument(
        "path",
        nargs="?",
        help="Directory to sync, relative to the repo root (all if omitted)",
    )
    add_json_flag(parser)
    add_repo_root_flag(parser)
    add_config_flag(parser)


def main(args: argparse.Namespace) -> int:
    """Sync configured directories."""
    from vendorsync.core.fetch.manager import VendorSyncManager

    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        repo_root = get_repo_root(args)
        manager = VendorSyncManager(
            repo_root,
            config_path=getattr(args, "config", None),
            info_log=None if formatter.json_mode else sys.stderr,
        )

        if args.path:
            results = [manager.sync_directory(args.path)]
        else:
            results = manager.sync_all()
    except VendorsyncError as e:
        formatter.error(e, error_code="sync_error")
        return 1

    if formatter.json_mode:
        formatter.json_output(
            {
                "results": [
                    {
                        "path": r.path,
                        "success": r.success,
                        "sha": r.sha,
                        "previousSha": r.previous_sha,
                        "changed": r.changed,
                        "error": r.error,
                        "details": r.details,
                    }
                    for r in results
                ]
            }
        )
    else:
        if not results:
            formatter.text("No directories configured.")
            return 0

        success_count = sum(1 for r in results if r.success)
        formatter.text(f"Synced {success_count}/{len(results)} directories:")
        formatter.text("")
        for result in results:
            status = "OK" if result.success else "FAILED"
            changed = " (changed)" if result.changed else ""
            formatter.text(f"  {result.path}: {status}{changed}")
            if result.sha:
                formatter.text_kv("Revision", result.sha[:12], prefix="    ")
            title = result.details.get("commitTitle") or result.details.get("changeSetTitle")
            if title:
                formatter.text_kv("Title", title, prefix="    ")
            if result.error:
                formatter.text_kv("Error", result.error, prefix="    ")

    return 1 if any(not r.success for r in results) else 0


__all__ = ["SUMMARY", "register_args", "main"]
