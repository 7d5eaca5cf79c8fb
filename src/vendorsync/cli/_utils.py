"""Shared CLI utilities."""
from __future__ import annotations

import argparse
from pathlib import Path

from vendorsync.core.fetch.config import CONFIG_FILENAME


def get_repo_root(args: argparse.Namespace) -> Path:
    """Get repository root from args or auto-detect.

    Without ``--repo-root`` the nearest directory at or above the working
    directory holding ``vendorsync.yml`` is used, falling back to the working
    directory itself.
    """
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()

    cwd = Path.cwd().resolve()
    for candidate in (cwd, *cwd.parents):
        if (candidate / CONFIG_FILENAME).is_file():
            return candidate
    return cwd


__all__ = ["get_repo_root"]
