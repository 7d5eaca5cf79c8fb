"""Helpers shared by the git and hg sync orchestrators."""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from vendorsync.core.fetch.exceptions import AtomicReplaceError

logger = logging.getLogger(__name__)


def single_line_title(text: str) -> str:
    """Keep the first line of a message, marking truncation with ``...``."""
    pieces = text.split("\n", 1)
    if len(pieces) > 1:
        return pieces[0] + "..."
    return pieces[0]


def replace_directory(incoming: Path, dst_path: Path) -> None:
    """Swap ``incoming`` into ``dst_path``.

    The previous destination is moved aside first and restored if the rename
    fails, so ``dst_path`` holds either the old or the new tree.

    Raises:
        AtomicReplaceError: naming the path of the failing step
    """
    incoming = Path(incoming)
    dst_path = Path(dst_path)
    retired: Path | None = None

    if dst_path.exists() or dst_path.is_symlink():
        retired = dst_path.with_name(f".{dst_path.name}.replaced-{os.getpid()}")
        try:
            if retired.exists():
                shutil.rmtree(retired)
            os.rename(dst_path, retired)
        except OSError as e:
            raise AtomicReplaceError(f"Moving aside dir {dst_path}: {e}", path=str(dst_path)) from e

    try:
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        os.rename(incoming, dst_path)
    except OSError as e:
        if retired is not None:
            try:
                os.rename(retired, dst_path)
            except OSError as restore_error:
                raise AtomicReplaceError(
                    f"Moving directory '{incoming}' to '{dst_path}' failed ({e}) and restoring "
                    f"'{retired}' failed: {restore_error}",
                    path=str(retired),
                    context={"destination": str(dst_path)},
                ) from restore_error
        raise AtomicReplaceError(
            f"Moving directory '{incoming}' to '{dst_path}': {e}",
            path=str(incoming),
        ) from e

    if retired is not None:
        try:
            if retired.is_symlink() or retired.is_file():
                retired.unlink()
            else:
                shutil.rmtree(retired)
        except OSError as e:
            raise AtomicReplaceError(f"Deleting dir {retired}: {e}", path=str(retired)) from e

    logger.debug("Replaced %s", dst_path)


__all__ = ["single_line_title", "replace_directory"]
