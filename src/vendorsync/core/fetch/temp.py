"""Temporary areas for auth material, fetch staging and cache writes."""
from __future__ import annotations

import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from vendorsync.core.fetch.exceptions import FetchError


class TempArea:
    """Creates uniquely named directories under one root.

    The root should live on the same filesystem as the destination tree so the
    final staging-to-destination rename stays a rename.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def new_temp_dir(self, prefix: str) -> Path:
        """Create a fresh directory named ``<prefix>-<random>``.

        The caller owns the directory and must remove it.
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=self.root))
        except OSError as e:
            raise FetchError(
                f"Creating temp dir '{prefix}' under {self.root}: {e}",
                context={"path": str(self.root)},
            ) from e

    @contextmanager
    def scoped_dir(self, prefix: str) -> Iterator[Path]:
        """Yield a new temp dir and remove it on every exit path."""
        path = self.new_temp_dir(prefix)
        try:
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)

    def cleanup(self) -> None:
        """Remove the whole temp root."""
        shutil.rmtree(self.root, ignore_errors=True)


__all__ = ["TempArea"]
