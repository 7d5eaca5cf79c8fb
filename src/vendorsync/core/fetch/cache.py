"""Fetch cache.

Content-addressable directory store keyed by ``(type, id)``. The id of a
source is the SHA-256 of its URL alone, so changing the ref, auth or any other
option of a source keeps reusing the same entry.

Concurrent syncs of different URLs never share an entry. Concurrent syncs of
the same URL race on one entry; callers must serialize those.
"""
from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Mapping, Protocol, Tuple

from vendorsync.core.fetch.exceptions import CacheError

logger = logging.getLogger(__name__)

CACHE_DIR_ENV = "VENDORSYNC_CACHE_DIR"


def cache_id(url: str) -> str:
    """Return the cache id for a source URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class Cache(Protocol):
    def has(self, cache_type: str, cid: str) -> Tuple[str, bool]: ...

    def save(self, cache_type: str, cid: str, source_dir: Path) -> None: ...

    def copy_from(self, cache_type: str, cid: str, dest_dir: Path) -> None: ...


class NoCache:
    """Cache used when caching is disabled: always misses, never stores."""

    def has(self, cache_type: str, cid: str) -> Tuple[str, bool]:
        return "", False

    def save(self, cache_type: str, cid: str, source_dir: Path) -> None:
        return None

    def copy_from(self, cache_type: str, cid: str, dest_dir: Path) -> None:
        raise CacheError(f"No cache entry for {cache_type}/{cid} (caching disabled)")


class DirCache:
    """Filesystem cache rooted at ``cache_dir``.

    Entries live at ``<cache_dir>/<type>/<id>``. A save copies the source
    directory next to the entry first and then swaps it in, so readers see
    either the old entry or the new one.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def entry_path(self, cache_type: str, cid: str) -> Path:
        return self.cache_dir / cache_type / cid

    def has(self, cache_type: str, cid: str) -> Tuple[str, bool]:
        path = self.entry_path(cache_type, cid)
        if path.is_dir():
            return str(path), True
        return "", False

    def save(self, cache_type: str, cid: str, source_dir: Path) -> None:
        entry = self.entry_path(cache_type, cid)
        try:
            entry.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{cid[:12]}-incoming-", dir=entry.parent))
        except OSError as e:
            raise CacheError(f"Preparing cache entry {entry}: {e}", context={"path": str(entry)}) from e

        retired: Path | None = None
        try:
            shutil.copytree(source_dir, staging, symlinks=True, dirs_exist_ok=True)
            if entry.exists():
                retired = entry.with_name(f".{cid[:12]}-retired-{os.getpid()}")
                shutil.rmtree(retired, ignore_errors=True)
                os.rename(entry, retired)
            os.rename(staging, entry)
        except OSError as e:
            if retired is not None and retired.exists() and not entry.exists():
                os.rename(retired, entry)
            raise CacheError(
                f"Saving {source_dir} to cache entry {entry}: {e}",
                context={"path": str(entry)},
            ) from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)
            if retired is not None:
                shutil.rmtree(retired, ignore_errors=True)

        logger.debug("Saved cache entry %s/%s", cache_type, cid)

    def copy_from(self, cache_type: str, cid: str, dest_dir: Path) -> None:
        entry = self.entry_path(cache_type, cid)
        if not entry.is_dir():
            raise CacheError(f"No cache entry for {cache_type}/{cid}", context={"path": str(entry)})
        try:
            shutil.copytree(entry, dest_dir, symlinks=True, dirs_exist_ok=True)
        except OSError as e:
            raise CacheError(
                f"Copying cache entry {entry} to {dest_dir}: {e}",
                context={"path": str(entry)},
            ) from e


def cache_from_env(environ: Mapping[str, str] | None = None) -> Cache:
    """Return a :class:`DirCache` when ``VENDORSYNC_CACHE_DIR`` is set, else :class:`NoCache`."""
    env = os.environ if environ is None else environ
    root = env.get(CACHE_DIR_ENV, "").strip()
    if not root:
        return NoCache()
    return DirCache(Path(root).expanduser())


__all__ = ["CACHE_DIR_ENV", "Cache", "NoCache", "DirCache", "cache_id", "cache_from_env"]
