"""Vendor sync manager.

High-level orchestration of directory syncs and lock file updates.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, TextIO

from vendorsync.core.exceptions import VendorsyncError
from vendorsync.core.fetch.cache import Cache, cache_from_env
from vendorsync.core.fetch.config import ProjectConfig
from vendorsync.core.fetch.exceptions import ConfigurationError
from vendorsync.core.fetch.git import GitSync
from vendorsync.core.fetch.hg import HgSync
from vendorsync.core.fetch.lock import LockEntry, LockFile
from vendorsync.core.fetch.models import DirectoryEntry, GitLockRecord, HgLockRecord, SyncResult
from vendorsync.core.fetch.runner import CommandRunner
from vendorsync.core.fetch.secrets import SecretFetcher
from vendorsync.core.fetch.temp import TempArea

logger = logging.getLogger(__name__)

TEMP_DIRNAME = ".vendorsync-tmp"


class VendorSyncManager:
    """Manages directory synchronization.

    Coordinates config loading, per-backend syncs and lock file updates.
    Directories are synced one after another; a failing directory is
    reported in its :class:`SyncResult` and does not stop the others.
    """

    def __init__(
        self,
        repo_root: Path,
        *,
        config_path: Path | None = None,
        cache: Cache | None = None,
        runners: Mapping[str, CommandRunner] | None = None,
        info_log: TextIO | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize sync manager.

        Args:
            repo_root: Path to repository root
            config_path: Config file override
            cache: Cache to use; defaults to ``VENDORSYNC_CACHE_DIR`` lookup
            runners: Command runners keyed by executable name ("git", "hg")
            info_log: Stream receiving command headers and output
            environ: Environment used for the cache lookup
        """
        self.repo_root = Path(repo_root)
        self.config = ProjectConfig(self.repo_root, config_path)
        self.lock = LockFile(self.config.lock_path)
        self.cache = cache if cache is not None else cache_from_env(environ)
        self.runners = dict(runners or {})
        self.info_log = info_log

    @property
    def temp_root(self) -> Path:
        return self.repo_root / TEMP_DIRNAME

    def sync_all(self) -> list[SyncResult]:
        """Sync all configured directories.

        Returns:
            List of sync results, one per directory

        Raises:
            ConfigurationError: If the config or lock file cannot be loaded
        """
        entries = self.config.get_directories()
        return self._sync_entries(entries)

    def sync_directory(self, path: str) -> SyncResult:
        """Sync a single configured directory.

        Raises:
            ConfigurationError: If no directory is configured at ``path``
        """
        entry = self.config.get_directory(path)
        if entry is None:
            raise ConfigurationError(f"Directory not configured: {path}", context={"path": path})
        return self._sync_entries([entry])[0]

    def _sync_entries(self, entries: list[DirectoryEntry]) -> list[SyncResult]:
        self.lock.load()
        secrets = self.config.get_secret_store()
        temp_area = TempArea(self.temp_root)

        results: list[SyncResult] = []
        try:
            for entry in entries:
                results.append(self._sync_one(entry, secrets, temp_area))
        finally:
            temp_area.cleanup()
        return results

    def _sync_one(self, entry: DirectoryEntry, secrets: SecretFetcher, temp_area: TempArea) -> SyncResult:
        previous = self.lock.get_entry(entry.path)
        previous_sha = previous.sha if previous else None
        dst_path = self.repo_root / entry.path

        try:
            record = self._run_sync(entry, secrets, temp_area, dst_path)
        except VendorsyncError as e:
            logger.error("Syncing %s failed: %s", entry.path, e)
            return SyncResult(
                path=entry.path,
                success=False,
                previous_sha=previous_sha,
                error=str(e),
                details=e.to_json_error(),
            )

        if isinstance(record, GitLockRecord):
            lock_entry = LockEntry(path=entry.path, git=record)
        else:
            lock_entry = LockEntry(path=entry.path, hg=record)
        self.lock.add_entry(lock_entry)
        # Persist after each directory so partial progress survives an interrupted run.
        self.lock.save()

        return SyncResult(
            path=entry.path,
            success=True,
            sha=record.sha,
            previous_sha=previous_sha,
            changed=record.sha != previous_sha,
            details=record.to_dict(),
        )

    def _run_sync(
        self,
        entry: DirectoryEntry,
        secrets: SecretFetcher,
        temp_area: TempArea,
        dst_path: Path,
    ) -> GitLockRecord | HgLockRecord:
        if entry.git is not None:
            git_sync = GitSync(
                entry.git,
                secrets=secrets,
                cache=self.cache,
                runner=self.runners.get("git"),
                info_log=self.info_log,
            )
            logger.info("Syncing %s from %s", entry.path, git_sync.describe())
            return git_sync.sync(dst_path, temp_area)

        if entry.hg is not None:
            hg_sync = HgSync(
                entry.hg,
                secrets=secrets,
                cache=self.cache,
                runner=self.runners.get("hg"),
                info_log=self.info_log,
            )
            logger.info("Syncing %s from %s", entry.path, hg_sync.describe())
            return hg_sync.sync(dst_path, temp_area)

        raise ConfigurationError(f"Directory '{entry.path}' has no git or hg source")


__all__ = ["VendorSyncManager", "TEMP_DIRNAME"]
