"""Git sync: fetch into staging, cache a bundle, swap into place."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from vendorsync.core.fetch.cache import Cache, NoCache, cache_id
from vendorsync.core.fetch.exceptions import FetchError
from vendorsync.core.fetch.git.driver import GitDriver
from vendorsync.core.fetch.git.verification import Verifier
from vendorsync.core.fetch.models import GitLockRecord, GitSource
from vendorsync.core.fetch.redaction import redact_url_credentials
from vendorsync.core.fetch.runner import CommandRunner
from vendorsync.core.fetch.secrets import SecretFetcher
from vendorsync.core.fetch.sync import replace_directory, single_line_title
from vendorsync.core.fetch.temp import TempArea

logger = logging.getLogger(__name__)

GIT_CACHE_TYPE = "git-bundle"
BUNDLE_FILENAME = "bundle"


class GitSync:
    """Sync one directory from a git source.

    The cache holds a bundle of every ref fetched last time. It is unbundled
    before the live fetch, which still runs, so the cache only saves transfer.
    """

    def __init__(
        self,
        source: GitSource,
        *,
        secrets: SecretFetcher | None = None,
        cache: Cache | None = None,
        runner: CommandRunner | None = None,
        info_log: TextIO | None = None,
        verifier: Verifier | None = None,
    ) -> None:
        self.source = source
        self.secrets = secrets
        self.cache: Cache = cache if cache is not None else NoCache()
        self.runner = runner
        self.info_log = info_log
        self.verifier = verifier

    def describe(self) -> str:
        ref = "?"
        if self.source.ref:
            ref = self.source.ref
        elif self.source.ref_selection is not None:
            ref = self.source.ref_selection.description()
        return f"{redact_url_credentials(self.source.url)}@{ref}"

    def sync(self, dst_path: Path, temp_area: TempArea) -> GitLockRecord:
        """Fetch the source and replace ``dst_path`` with it.

        Returns:
            Lock record for the checked out revision

        Raises:
            FetchError: any failure; ``dst_path`` is left untouched
        """
        driver = GitDriver(
            self.source,
            secrets=self.secrets,
            runner=self.runner,
            info_log=self.info_log,
            verifier=self.verifier,
        )
        cid = cache_id(self.source.url)

        with temp_area.scoped_dir("git") as incoming, driver.session(temp_area):
            bundle = self._cached_bundle(cid)
            try:
                info = driver.retrieve(incoming, bundle=bundle)
            except FetchError as e:
                e.context.setdefault("operation", "Fetching git repository")
                e.context.setdefault("source", self.describe())
                raise

            lock = GitLockRecord(
                sha=info.sha,
                tags=info.tags,
                commit_title=single_line_title(info.title),
            )

            if not isinstance(self.cache, NoCache):
                self._save_bundle(driver, incoming, temp_area, cid)

            replace_directory(incoming, Path(dst_path))

        logger.info("Synced %s at %s", self.describe(), lock.sha[:12])
        return lock

    def _cached_bundle(self, cid: str) -> Path | None:
        entry, found = self.cache.has(GIT_CACHE_TYPE, cid)
        if not found:
            return None
        bundle = Path(entry) / BUNDLE_FILENAME
        if not bundle.is_file():
            logger.warning("Cache entry %s has no bundle; fetching without it", entry)
            return None
        return bundle

    def _save_bundle(self, driver: GitDriver, incoming: Path, temp_area: TempArea, cid: str) -> None:
        with temp_area.scoped_dir("bundle-cache") as bundle_dir:
            driver.create_bundle(incoming, bundle_dir / BUNDLE_FILENAME)
            self.cache.save(GIT_CACHE_TYPE, cid, bundle_dir)


__all__ = ["GitSync", "GIT_CACHE_TYPE"]
