"""Mercurial sync: reuse the cached clone, pull only when needed."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from vendorsync.core.fetch.cache import Cache, NoCache
from vendorsync.core.fetch.exceptions import FetchError
from vendorsync.core.fetch.hg.driver import HgDriver
from vendorsync.core.fetch.models import HgLockRecord, HgSource
from vendorsync.core.fetch.redaction import redact_url_credentials
from vendorsync.core.fetch.runner import CommandRunner
from vendorsync.core.fetch.secrets import SecretFetcher
from vendorsync.core.fetch.sync import replace_directory, single_line_title
from vendorsync.core.fetch.temp import TempArea

logger = logging.getLogger(__name__)

HG_CACHE_TYPE = "hg"


class HgSync:
    """Sync one directory from a Mercurial source.

    On a cache hit the cached clone is copied into staging and pulled only when
    it does not already contain the requested revision id; on a miss a fresh
    clone is made. Either way the updated clone is written back to the cache
    before checkout.
    """

    def __init__(
        self,
        source: HgSource,
        *,
        secrets: SecretFetcher | None = None,
        cache: Cache | None = None,
        runner: CommandRunner | None = None,
        info_log: TextIO | None = None,
    ) -> None:
        self.source = source
        self.secrets = secrets
        self.cache: Cache = cache if cache is not None else NoCache()
        self.runner = runner
        self.info_log = info_log

    def describe(self) -> str:
        return f"{redact_url_credentials(self.source.url)}@{self.source.ref or '?'}"

    def sync(self, dst_path: Path, temp_area: TempArea) -> HgLockRecord:
        driver = HgDriver(
            self.source,
            secrets=self.secrets,
            runner=self.runner,
            info_log=self.info_log,
        )

        with temp_area.scoped_dir("hg") as incoming, driver.session(temp_area):
            cid = driver.cache_id
            try:
                self._fetch(driver, incoming, cid)
                driver.checkout(incoming, self.source.ref)
                info = driver.extract_metadata(incoming)
            except FetchError as e:
                e.context.setdefault("operation", "Fetching hg repository")
                e.context.setdefault("source", self.describe())
                raise

            lock = HgLockRecord(sha=info.sha, change_set_title=single_line_title(info.title))
            replace_directory(incoming, Path(dst_path))

        logger.info("Synced %s at %s", self.describe(), lock.sha[:12])
        return lock

    def _fetch(self, driver: HgDriver, incoming: Path, cid: str) -> None:
        _, found = self.cache.has(HG_CACHE_TYPE, cid)
        if found:
            self.cache.copy_from(HG_CACHE_TYPE, cid, incoming)
            if driver.has_target_revision(incoming):
                logger.debug("Cached clone already has %s", self.source.ref)
                return
            driver.pull(incoming)
        else:
            driver.resolve_and_fetch(incoming)
        self.cache.save(HG_CACHE_TYPE, cid, incoming)


__all__ = ["HgSync", "HG_CACHE_TYPE"]
