"""Git backend: bundle-cached fetch of git sources."""
from __future__ import annotations

from vendorsync.core.fetch.git.driver import GitDriver
from vendorsync.core.fetch.git.sync import GIT_CACHE_TYPE, GitSync
from vendorsync.core.fetch.git.verification import GitVerification, Verifier

__all__ = ["GitDriver", "GitSync", "GitVerification", "Verifier", "GIT_CACHE_TYPE"]
