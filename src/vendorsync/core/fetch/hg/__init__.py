"""Mercurial backend: whole-clone cached fetch of hg sources."""
from __future__ import annotations

from vendorsync.core.fetch.hg.driver import HgDriver
from vendorsync.core.fetch.hg.sync import HG_CACHE_TYPE, HgSync

__all__ = ["HgDriver", "HgSync", "HG_CACHE_TYPE"]
