"""vendorsync fetch engine.

Synchronizes vendored directories with pinned git and Mercurial sources.

Key components:
- ProjectConfig: Load ``vendorsync.yml`` into directory entries and secrets
- LockFile: Deterministic lock file with the resolved revisions
- GitSync / HgSync: Per-backend fetch, cache and atomic replace
- VendorSyncManager: Orchestrate syncs for every configured directory
"""
from __future__ import annotations

from vendorsync.core.fetch.cache import Cache, DirCache, NoCache, cache_from_env, cache_id
from vendorsync.core.fetch.config import ProjectConfig
from vendorsync.core.fetch.exceptions import (
    AtomicReplaceError,
    CacheError,
    ConfigurationError,
    CredentialStagingError,
    FetchError,
    NoMatchingVersionError,
    ProcessExecutionError,
    ResolutionError,
    VerificationError,
)
from vendorsync.core.fetch.lock import LockEntry, LockFile
from vendorsync.core.fetch.models import (
    DirectoryEntry,
    GitLockRecord,
    GitSource,
    HgLockRecord,
    HgSource,
    SyncResult,
)
from vendorsync.core.fetch.secrets import InMemorySecretStore, Secret, SecretFetcher
from vendorsync.core.fetch.temp import TempArea
from vendorsync.core.fetch.git import GitSync
from vendorsync.core.fetch.hg import HgSync
from vendorsync.core.fetch.manager import VendorSyncManager

__all__ = [
    # Config
    "ProjectConfig",
    # Lock
    "LockFile",
    "LockEntry",
    # Sync
    "GitSync",
    "HgSync",
    "VendorSyncManager",
    "TempArea",
    # Cache
    "Cache",
    "DirCache",
    "NoCache",
    "cache_from_env",
    "cache_id",
    # Secrets
    "Secret",
    "SecretFetcher",
    "InMemorySecretStore",
    # Models
    "GitSource",
    "HgSource",
    "DirectoryEntry",
    "GitLockRecord",
    "HgLockRecord",
    "SyncResult",
    # Exceptions
    "FetchError",
    "ConfigurationError",
    "CredentialStagingError",
    "ProcessExecutionError",
    "ResolutionError",
    "NoMatchingVersionError",
    "VerificationError",
    "CacheError",
    "AtomicReplaceError",
]
