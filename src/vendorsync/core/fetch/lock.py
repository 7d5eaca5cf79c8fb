"""Lock file management.

Records the revision each vendored directory was last synced to, so a run can
report what changed and the result can be committed for review.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from vendorsync.core.fetch.exceptions import ConfigurationError
from vendorsync.core.fetch.models import GitLockRecord, HgLockRecord

LOCK_FILENAME = "vendorsync.lock.yml"


@dataclass(frozen=True, slots=True)
class LockEntry:
    """Lock file entry for one directory.

    Attributes:
        path: Directory path relative to the repo root
        git: Lock record when the directory comes from git
        hg: Lock record when the directory comes from Mercurial
    """

    path: str
    git: GitLockRecord | None = None
    hg: HgLockRecord | None = None

    @property
    def sha(self) -> str | None:
        record = self.git or self.hg
        return record.sha if record is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": self.path}
        if self.git is not None:
            data["git"] = self.git.to_dict()
        if self.hg is not None:
            data["hg"] = self.hg.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockEntry:
        if not isinstance(data, dict) or not data.get("path"):
            raise ValueError(f"Lock entry missing required key 'path': {data!r}")
        git = GitLockRecord.from_dict(data["git"]) if data.get("git") else None
        hg = HgLockRecord.from_dict(data["hg"]) if data.get("hg") else None
        return cls(path=str(data["path"]), git=git, hg=hg)


class LockFile:
    """Manages the ``vendorsync.lock.yml`` file.

    Entries are keyed by directory path and written sorted by path for
    deterministic output. Source URLs are never stored.
    """

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = Path(lock_path)
        self._entries: dict[str, LockEntry] = {}

    def load(self) -> None:
        """Load an existing lock file; a missing file means no entries.

        Raises:
            ConfigurationError: If the file is not valid YAML or has bad entries
        """
        if not self.lock_path.exists():
            return

        try:
            data = yaml.safe_load(self.lock_path.read_text(encoding="utf-8")) or {}
            for item in data.get("directories", []) or []:
                entry = LockEntry.from_dict(item)
                self._entries[entry.path] = entry
        except (yaml.YAMLError, ValueError, KeyError, AttributeError) as e:
            raise ConfigurationError(
                f"Invalid lock file {self.lock_path}: {e}",
                context={"path": str(self.lock_path)},
            ) from e

    def add_entry(self, entry: LockEntry) -> None:
        self._entries[entry.path] = entry

    def get_entry(self, path: str) -> LockEntry | None:
        return self._entries.get(path)

    def get_entries(self) -> list[LockEntry]:
        return list(self._entries.values())

    def save(self) -> None:
        """Write the lock file, creating its directory if needed."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)

        sorted_entries = sorted(self._entries.values(), key=lambda e: e.path)
        data = {"directories": [entry.to_dict() for entry in sorted_entries]}

        content = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
        self.lock_path.write_text(content, encoding="utf-8")


__all__ = ["LockFile", "LockEntry", "LOCK_FILENAME"]
