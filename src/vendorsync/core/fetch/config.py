"""Project configuration loading.

Loads ``vendorsync.yml`` from the repository root, validates it against a JSON
Schema and turns it into directory entries plus a secret store.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml
from jsonschema import Draft202012Validator

from vendorsync.core.fetch.exceptions import ConfigurationError
from vendorsync.core.fetch.lock import LOCK_FILENAME
from vendorsync.core.fetch.models import DirectoryEntry
from vendorsync.core.fetch.redaction import SERVICE_USERS
from vendorsync.core.fetch.secrets import InMemorySecretStore

CONFIG_FILENAME = "vendorsync.yml"

_SECRET_REF = {
    "type": "object",
    "properties": {"name": {"type": "string", "minLength": 1}},
    "required": ["name"],
    "additionalProperties": False,
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "directories": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "minLength": 1},
                    "git": {
                        "type": "object",
                        "properties": {
                            "url": {"type": "string"},
                            "ref": {"type": "string"},
                            "refSelection": {
                                "type": "object",
                                "properties": {
                                    "semver": {
                                        "type": "object",
                                        "properties": {
                                            "constraints": {"type": "string"},
                                            "prereleases": {
                                                "type": "object",
                                                "properties": {"identifiers": _STRING_LIST},
                                                "additionalProperties": False,
                                            },
                                        },
                                        "required": ["constraints"],
                                        "additionalProperties": False,
                                    },
                                },
                                "required": ["semver"],
                                "additionalProperties": False,
                            },
                            "depth": {"type": "integer", "minimum": 0},
                            "skipInitSubmodules": {"type": "boolean"},
                            "lfsSkipSmudge": {"type": "boolean"},
                            "dangerousSkipTLSVerify": {"type": "boolean"},
                            "forceHTTPBasicAuth": {"type": "boolean"},
                            "sparseCheckout": {"type": "boolean"},
                            "includePaths": _STRING_LIST,
                            "excludePaths": _STRING_LIST,
                            "secretRef": _SECRET_REF,
                            "verification": {
                                "type": "object",
                                "properties": {"publicKeysSecretRef": _SECRET_REF},
                                "required": ["publicKeysSecretRef"],
                                "additionalProperties": False,
                            },
                        },
                        "required": ["url"],
                        "additionalProperties": False,
                    },
                    "hg": {
                        "type": "object",
                        "properties": {
                            "url": {"type": "string"},
                            "ref": {"type": "string"},
                            "evolve": {"type": "boolean"},
                            "secretRef": _SECRET_REF,
                        },
                        "required": ["url"],
                        "additionalProperties": False,
                    },
                },
                "required": ["path"],
                "oneOf": [{"required": ["git"]}, {"required": ["hg"]}],
                "additionalProperties": False,
            },
        },
        "secrets": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "data": {"type": "object", "additionalProperties": {"type": "string"}},
                    "stringData": {"type": "object", "additionalProperties": {"type": "string"}},
                },
                "required": ["name"],
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}


class ProjectConfig:
    """Load and access the project configuration.

    The config is read from ``vendorsync.yml`` in the repository root unless an
    explicit path is given.
    """

    def __init__(self, repo_root: Path, config_path: Path | None = None) -> None:
        """Initialize project config.

        Args:
            repo_root: Path to repository root
            config_path: Config file override; relative paths resolve against
                the repo root
        """
        self.repo_root = Path(repo_root)
        if config_path is None:
            self.config_path = self.repo_root / CONFIG_FILENAME
        else:
            path = Path(config_path)
            self.config_path = path if path.is_absolute() else self.repo_root / path
        self._config: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        """Load and schema-check the config file.

        Returns:
            Configuration dictionary, empty if the file doesn't exist

        Raises:
            ConfigurationError: If the file is not valid YAML or fails the schema
        """
        if self._config is not None:
            return self._config

        if not self.config_path.exists():
            self._config = {}
            return self._config

        try:
            data = yaml.safe_load(self.config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {self.config_path}: {e}",
                context={"path": str(self.config_path)},
            ) from e

        validator = Draft202012Validator(CONFIG_SCHEMA)
        errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
        if errors:
            problems = []
            for err in errors:
                where = "/".join(str(p) for p in err.path) or "<root>"
                problems.append(f"{where}: {err.message}")
            raise ConfigurationError(
                f"Invalid config {self.config_path}:\n  " + "\n  ".join(problems),
                context={"path": str(self.config_path), "errors": problems},
            )

        self._config = data
        return self._config

    def get_directories(self) -> list[DirectoryEntry]:
        """Get the configured directories.

        Raises:
            ConfigurationError: If the config is invalid or an entry is unsafe
        """
        config = self._load()
        entries: list[DirectoryEntry] = []
        seen: set[str] = set()
        for item in config.get("directories", []) or []:
            self._validate_directory_item(item)
            entry = DirectoryEntry.from_dict(item)
            if entry.path in seen:
                raise ConfigurationError(f"Directory '{entry.path}' is configured more than once.")
            seen.add(entry.path)
            entries.append(entry)
        return entries

    def get_directory(self, path: str) -> DirectoryEntry | None:
        wanted = Path(path).as_posix().rstrip("/")
        for entry in self.get_directories():
            if Path(entry.path).as_posix().rstrip("/") == wanted:
                return entry
        return None

    def get_secret_store(self) -> InMemorySecretStore:
        return InMemorySecretStore.from_config(self._load().get("secrets", []) or [])

    @property
    def lock_path(self) -> Path:
        return self.config_path.parent / LOCK_FILENAME

    def _validate_directory_item(self, item: dict[str, Any]) -> None:
        """Reject unsafe values in a directory entry.

        URLs and refs end up as VCS arguments and paths decide what gets
        replaced, so both are checked before any command runs.
        """
        path_str = str(item.get("path", "")).strip()
        source = item.get("git") or item.get("hg") or {}
        url = str(source.get("url", "")).strip()
        ref = str(source.get("ref", "")).strip()

        if any(x.startswith("-") for x in (url, ref)):
            raise ConfigurationError(
                f"Directory '{path_str}' has unsafe url/ref (must not start with '-')."
            )
        if any(any(ch.isspace() for ch in x) for x in (url, ref)):
            raise ConfigurationError(
                f"Directory '{path_str}' has unsafe url/ref (must not contain whitespace)."
            )
        if _has_embedded_credentials(url):
            raise ConfigurationError(
                f"Directory '{path_str}' has unsafe url (use secretRef instead of embedded credentials)."
            )

        for pattern in list(source.get("includePaths") or []) + list(source.get("excludePaths") or []):
            if str(pattern).strip().startswith("-"):
                raise ConfigurationError(
                    f"Directory '{path_str}' has unsafe sparse path '{pattern}' (must not start with '-')."
                )

        path_obj = Path(path_str)
        if path_obj.is_absolute():
            raise ConfigurationError(f"Directory '{path_str}' is unsafe (must be relative).")
        if path_str.startswith("~"):
            raise ConfigurationError(f"Directory '{path_str}' is unsafe (must not start with '~').")

        repo_root_resolved = self.repo_root.resolve()
        target = (self.repo_root / path_obj).resolve()
        if not target.is_relative_to(repo_root_resolved):
            raise ConfigurationError(f"Directory '{path_str}' is unsafe (escapes repo root).")
        if target == repo_root_resolved:
            raise ConfigurationError(f"Directory '{path_str}' is unsafe (must not be repo root).")


def _has_embedded_credentials(url: str) -> bool:
    if "://" in url:
        parts = urlsplit(url)
        if parts.password is not None:
            return True
        return parts.username is not None and parts.username not in SERVICE_USERS
    m = re.match(r"(?P<user>[^@\s/]+)@(?P<host>[^:\s/]+):", url)
    return bool(m) and m.group("user") not in SERVICE_USERS


__all__ = ["ProjectConfig", "CONFIG_FILENAME", "CONFIG_SCHEMA"]
