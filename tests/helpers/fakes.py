"""Fakes for the secret store and the verification hook."""
from __future__ import annotations

from pathlib import Path
from typing import Mapping, Tuple

from vendorsync.core.fetch.exceptions import CacheError, ConfigurationError, VerificationError
from vendorsync.core.fetch.runner import CommandRunner
from vendorsync.core.fetch.secrets import Secret


class StaticSecretFetcher:
    """Secret fetcher over a ``{name: {field: value}}`` mapping; str values are encoded."""

    def __init__(self, secrets: Mapping[str, Mapping[str, bytes | str]]) -> None:
        self._secrets = {
            name: {k: v.encode("utf-8") if isinstance(v, str) else v for k, v in fields.items()}
            for name, fields in secrets.items()
        }
        self.requested: list[str] = []

    def get_secret(self, name: str) -> Secret:
        self.requested.append(name)
        if name not in self._secrets:
            raise ConfigurationError(f"Secret '{name}' not found")
        return Secret(name=name, data=self._secrets[name])


class RecordingVerifier:
    """Verifier that records refs and optionally rejects them."""

    def __init__(self, *, reject: bool = False) -> None:
        self.reject = reject
        self.refs: list[str] = []

    def verify(
        self,
        dst_path: Path,
        ref: str,
        *,
        git: CommandRunner,
        env: Mapping[str, str],
        work_dir: Path,
    ) -> None:
        self.refs.append(ref)
        if self.reject:
            raise VerificationError(f"Signature check failed for {ref}")


class UnwritableCache:
    """Cache that always misses and fails every save."""

    def __init__(self) -> None:
        self.saves: list[tuple[str, str]] = []

    def has(self, cache_type: str, cid: str) -> Tuple[str, bool]:
        return "", False

    def save(self, cache_type: str, cid: str, source_dir: Path) -> None:
        self.saves.append((cache_type, cid))
        raise CacheError(f"Saving {cache_type}/{cid}: disk full")

    def copy_from(self, cache_type: str, cid: str, dest_dir: Path) -> None:
        raise CacheError(f"No cache entry for {cache_type}/{cid}")


__all__ = ["StaticSecretFetcher", "RecordingVerifier", "UnwritableCache"]
