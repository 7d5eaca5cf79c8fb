"""Secret retrieval.

Sources only ever hold a :class:`SecretRef`; the bytes come from a
:class:`SecretFetcher` at sync time.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol

from vendorsync.core.fetch.exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class Secret:
    """Named secret with raw field values."""

    name: str
    data: Mapping[str, bytes] = field(default_factory=dict)


class SecretFetcher(Protocol):
    def get_secret(self, name: str) -> Secret: ...


class InMemorySecretStore:
    """Secret fetcher backed by the ``secrets`` section of the config file."""

    def __init__(self, secrets: Iterable[Secret] = ()) -> None:
        self._secrets: dict[str, Secret] = {s.name: s for s in secrets}

    @classmethod
    def from_config(cls, items: Iterable[Mapping[str, Any]]) -> InMemorySecretStore:
        """Build a store from config items.

        ``data`` values are base64 encoded, ``stringData`` values are plain
        text; ``stringData`` wins when a field appears in both.
        """
        secrets: list[Secret] = []
        for item in items:
            name = str(item["name"])
            values: dict[str, bytes] = {}
            for key, raw in (item.get("data") or {}).items():
                try:
                    values[key] = base64.b64decode(str(raw), validate=True)
                except (binascii.Error, ValueError) as e:
                    raise ConfigurationError(
                        f"Secret '{name}' field '{key}' is not valid base64: {e}"
                    ) from e
            for key, raw in (item.get("stringData") or {}).items():
                values[key] = str(raw).encode("utf-8")
            secrets.append(Secret(name=name, data=values))
        return cls(secrets)

    def get_secret(self, name: str) -> Secret:
        try:
            return self._secrets[name]
        except KeyError:
            raise ConfigurationError(f"Secret '{name}' not found") from None


__all__ = ["Secret", "SecretFetcher", "InMemorySecretStore"]
