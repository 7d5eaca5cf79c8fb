"""Credential staging.

Turns a secret into auth material and writes the parts that VCS engines
need on disk (private key, known hosts) into a per-sync auth directory.
The directory is removed when :func:`stage_credentials` exits, whatever
happened inside the ``with`` block.
"""
from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from vendorsync.core.fetch.exceptions import ConfigurationError, CredentialStagingError
from vendorsync.core.fetch.models import SecretRef
from vendorsync.core.fetch.secrets import SecretFetcher
from vendorsync.core.fetch.temp import TempArea

logger = logging.getLogger(__name__)

BASE_SSH_COMMAND: tuple[str, ...] = (
    "ssh",
    "-o", "ServerAliveInterval=30",
    "-o", "ForwardAgent=no",
    "-F", "/dev/null",
)


class SecretField(str, Enum):
    """Secret field names understood by the VCS backends."""

    PRIVATE_KEY = "ssh-privatekey"
    KNOWN_HOSTS = "ssh-knownhosts"
    USERNAME = "username"
    PASSWORD = "password"


@dataclass(frozen=True, slots=True)
class AuthMaterial:
    private_key: Optional[str] = None
    known_hosts: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    def is_present(self) -> bool:
        return any(v is not None for v in (self.private_key, self.known_hosts, self.username, self.password))

    def has_basic_auth(self) -> bool:
        return self.username is not None and self.password is not None

    def validate_for(self, url: str) -> None:
        """Reject combinations that no backend can use.

        Raises:
            ConfigurationError: username without password (or the reverse),
                basic auth mixed with SSH key material, or basic auth over a
                non-https remote
        """
        if (self.username is None) != (self.password is None):
            raise ConfigurationError("Username and password must be provided together")
        if self.has_basic_auth():
            if self.private_key is not None or self.known_hosts is not None:
                raise ConfigurationError(
                    "Username/password authentication cannot be combined with SSH key material"
                )
            if not url.startswith("https://"):
                raise ConfigurationError(
                    "Username/password authentication is only supported for https remotes"
                )


def decode_secret(secret_name: str, data: dict[str, bytes]) -> AuthMaterial:
    """Decode secret fields into :class:`AuthMaterial`.

    Raises:
        ConfigurationError: If a field name is not a :class:`SecretField`
            or a value is not valid UTF-8
    """
    values: dict[SecretField, str] = {}
    for name, raw in data.items():
        try:
            key = SecretField(name)
        except ValueError:
            raise ConfigurationError(
                f"Unknown secret field '{name}' in secret '{secret_name}'",
                context={"secret": secret_name, "field": name},
            ) from None
        values[key] = _field_text(secret_name, name, raw)

    return AuthMaterial(
        private_key=values.get(SecretField.PRIVATE_KEY),
        known_hosts=values.get(SecretField.KNOWN_HOSTS),
        username=values.get(SecretField.USERNAME),
        password=values.get(SecretField.PASSWORD),
    )


def _field_text(secret_name: str, name: str, raw: bytes | str) -> str:
    if not isinstance(raw, bytes):
        return str(raw)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ConfigurationError(
            f"Secret '{secret_name}' field '{name}' is not valid UTF-8",
            context={"secret": secret_name, "field": name},
        ) from None


def load_auth_material(secret_ref: SecretRef | None, fetcher: SecretFetcher | None) -> AuthMaterial:
    """Fetch and decode the referenced secret (empty material without a ref)."""
    if secret_ref is None:
        return AuthMaterial()
    if fetcher is None:
        raise ConfigurationError(
            f"Secret '{secret_ref.name}' is referenced but no secret store is configured"
        )
    secret = fetcher.get_secret(secret_ref.name)
    return decode_secret(secret_ref.name, dict(secret.data))


@dataclass(frozen=True, slots=True)
class StagedCredentials:
    """Auth material written to disk for one sync.

    Attributes:
        auth_dir: Directory holding every staged file
        material: Decoded material
        ssh_command: Full ssh invocation, or None when no material is present
        private_key_path: Staged key file
        known_hosts_path: Staged known-hosts file
    """

    auth_dir: Path
    material: AuthMaterial
    ssh_command: Optional[tuple[str, ...]] = None
    private_key_path: Optional[Path] = None
    known_hosts_path: Optional[Path] = None

    def ssh_command_line(self) -> str:
        return " ".join(self.ssh_command or ())


def write_private_file(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` readable by the owner only."""
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.chmod(path, 0o600)
    except OSError as e:
        raise CredentialStagingError(f"Writing {path}: {e}", context={"path": str(path)}) from e


@contextmanager
def stage_credentials(
    material: AuthMaterial,
    temp_area: TempArea,
    prefix: str,
) -> Iterator[StagedCredentials]:
    """Stage ``material`` in a fresh auth dir and remove it afterwards.

    The private key always ends with a newline; OpenSSH refuses keys without
    one. With known hosts present strict host key checking is enabled,
    otherwise it is disabled.
    """
    auth_dir = temp_area.new_temp_dir(prefix)
    try:
        ssh_command: Optional[tuple[str, ...]] = None
        key_path: Optional[Path] = None
        hosts_path: Optional[Path] = None

        if material.is_present():
            cmd = list(BASE_SSH_COMMAND)

            if material.private_key is not None:
                key_path = auth_dir / "private-key"
                key = material.private_key
                if not key.endswith("\n"):
                    key += "\n"
                write_private_file(key_path, key)
                cmd += ["-i", str(key_path), "-o", "IdentitiesOnly=yes"]

            if material.known_hosts is not None:
                hosts_path = auth_dir / "known-hosts"
                write_private_file(hosts_path, material.known_hosts)
                cmd += ["-o", "StrictHostKeyChecking=yes", "-o", f"UserKnownHostsFile={hosts_path}"]
            else:
                cmd += ["-o", "StrictHostKeyChecking=no"]

            ssh_command = tuple(cmd)

        yield StagedCredentials(
            auth_dir=auth_dir,
            material=material,
            ssh_command=ssh_command,
            private_key_path=key_path,
            known_hosts_path=hosts_path,
        )
    finally:
        shutil.rmtree(auth_dir, ignore_errors=True)
        logger.debug("Removed auth dir %s", auth_dir)


__all__ = [
    "BASE_SSH_COMMAND",
    "SecretField",
    "AuthMaterial",
    "StagedCredentials",
    "decode_secret",
    "load_auth_material",
    "stage_credentials",
    "write_private_file",
]
