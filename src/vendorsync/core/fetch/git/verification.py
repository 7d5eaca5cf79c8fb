"""GPG verification of the resolved git ref.

Runs after the ref is resolved and before it is checked out, so content that
fails verification never reaches the destination.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Protocol, TextIO

from vendorsync.core.fetch.auth import write_private_file
from vendorsync.core.fetch.exceptions import (
    ConfigurationError,
    ProcessExecutionError,
    VerificationError,
)
from vendorsync.core.fetch.models import GitVerificationOptions
from vendorsync.core.fetch.runner import CommandRunner, SubprocessRunner
from vendorsync.core.fetch.secrets import SecretFetcher

logger = logging.getLogger(__name__)


class Verifier(Protocol):
    def verify(
        self,
        dst_path: Path,
        ref: str,
        *,
        git: CommandRunner,
        env: Mapping[str, str],
        work_dir: Path,
    ) -> None: ...


class GitVerification:
    """Verify tag or commit signatures against keys from a secret.

    Every field of the referenced secret is treated as one armored public key.
    Keys are imported into a throwaway ``GNUPGHOME`` under ``work_dir``.
    """

    def __init__(
        self,
        options: GitVerificationOptions,
        secrets: SecretFetcher | None,
        *,
        gpg: CommandRunner | None = None,
        info_log: TextIO | None = None,
    ) -> None:
        self.options = options
        self.secrets = secrets
        self.gpg: CommandRunner = gpg or SubprocessRunner("gpg", info_log)

    def verify(
        self,
        dst_path: Path,
        ref: str,
        *,
        git: CommandRunner,
        env: Mapping[str, str],
        work_dir: Path,
    ) -> None:
        name = self.options.public_keys_secret_ref.name
        if self.secrets is None:
            raise ConfigurationError(f"Secret '{name}' is referenced but no secret store is configured")
        secret = self.secrets.get_secret(name)
        if not secret.data:
            raise ConfigurationError(f"Expected at least one public key in secret '{name}'")

        gnupg_home = work_dir / "gnupg"
        gnupg_home.mkdir(mode=0o700, parents=True, exist_ok=True)
        verify_env = dict(env)
        verify_env["GNUPGHOME"] = str(gnupg_home)

        for idx, (field, raw) in enumerate(sorted(secret.data.items())):
            try:
                armored = raw.decode("utf-8")
            except UnicodeDecodeError:
                raise ConfigurationError(
                    f"Secret '{name}' field '{field}' is not valid UTF-8",
                    context={"secret": name, "field": field},
                ) from None
            key_path = gnupg_home / f"key-{idx}.asc"
            write_private_file(key_path, armored)
            try:
                self.gpg.run(["--batch", "--import", str(key_path)], env=verify_env, cwd=work_dir)
            except ProcessExecutionError as e:
                raise VerificationError(
                    f"Importing public key '{field}' from secret '{name}': {e}"
                ) from e

        target, kind = self._resolve_object(dst_path, ref, git=git, env=verify_env)
        args = ["verify-tag", target] if kind == "tag" else ["verify-commit", target]
        try:
            git.run(args, env=verify_env, cwd=dst_path)
        except ProcessExecutionError as e:
            raise VerificationError(
                f"Verifying {kind} '{ref}': {e.stderr.strip() or e}",
                context={"ref": ref},
            ) from e

        logger.info("Verified %s signature for %s", kind, ref)

    @staticmethod
    def _resolve_object(
        dst_path: Path, ref: str, *, git: CommandRunner, env: Mapping[str, str]
    ) -> tuple[str, str]:
        # Branch names only exist as remote-tracking refs after a fetch.
        for candidate in (ref, f"origin/{ref}"):
            try:
                out = git.run(["cat-file", "-t", candidate], env=env, cwd=dst_path).stdout
            except ProcessExecutionError:
                continue
            return candidate, out.strip()
        raise VerificationError(f"Resolving ref '{ref}' for verification: object not found")


__all__ = ["Verifier", "GitVerification"]

