"""Common interface of the VCS protocol drivers."""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import ClassVar, Dict, Iterator, Optional, TextIO

from vendorsync.core.fetch.auth import (
    StagedCredentials,
    load_auth_material,
    stage_credentials,
)
from vendorsync.core.fetch.exceptions import ConfigurationError, FetchError
from vendorsync.core.fetch.models import RevisionInfo, SecretRef
from vendorsync.core.fetch.runner import CommandRunner, SubprocessRunner
from vendorsync.core.fetch.secrets import SecretFetcher
from vendorsync.core.fetch.temp import TempArea


class VCSDriver(ABC):
    """Drives one external VCS engine for one source.

    Usage::

        with driver.session(temp_area):
            ref = driver.resolve_and_fetch(path)
            driver.checkout(path, ref)
            info = driver.extract_metadata(path)

    Commands may only run inside :meth:`session`, which stages credentials and
    builds the process environment, and removes both on exit.
    """

    executable: ClassVar[str]

    def __init__(
        self,
        url: str,
        secret_ref: SecretRef | None,
        *,
        secrets: SecretFetcher | None = None,
        runner: CommandRunner | None = None,
        info_log: TextIO | None = None,
    ) -> None:
        self.url = url
        self.secret_ref = secret_ref
        self.secrets = secrets
        self.runner: CommandRunner = runner or SubprocessRunner(self.executable, info_log)
        self._env: Optional[Dict[str, str]] = None
        self._staged: Optional[StagedCredentials] = None

    @contextmanager
    def session(self, temp_area: TempArea) -> Iterator[StagedCredentials]:
        """Stage credentials and build the environment for this sync.

        Raises:
            ConfigurationError: If the URL is empty or the auth material is
                unusable with it; raised before any command runs
        """
        if not self.url:
            raise ConfigurationError("Expected non-empty URL")
        self.validate()

        material = load_auth_material(self.secret_ref, self.secrets)
        material.validate_for(self.url)

        with stage_credentials(material, temp_area, f"{self.executable}-auth") as staged:
            self._staged = staged
            try:
                self._env = self.build_env(staged)
                yield staged
            finally:
                self._env = None
                self._staged = None

    @property
    def env(self) -> Dict[str, str]:
        if self._env is None:
            raise FetchError(f"{self.executable} commands must run inside a driver session")
        return self._env

    @property
    def staged(self) -> StagedCredentials:
        if self._staged is None:
            raise FetchError(f"{self.executable} credentials are only available inside a driver session")
        return self._staged

    def validate(self) -> None:
        """Check source options before anything is staged or run."""

    def run(self, args: list[str], cwd: Path) -> str:
        return self.runner.run(args, env=self.env, cwd=cwd).stdout

    @abstractmethod
    def build_env(self, staged: StagedCredentials) -> Dict[str, str]:
        """Return the full process environment for this sync."""

    @abstractmethod
    def resolve_and_fetch(self, dst_path: Path, *, bundle: Path | None = None) -> str:
        """Fetch history into ``dst_path`` and return the ref to check out."""

    @abstractmethod
    def checkout(self, dst_path: Path, ref: str) -> None:
        """Materialize ``ref`` in the working area."""

    @abstractmethod
    def extract_metadata(self, dst_path: Path) -> RevisionInfo:
        """Read the revision id, labels and message of the checked out revision."""

    def retrieve(self, dst_path: Path, *, bundle: Path | None = None) -> RevisionInfo:
        """Run fetch, checkout and metadata extraction in order."""
        ref = self.resolve_and_fetch(dst_path, bundle=bundle)
        self.checkout(dst_path, ref)
        return self.extract_metadata(dst_path)


__all__ = ["VCSDriver"]
