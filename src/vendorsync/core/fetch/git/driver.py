"""Git protocol driver.

Builds the working area with ``git init`` + ``git fetch`` rather than
``git clone`` so that a cached bundle can be unbundled before the network
fetch and only the missing objects are transferred.
"""
from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import Dict, List, TextIO
from urllib.parse import quote, urlsplit, urlunsplit

from vendorsync.core.fetch.auth import StagedCredentials, write_private_file
from vendorsync.core.fetch.driver import VCSDriver
from vendorsync.core.fetch.exceptions import (
    ConfigurationError,
    ProcessExecutionError,
    ResolutionError,
)
from vendorsync.core.fetch.git.verification import GitVerification, Verifier
from vendorsync.core.fetch.models import GitSource, RevisionInfo
from vendorsync.core.fetch.runner import CommandRunner
from vendorsync.core.fetch.secrets import SecretFetcher
from vendorsync.core.fetch.versions import highest_constrained_version

logger = logging.getLogger(__name__)

REMOTE_PREFIX = "origin/"


class GitDriver(VCSDriver):
    """Fetch, resolve, verify and check out one git source."""

    executable = "git"

    def __init__(
        self,
        source: GitSource,
        *,
        secrets: SecretFetcher | None = None,
        runner: CommandRunner | None = None,
        info_log: TextIO | None = None,
        verifier: Verifier | None = None,
    ) -> None:
        super().__init__(
            source.url,
            source.secret_ref,
            secrets=secrets,
            runner=runner,
            info_log=info_log,
        )
        self.source = source
        if verifier is None and source.verification is not None:
            verifier = GitVerification(source.verification, secrets, info_log=info_log)
        self.verifier = verifier

    def validate(self) -> None:
        if self.source.ref and self.source.ref_selection is not None:
            raise ConfigurationError("Expected only one of ref or ref selection to be specified")
        if not self.source.ref and self.source.ref_selection is None:
            raise ConfigurationError("Expected either ref or ref selection to be specified")

    def build_env(self, staged: StagedCredentials) -> Dict[str, str]:
        env = dict(os.environ)
        if staged.ssh_command is not None:
            env["GIT_SSH_COMMAND"] = staged.ssh_command_line()
        if self.source.lfs_skip_smudge:
            env["GIT_LFS_SKIP_SMUDGE"] = "1"
        if self.source.dangerous_skip_tls_verify:
            env["GIT_SSL_NO_VERIFY"] = "true"
        return env

    @property
    def credentials_path(self) -> Path:
        return self.staged.auth_dir / ".git-credentials"

    def resolve_and_fetch(self, dst_path: Path, *, bundle: Path | None = None) -> str:
        """Initialize ``dst_path``, fetch, resolve the ref and verify it.

        Args:
            dst_path: Empty working area
            bundle: Cached bundle to unbundle before fetching

        Returns:
            Ref to check out
        """
        self.runner.run_multiple(self._setup_args(), env=self.env, cwd=dst_path)

        if bundle is not None:
            self._apply_bundle(dst_path, bundle)

        self.run(self._fetch_args(), dst_path)

        ref = self.resolve_ref(dst_path)

        if self.verifier is not None:
            self.verifier.verify(
                dst_path,
                ref,
                git=self.runner,
                env=self.env,
                work_dir=self.staged.auth_dir,
            )
        return ref

    def _setup_args(self) -> List[List[str]]:
        argss: List[List[str]] = [
            ["init"],
            ["config", "credential.helper", f"store --file {self.credentials_path}"],
            ["remote", "add", "origin", self.url],
        ]

        if self.source.sparse_checkout and (self.source.include_paths or self.source.exclude_paths):
            sparse = ["sparse-checkout", "set", "--no-cone"]
            sparse += list(self.source.include_paths)
            sparse += [f"!{p}" for p in self.source.exclude_paths]
            argss.append(sparse)

        material = self.staged.material
        if material.has_basic_auth():
            username, password = material.username or "", material.password or ""
            if self.source.force_http_basic_auth:
                token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
                argss.append(["config", "--add", "http.extraHeader", f"Authorization: Basic {token}"])
            else:
                self._write_credentials_file(username, password)

        argss.append(["config", "remote.origin.tagOpt", "--tags"])
        return argss

    def _write_credentials_file(self, username: str, password: str) -> None:
        try:
            parts = urlsplit(self.url)
        except ValueError as e:
            raise ConfigurationError(f"Parsing git remote url: {e}") from e
        host = parts.hostname or ""
        port = f":{parts.port}" if parts.port else ""
        netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{host}{port}"
        creds_url = urlunsplit((parts.scheme, netloc, "", "", ""))
        write_private_file(self.credentials_path, creds_url + "\n")

    def _apply_bundle(self, dst_path: Path, bundle: Path) -> None:
        # The live fetch always follows, so an unusable bundle only costs speed.
        try:
            self.run(["bundle", "verify", str(bundle)], dst_path)
        except ProcessExecutionError as e:
            logger.warning("Ignoring unusable cached bundle %s: %s", bundle, e)
            return
        self.run(["bundle", "unbundle", str(bundle)], dst_path)

    def _fetch_args(self) -> List[str]:
        args = ["fetch", "origin"]
        if self.source.ref.startswith(REMOTE_PREFIX):
            # Only fetch the branch being asked for.
            args.append(self.source.ref[len(REMOTE_PREFIX):])
        if self.source.depth > 0:
            args += ["--depth", str(self.source.depth)]
        return args

    def resolve_ref(self, dst_path: Path) -> str:
        """Turn the configured ref or ref selection into a checkout target.

        Raises:
            ConfigurationError: If neither is configured
            ResolutionError: If tags cannot be listed
            NoMatchingVersionError: If no tag satisfies the selection
        """
        if self.source.ref:
            if self.source.ref.startswith(REMOTE_PREFIX):
                return self.source.ref[len(REMOTE_PREFIX):]
            return self.source.ref

        if self.source.ref_selection is not None:
            tags = self.tags(dst_path)
            ref = highest_constrained_version(tags, self.source.ref_selection)
            logger.info("Selected %s for %s", ref, self.source.ref_selection.description())
            return ref

        raise ConfigurationError("Expected either ref or ref selection to be specified")

    def tags(self, dst_path: Path) -> List[str]:
        try:
            out = self.run(["tag", "-l"], dst_path)
        except ProcessExecutionError as e:
            raise ResolutionError(f"Listing tags: {e}") from e
        return [line for line in out.split("\n") if line.strip()]

    def checkout(self, dst_path: Path, ref: str) -> None:
        self.run(["-c", "advice.detachedHead=false", "checkout", ref], dst_path)

        if not self.source.skip_init_submodules:
            self.run(["submodule", "update", "--init", "--recursive"], dst_path)

    def extract_metadata(self, dst_path: Path) -> RevisionInfo:
        sha = self.run(["rev-parse", "HEAD"], dst_path).strip()

        try:
            out = self.run(["tag", "--points-at", sha], dst_path)
            tags = tuple(t.strip() for t in out.split("\n") if t.strip())
        except ProcessExecutionError:
            tags = ()

        title = self.run(["log", "-n", "1", "--pretty=%B", sha], dst_path).strip()
        return RevisionInfo(sha=sha, tags=tags, title=title)

    def create_bundle(self, dst_path: Path, bundle_path: Path) -> None:
        """Write every ref of ``dst_path`` into ``bundle_path``."""
        out = self.run(["for-each-ref", "--format=%(refname)"], dst_path)
        refs = [r.strip() for r in out.split("\n") if r.strip()]
        self.run(["bundle", "create", str(bundle_path), *refs], dst_path)


__all__ = ["GitDriver", "REMOTE_PREFIX"]
