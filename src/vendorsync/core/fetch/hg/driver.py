"""Mercurial protocol driver.

Mercurial has no bundle-as-remote or shallow fetch that fits here, so the
whole clone is cached and reused. Auth, extensions and the ssh command are
passed through a per-sync hgrc referenced by ``HGRCPATH``.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, TextIO
from urllib.parse import urlsplit

from vendorsync.core.fetch.auth import StagedCredentials, write_private_file
from vendorsync.core.fetch.cache import cache_id
from vendorsync.core.fetch.driver import VCSDriver
from vendorsync.core.fetch.exceptions import ConfigurationError, FetchError, ProcessExecutionError
from vendorsync.core.fetch.models import HgSource, RevisionInfo
from vendorsync.core.fetch.runner import CommandRunner
from vendorsync.core.fetch.secrets import SecretFetcher

logger = logging.getLogger(__name__)


class HgDriver(VCSDriver):
    """Clone, pull and check out one Mercurial source."""

    executable = "hg"

    def __init__(
        self,
        source: HgSource,
        *,
        secrets: SecretFetcher | None = None,
        runner: CommandRunner | None = None,
        info_log: TextIO | None = None,
    ) -> None:
        super().__init__(
            source.url,
            source.secret_ref,
            secrets=secrets,
            runner=runner,
            info_log=info_log,
        )
        self.source = source

    @property
    def cache_id(self) -> str:
        # Ref is left out so a ref change reuses the cached clone.
        return cache_id(self.source.url)

    def validate(self) -> None:
        if not self.source.ref:
            raise ConfigurationError("Expected ref to be specified")

    def build_env(self, staged: StagedCredentials) -> Dict[str, str]:
        env = dict(os.environ)
        sections: List[str] = []

        if self.source.evolve:
            sections.append("[extensions]\nevolve =\ntopic =\n")

        material = staged.material
        if material.has_basic_auth():
            host = urlsplit(self.url).netloc.rsplit("@", 1)[-1]
            sections.append(
                "[auth]\n"
                f"hgauth.prefix = https://{host}\n"
                f"hgauth.username = {material.username}\n"
                f"hgauth.password = {material.password}\n"
            )

        if staged.ssh_command is not None:
            sections.append(f"[ui]\nssh = {staged.ssh_command_line()}\n")

        if sections:
            hgrc_path = staged.auth_dir / "hgrc"
            write_private_file(hgrc_path, "\n".join(sections))
            env["HGRCPATH"] = str(hgrc_path)
        return env

    def resolve_and_fetch(self, dst_path: Path, *, bundle: Path | None = None) -> str:
        """Clone the remote into ``dst_path`` and return the configured ref.

        ``bundle`` is not used; the hg cache stores whole clones.
        """
        self.init_clone(dst_path)
        self.pull(dst_path)
        return self.source.ref

    def init_clone(self, dst_path: Path) -> None:
        self.run(["init"], dst_path)

        repo_hgrc = dst_path / ".hg" / "hgrc"
        try:
            repo_hgrc.write_text(f"[paths]\ndefault = {self.url}\n", encoding="utf-8")
            os.chmod(repo_hgrc, 0o600)
        except OSError as e:
            raise FetchError(f"Writing {repo_hgrc}: {e}", context={"path": str(repo_hgrc)}) from e

    def pull(self, dst_path: Path) -> None:
        self.run(["pull"], dst_path)

    def has_target_revision(self, clone_path: Path) -> bool:
        """Return True if ``clone_path`` already contains the configured ref.

        Only a revision id counts: tags, bookmarks and branches can move, so
        they always trigger a pull.
        """
        try:
            out = self.run(["id", "--id", "-r", self.source.ref], clone_path).strip()
        except ProcessExecutionError:
            return False
        return bool(out) and self.source.ref.startswith(out)

    def checkout(self, dst_path: Path, ref: str) -> None:
        self.run(["checkout", ref], dst_path)

    def extract_metadata(self, dst_path: Path) -> RevisionInfo:
        sha = self.run(["log", "-r", ".", "-T", "{node}"], dst_path).strip()
        title = self.run(["log", "-l", "1", "-T", "{desc|firstline|strip}", "-r", sha], dst_path).strip()
        return RevisionInfo(sha=sha, title=title)


__all__ = ["HgDriver"]
