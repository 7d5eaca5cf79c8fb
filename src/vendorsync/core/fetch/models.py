"""Fetch data models.

Provides immutable dataclasses for source descriptors, resolved revisions
and the lock records a sync produces.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class SecretRef:
    """Reference to a named secret held by the secret store."""

    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SecretRef | None:
        if not data:
            return None
        return cls(name=data["name"])


@dataclass(frozen=True, slots=True)
class VersionSelection:
    """Semver constraint used to pick a tag instead of an explicit ref.

    Attributes:
        constraints: Constraint expression, e.g. ">=1.0.0 <2.0.0 || ^3.1"
        prerelease_identifiers: When not None, pre-release versions are
            eligible; an empty tuple allows every pre-release, otherwise only
            pre-releases whose identifiers include one of these names.
    """

    constraints: str
    prerelease_identifiers: tuple[str, ...] | None = None

    def description(self) -> str:
        return f"semver={self.constraints}"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> VersionSelection | None:
        if not data:
            return None
        semver = data.get("semver") or {}
        prereleases = semver.get("prereleases")
        identifiers: tuple[str, ...] | None = None
        if prereleases is not None:
            identifiers = tuple(str(i) for i in (prereleases.get("identifiers") or []))
        return cls(
            constraints=str(semver.get("constraints", "")),
            prerelease_identifiers=identifiers,
        )


@dataclass(frozen=True, slots=True)
class GitVerificationOptions:
    """Signature verification settings for a git source."""

    public_keys_secret_ref: SecretRef


@dataclass(frozen=True, slots=True)
class GitSource:
    """Git source descriptor.

    Attributes:
        url: Remote URL
        ref: Branch, tag or commit; ``origin/<branch>`` narrows the fetch
        ref_selection: Version constraint alternative to ``ref``
        depth: Shallow fetch depth (0 means full history)
        skip_init_submodules: Do not initialize submodules after checkout
        lfs_skip_smudge: Export ``GIT_LFS_SKIP_SMUDGE=1``
        dangerous_skip_tls_verify: Export ``GIT_SSL_NO_VERIFY=true``
        force_http_basic_auth: Send credentials as an ``Authorization`` header
        sparse_checkout: Restrict the working tree to include/exclude paths
        include_paths: Sparse include patterns
        exclude_paths: Sparse exclude patterns
        secret_ref: Secret holding SSH or basic auth material
        verification: Optional GPG verification of the resolved ref
    """

    url: str
    ref: str = ""
    ref_selection: VersionSelection | None = None
    depth: int = 0
    skip_init_submodules: bool = False
    lfs_skip_smudge: bool = False
    dangerous_skip_tls_verify: bool = False
    force_http_basic_auth: bool = False
    sparse_checkout: bool = False
    include_paths: tuple[str, ...] = ()
    exclude_paths: tuple[str, ...] = ()
    secret_ref: SecretRef | None = None
    verification: GitVerificationOptions | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitSource:
        """Create GitSource from a config mapping (camelCase keys)."""
        verification = None
        raw_verification = data.get("verification")
        if raw_verification:
            verification = GitVerificationOptions(
                public_keys_secret_ref=SecretRef(raw_verification["publicKeysSecretRef"]["name"])
            )
        return cls(
            url=data.get("url", ""),
            ref=data.get("ref", "") or "",
            ref_selection=VersionSelection.from_dict(data.get("refSelection")),
            depth=int(data.get("depth", 0) or 0),
            skip_init_submodules=bool(data.get("skipInitSubmodules", False)),
            lfs_skip_smudge=bool(data.get("lfsSkipSmudge", False)),
            dangerous_skip_tls_verify=bool(data.get("dangerousSkipTLSVerify", False)),
            force_http_basic_auth=bool(data.get("forceHTTPBasicAuth", False)),
            sparse_checkout=bool(data.get("sparseCheckout", False)),
            include_paths=tuple(data.get("includePaths") or ()),
            exclude_paths=tuple(data.get("excludePaths") or ()),
            secret_ref=SecretRef.from_dict(data.get("secretRef")),
            verification=verification,
        )


@dataclass(frozen=True, slots=True)
class HgSource:
    """Mercurial source descriptor.

    Attributes:
        url: Remote URL or path
        ref: Changeset id, tag, bookmark or branch
        evolve: Enable the ``evolve`` and ``topic`` extensions
        secret_ref: Secret holding SSH or basic auth material
    """

    url: str
    ref: str = ""
    evolve: bool = False
    secret_ref: SecretRef | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HgSource:
        return cls(
            url=data.get("url", ""),
            ref=data.get("ref", "") or "",
            evolve=bool(data.get("evolve", False)),
            secret_ref=SecretRef.from_dict(data.get("secretRef")),
        )


@dataclass(frozen=True, slots=True)
class RevisionInfo:
    """Metadata extracted after checkout.

    Attributes:
        sha: Full immutable revision id
        tags: Labels pointing at ``sha``
        title: Full commit/changeset message (not yet shortened)
    """

    sha: str
    tags: tuple[str, ...] = ()
    title: str = ""


@dataclass(frozen=True, slots=True)
class GitLockRecord:
    """Lock record produced by a git sync."""

    sha: str
    tags: tuple[str, ...] = ()
    commit_title: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"sha": self.sha}
        if self.tags:
            result["tags"] = list(self.tags)
        result["commitTitle"] = self.commit_title
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitLockRecord:
        return cls(
            sha=data["sha"],
            tags=tuple(data.get("tags") or ()),
            commit_title=data.get("commitTitle", ""),
        )


@dataclass(frozen=True, slots=True)
class HgLockRecord:
    """Lock record produced by a Mercurial sync."""

    sha: str
    change_set_title: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"sha": self.sha, "changeSetTitle": self.change_set_title}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HgLockRecord:
        return cls(sha=data["sha"], change_set_title=data.get("changeSetTitle", ""))


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One configured vendor directory and the source that fills it."""

    path: str
    git: GitSource | None = None
    hg: HgSource | None = None

    @property
    def kind(self) -> str:
        return "git" if self.git is not None else "hg"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryEntry:
        git = GitSource.from_dict(data["git"]) if data.get("git") is not None else None
        hg = HgSource.from_dict(data["hg"]) if data.get("hg") is not None else None
        return cls(path=data["path"], git=git, hg=hg)


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Result of syncing one directory.

    Attributes:
        path: Directory path relative to the repo root
        success: Whether sync succeeded
        sha: Resolved revision id
        previous_sha: Revision id recorded in the lock before this sync
        changed: Whether the revision changed
        error: Error message if failed
    """

    path: str
    success: bool
    sha: str | None = None
    previous_sha: str | None = None
    changed: bool = False
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "SecretRef",
    "VersionSelection",
    "GitVerificationOptions",
    "GitSource",
    "HgSource",
    "RevisionInfo",
    "GitLockRecord",
    "HgLockRecord",
    "DirectoryEntry",
    "SyncResult",
]
