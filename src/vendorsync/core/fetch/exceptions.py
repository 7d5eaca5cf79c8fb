"""Fetch engine exceptions.

Every failure of a sync is raised as one of these so callers can tell a
misconfigured source apart from a failing remote or a broken cache.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from vendorsync.core.exceptions import VendorsyncError


class FetchError(VendorsyncError):
    """Base exception for fetch/sync errors."""


class ConfigurationError(FetchError):
    """Raised when a source, secret or config file is invalid."""


class CredentialStagingError(FetchError):
    """Raised when transient auth material cannot be written."""


class ProcessExecutionError(FetchError):
    """Raised when an external VCS command exits non-zero.

    Attributes:
        args_list: Arguments passed to the executable (credentials redacted)
        stderr: Captured standard error (credentials redacted)
        returncode: Exit status of the process
    """

    def __init__(
        self,
        message: str,
        *,
        args_list: Sequence[str] = (),
        stderr: str = "",
        returncode: int | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        ctx.setdefault("args", list(args_list))
        ctx.setdefault("returncode", returncode)
        super().__init__(message, context=ctx)
        self.args_list = list(args_list)
        self.stderr = stderr
        self.returncode = returncode


class ResolutionError(FetchError):
    """Raised when a ref cannot be resolved to a concrete revision."""


class NoMatchingVersionError(ResolutionError):
    """Raised when no version label satisfies a ref-selection constraint."""


class VerificationError(FetchError):
    """Raised when signature verification rejects the resolved revision."""


class CacheError(FetchError):
    """Raised when reading or writing a cache entry fails."""


class AtomicReplaceError(FetchError):
    """Raised when the destination directory cannot be swapped in.

    Attributes:
        path: Filesystem path the failing operation touched
    """

    def __init__(self, message: str, *, path: str, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        ctx.setdefault("path", path)
        super().__init__(message, context=ctx)
        self.path = path


__all__ = [
    "FetchError",
    "ConfigurationError",
    "CredentialStagingError",
    "ProcessExecutionError",
    "ResolutionError",
    "NoMatchingVersionError",
    "VerificationError",
    "CacheError",
    "AtomicReplaceError",
]
