"""Test helpers for the vendorsync test suite.

- runners: RecordingRunner, a CommandRunner fake that records every call
- fakes: StaticSecretFetcher, a recording verifier and a cache that cannot be written
- vcs: real git/hg repository builders for e2e tests
"""
from __future__ import annotations

from helpers.fakes import RecordingVerifier, StaticSecretFetcher, UnwritableCache
from helpers.runners import Call, RecordingRunner, git_runner, hg_runner

__all__ = [
    "Call",
    "RecordingRunner",
    "git_runner",
    "hg_runner",
    "StaticSecretFetcher",
    "RecordingVerifier",
    "UnwritableCache",
]
