"""External VCS command execution.

Drivers never call :mod:`subprocess` directly; they go through a
:class:`CommandRunner` so the exact command sequence can be recorded and
asserted in tests.
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence, TextIO

from vendorsync.core.fetch.exceptions import ProcessExecutionError
from vendorsync.core.fetch.redaction import redact_args, redact_text_credentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured output of a successful command."""

    stdout: str
    stderr: str


class CommandRunner(Protocol):
    """Port for running one VCS executable."""

    executable: str

    def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Path,
    ) -> CommandResult: ...

    def run_multiple(
        self,
        argss: Sequence[Sequence[str]],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Path,
    ) -> None: ...


class SubprocessRunner:
    """Run an executable with :func:`subprocess.run`, mirroring output.

    Each invocation is announced on ``info_log`` as ``--> <exe> <args>`` and the
    captured stdout/stderr are copied there afterwards, so operators see the
    same transcript the engine produced.
    """

    def __init__(self, executable: str, info_log: TextIO | None = None) -> None:
        self.executable = executable
        self.info_log = info_log

    def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Path,
    ) -> CommandResult:
        safe_args = redact_args(args)
        self._write(f"--> {self.executable} {' '.join(safe_args)}\n")
        logger.debug("Running %s %s in %s", self.executable, safe_args, cwd)

        try:
            result = subprocess.run(
                [self.executable, *args],
                cwd=str(cwd),
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            self._write(e.stdout or "")
            self._write(e.stderr or "")
            stderr = redact_text_credentials(e.stderr or "")
            raise ProcessExecutionError(
                f"{self.executable.capitalize()} {safe_args}: exit status {e.returncode} (stderr: {stderr})",
                args_list=safe_args,
                stderr=stderr,
                returncode=e.returncode,
            ) from e
        except OSError as e:
            raise ProcessExecutionError(
                f"{self.executable.capitalize()} {safe_args}: {e}",
                args_list=safe_args,
            ) from e

        self._write(result.stdout)
        self._write(result.stderr)
        return CommandResult(stdout=result.stdout, stderr=result.stderr)

    def run_multiple(
        self,
        argss: Sequence[Sequence[str]],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Path,
    ) -> None:
        for args in argss:
            self.run(args, env=env, cwd=cwd)

    def _write(self, text: str) -> None:
        if self.info_log is not None and text:
            self.info_log.write(redact_text_credentials(text))


__all__ = ["CommandResult", "CommandRunner", "SubprocessRunner"]
