"""Recording CommandRunner used to assert VCS command sequences."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from vendorsync.core.fetch.exceptions import ProcessExecutionError
from vendorsync.core.fetch.runner import CommandResult, CommandRunner

Effect = Callable[[Path, Sequence[str]], None]


@dataclass
class Call:
    args: tuple[str, ...]
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)

    @property
    def line(self) -> str:
        return " ".join(self.args)


@dataclass
class _Rule:
    prefix: tuple[str, ...]
    stdout: str = ""
    stderr: str = ""
    fail: bool = False
    effect: Optional[Effect] = None


class RecordingRunner:
    """CommandRunner fake.

    Every call is recorded. Responses are configured with :meth:`on`, matched
    by argument prefix; the most recently registered matching rule wins.
    Unmatched commands succeed with empty output, unless a ``delegate`` runner
    is given, in which case the call is forwarded to it.
    """

    def __init__(self, executable: str = "git", delegate: CommandRunner | None = None) -> None:
        self.executable = executable
        self.delegate = delegate
        self.calls: list[Call] = []
        self._rules: list[_Rule] = []

    def on(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        fail: bool = False,
        effect: Effect | None = None,
    ) -> "RecordingRunner":
        self._rules.append(_Rule(tuple(prefix), stdout, stderr, fail, effect))
        return self

    def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Path,
    ) -> CommandResult:
        call = Call(tuple(args), Path(cwd), dict(env or {}))
        self.calls.append(call)

        for rule in reversed(self._rules):
            if call.args[: len(rule.prefix)] == rule.prefix:
                if rule.effect is not None:
                    rule.effect(Path(cwd), call.args)
                if rule.fail:
                    raise ProcessExecutionError(
                        f"{self.executable} {list(call.args)}: exit status 1 (stderr: {rule.stderr})",
                        args_list=list(call.args),
                        stderr=rule.stderr,
                        returncode=1,
                    )
                return CommandResult(stdout=rule.stdout, stderr=rule.stderr)

        if self.delegate is not None:
            return self.delegate.run(args, env=env, cwd=cwd)
        return CommandResult(stdout="", stderr="")

    def run_multiple(
        self,
        argss: Sequence[Sequence[str]],
        *,
        env: Optional[Mapping[str, str]],
        cwd: Path,
    ) -> None:
        for args in argss:
            self.run(args, env=env, cwd=cwd)

    @property
    def lines(self) -> list[str]:
        return [c.line for c in self.calls]

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if c.args[: len(prefix)] == tuple(prefix))

    def find(self, *prefix: str) -> Call:
        for c in self.calls:
            if c.args[: len(prefix)] == tuple(prefix):
                return c
        raise AssertionError(f"No call starting with {prefix!r} in {self.lines}")


GIT_SHA = "0123456789abcdef0123456789abcdef01234567"
HG_NODE = "fedcba9876543210fedcba9876543210fedcba98"


def _write_bundle(cwd: Path, args: Sequence[str]) -> None:
    Path(args[2]).write_bytes(b"# v2 git bundle\n")


def git_runner(*, sha: str = GIT_SHA, title: str = "Initial commit\n", tags: str = "") -> RecordingRunner:
    """Git fake answering the metadata and bundle commands a sync issues."""
    runner = RecordingRunner("git")
    runner.on("rev-parse", "HEAD", stdout=f"{sha}\n")
    runner.on("tag", "--points-at", stdout=tags)
    runner.on("log", "-n", "1", stdout=title)
    runner.on("for-each-ref", stdout="refs/remotes/origin/main\nrefs/tags/v1.0.0\n")
    runner.on("bundle", "create", effect=_write_bundle)
    return runner


def _make_hg_dir(cwd: Path, args: Sequence[str]) -> None:
    (cwd / ".hg").mkdir(exist_ok=True)


def hg_runner(*, node: str = HG_NODE, title: str = "Add feature") -> RecordingRunner:
    """Mercurial fake: ``init`` creates ``.hg``; ``id`` fails unless configured."""
    runner = RecordingRunner("hg")
    runner.on("init", effect=_make_hg_dir)
    runner.on("id", "--id", "-r", fail=True, stderr="abort: unknown revision")
    runner.on("log", "-r", ".", stdout=node)
    runner.on("log", "-l", "1", stdout=title)
    return runner


__all__ = ["Call", "RecordingRunner", "git_runner", "hg_runner", "GIT_SHA", "HG_NODE"]
