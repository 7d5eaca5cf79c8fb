"""Semver parsing and constraint matching for ref selection.

Tags are parsed tolerantly (``v1``, ``1.2``, ``v1.2.3-rc.1+build``); tags that
are not versions are ignored. Constraints follow the familiar npm-style range
syntax:

- alternatives separated by ``||``
- comparators separated by whitespace or commas, all of which must match
- operators ``=``, ``==``, ``!=``, ``>``, ``>=``, ``<``, ``<=``, ``~``, ``~>``, ``^``
- wildcards ``*``, ``x`` and ``X`` in any component

Pre-release versions only match when the selection allows them or when a
comparator in the matching alternative names a pre-release of the same
``major.minor.patch``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from vendorsync.core.fetch.exceptions import ConfigurationError, NoMatchingVersionError
from vendorsync.core.fetch.models import VersionSelection

_VERSION_RE = re.compile(
    r"^[vV]?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)
_PARTIAL_RE = re.compile(
    r"^[vV]?(?P<major>\d+|[xX*])(?:\.(?P<minor>\d+|[xX*]))?(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)
_COMPARATOR_RE = re.compile(r"(?P<op>>=|<=|!=|==|~>|>|<|=|~|\^)?\s*(?P<ver>[^\s,<>=!~^]+)")

_PreKey = Tuple[Tuple[int, int, str], ...]


@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    original: str = ""

    @property
    def release(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def sort_key(self) -> Tuple[int, int, int, int, _PreKey]:
        # A release sorts after every pre-release of the same triple.
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        pre: List[Tuple[int, int, str]] = []
        for ident in self.prerelease:
            if ident.isdigit():
                pre.append((0, int(ident), ""))
            else:
                pre.append((1, 0, ident))
        return (self.major, self.minor, self.patch, 0, tuple(pre))


def parse_version(text: str) -> Optional[Version]:
    """Parse a tag into a :class:`Version`, or None if it is not one."""
    m = _VERSION_RE.match(text.strip())
    if not m:
        return None
    pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()
    return Version(
        major=int(m.group("major")),
        minor=int(m.group("minor") or 0),
        patch=int(m.group("patch") or 0),
        prerelease=pre,
        original=text.strip(),
    )


def _cmp(a: Version, b: Version) -> int:
    ka, kb = a.sort_key(), b.sort_key()
    return (ka > kb) - (ka < kb)


Predicate = Callable[[Version], bool]


@dataclass(frozen=True, slots=True)
class _Comparator:
    text: str
    predicate: Predicate
    prerelease_of: Optional[Tuple[int, int, int]] = None


def _wild(part: Optional[str]) -> bool:
    return part is None or part in ("x", "X", "*")


def _bound(major: int, minor: int, patch: int, pre: Tuple[str, ...] = ()) -> Version:
    return Version(major, minor, patch, pre)


def _compile_comparator(op: str, ver: str) -> _Comparator:
    text = f"{op}{ver}"
    if ver in ("*", "x", "X"):
        return _Comparator(text, lambda v: True)

    m = _PARTIAL_RE.match(ver)
    if not m:
        raise ConfigurationError(f"Invalid version '{ver}' in constraint")

    raw_major, raw_minor, raw_patch = m.group("major"), m.group("minor"), m.group("patch")
    pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()

    if _wild(raw_major):
        return _Comparator(text, lambda v: True)
    major = int(raw_major)
    minor = None if _wild(raw_minor) else int(raw_minor)
    patch = None if minor is None or _wild(raw_patch) else int(raw_patch)

    lower = _bound(major, minor or 0, patch or 0, pre)
    prerelease_of = lower.release if pre else None

    # Exclusive upper bound of the range a partial version denotes.
    if minor is None:
        next_up = _bound(major + 1, 0, 0)
    elif patch is None:
        next_up = _bound(major, minor + 1, 0)
    else:
        next_up = None

    def in_range(v: Version) -> bool:
        if next_up is None:
            return _cmp(v, lower) == 0
        return _cmp(v, lower) >= 0 and _cmp(v, next_up) < 0

    op = op or "="
    predicate: Predicate
    if op in ("=", "=="):
        predicate = in_range
    elif op == "!=":
        predicate = lambda v: not in_range(v)  # noqa: E731
    elif op == ">":
        if next_up is None:
            predicate = lambda v: _cmp(v, lower) > 0  # noqa: E731
        else:
            predicate = lambda v: _cmp(v, next_up) >= 0  # noqa: E731
    elif op == ">=":
        predicate = lambda v: _cmp(v, lower) >= 0  # noqa: E731
    elif op == "<":
        predicate = lambda v: _cmp(v, lower) < 0  # noqa: E731
    elif op == "<=":
        if next_up is None:
            predicate = lambda v: _cmp(v, lower) <= 0  # noqa: E731
        else:
            predicate = lambda v: _cmp(v, next_up) < 0  # noqa: E731
    elif op in ("~", "~>"):
        upper = _bound(major + 1, 0, 0) if minor is None else _bound(major, minor + 1, 0)
        predicate = lambda v: _cmp(v, lower) >= 0 and _cmp(v, upper) < 0  # noqa: E731
    elif op == "^":
        if major > 0 or minor is None:
            upper = _bound(major + 1, 0, 0)
        elif minor > 0 or patch is None:
            upper = _bound(0, minor + 1, 0)
        else:
            upper = _bound(0, 0, patch + 1)
        predicate = lambda v: _cmp(v, lower) >= 0 and _cmp(v, upper) < 0  # noqa: E731
    else:  # pragma: no cover - regex limits operators
        raise ConfigurationError(f"Unsupported operator '{op}' in constraint")

    return _Comparator(text, predicate, prerelease_of)


class Constraint:
    """Parsed constraint expression."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.alternatives: List[List[_Comparator]] = []

        if not expression.strip():
            raise ConfigurationError("Expected non-empty version constraint")

        for alt in expression.split("||"):
            alt = alt.strip()
            if not alt:
                raise ConfigurationError(f"Empty alternative in constraint '{expression}'")
            comparators: List[_Comparator] = []
            pos = 0
            for m in _COMPARATOR_RE.finditer(alt):
                gap = alt[pos:m.start()]
                if gap.strip(" ,"):
                    raise ConfigurationError(f"Invalid constraint '{expression}'")
                comparators.append(_compile_comparator(m.group("op") or "", m.group("ver")))
                pos = m.end()
            if alt[pos:].strip(" ,"):
                raise ConfigurationError(f"Invalid constraint '{expression}'")
            self.alternatives.append(comparators)

    def matches(self, version: Version, *, allow_prerelease: bool = False) -> bool:
        for comparators in self.alternatives:
            if not all(c.predicate(version) for c in comparators):
                continue
            if not version.prerelease or allow_prerelease:
                return True
            if any(c.prerelease_of == version.release for c in comparators):
                return True
        return False

    def __str__(self) -> str:
        return self.expression


def _prerelease_allowed(version: Version, identifiers: Optional[Sequence[str]]) -> bool:
    if identifiers is None:
        return False
    if not identifiers:
        return True
    return any(ident in version.prerelease for ident in identifiers)


def highest_constrained_version(labels: Iterable[str], selection: VersionSelection) -> str:
    """Return the highest label satisfying ``selection``.

    Raises:
        ConfigurationError: If the constraint cannot be parsed
        NoMatchingVersionError: If no label satisfies the constraint
    """
    constraint = Constraint(selection.constraints)
    all_labels = [label.strip() for label in labels if label.strip()]

    best: Optional[Version] = None
    for label in all_labels:
        version = parse_version(label)
        if version is None:
            continue
        allow = _prerelease_allowed(version, selection.prerelease_identifiers)
        if not constraint.matches(version, allow_prerelease=allow):
            continue
        if best is None or _cmp(version, best) > 0:
            best = version

    if best is None:
        raise NoMatchingVersionError(
            f"Expected to find at least one version matching '{selection.constraints}', "
            f"but did not (all: {all_labels})",
            context={"constraints": selection.constraints},
        )
    return best.original


__all__ = ["Version", "Constraint", "parse_version", "highest_constrained_version"]
