"""Tests for semver constraint resolution."""
from __future__ import annotations

import pytest


def _select(labels, constraints, identifiers=None) -> str:
    from vendorsync.core.fetch.models import VersionSelection
    from vendorsync.core.fetch.versions import highest_constrained_version

    return highest_constrained_version(labels, VersionSelection(constraints, identifiers))


class TestParseVersion:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("v1.2.3", (1, 2, 3)),
            ("1.2", (1, 2, 0)),
            ("V7", (7, 0, 0)),
            ("2.0.0-rc.1+build.5", (2, 0, 0)),
        ],
    )
    def test_tolerant_parsing(self, text: str, expected: tuple[int, int, int]) -> None:
        from vendorsync.core.fetch.versions import parse_version

        version = parse_version(text)

        assert version is not None
        assert version.release == expected
        assert version.original == text

    @pytest.mark.parametrize("text", ["release-1", "latest", "1.2.3.4", ""])
    def test_non_versions_are_rejected(self, text: str) -> None:
        from vendorsync.core.fetch.versions import parse_version

        assert parse_version(text) is None

    def test_release_sorts_above_its_prereleases(self) -> None:
        from vendorsync.core.fetch.versions import parse_version

        ordered = ["1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-beta", "1.0.0-rc.1", "1.0.0"]
        keys = [parse_version(v).sort_key() for v in ordered]

        assert keys == sorted(keys)


class TestHighestConstrainedVersion:
    def test_prerelease_excluded_below_upper_bound(self) -> None:
        assert _select(["v1.0.0", "v1.2.0", "v2.0.0-rc1"], "<2.0.0") == "v1.2.0"

    def test_returns_original_label(self) -> None:
        assert _select(["v1.0.0", "1.1.0", "v1.0.5"], ">=1.0.0") == "1.1.0"

    def test_non_version_tags_are_ignored(self) -> None:
        assert _select(["nightly", "v0.9.0", "stable"], "*") == "v0.9.0"

    @pytest.mark.parametrize(
        "constraints,expected",
        [
            ("^1.2", "1.9.3"),
            ("~1.2", "1.2.5"),
            ("1.x", "1.9.3"),
            ("1.2.*", "1.2.5"),
            (">1.2 <2", "1.9.3"),
            ("<=1.2", "1.2.5"),
            ("=1.2.0", "1.2.0"),
            ("!=2.0.0, >=1.9", "1.9.3"),
            ("^0.3.1", "0.3.4"),
            ("<0.3.1 || ~1.2.0", "1.2.5"),
        ],
    )
    def test_operators(self, constraints: str, expected: str) -> None:
        labels = ["0.3.0", "0.3.4", "0.4.0", "1.2.0", "1.2.5", "1.3.0", "1.9.3", "2.0.0"]

        assert _select(labels, constraints) == expected

    def test_prerelease_allowed_by_identifier(self) -> None:
        labels = ["v1.0.0", "v1.1.0-rc.1", "v1.1.0-beta.1"]

        assert _select(labels, ">=1.0.0", identifiers=("rc",)) == "v1.1.0-rc.1"

    def test_empty_identifier_list_allows_every_prerelease(self) -> None:
        labels = ["v1.0.0", "v1.1.0-rc.1", "v1.1.0-beta.1"]

        assert _select(labels, ">=1.0.0", identifiers=()) == "v1.1.0-rc.1"

    def test_prerelease_comparator_admits_same_release(self) -> None:
        labels = ["v1.0.0", "v2.0.0-rc1", "v2.0.0-rc2"]

        assert _select(labels, ">=2.0.0-rc1") == "v2.0.0-rc2"

    def test_no_match_raises_resolution_error(self) -> None:
        from vendorsync.core.fetch.exceptions import NoMatchingVersionError, ResolutionError

        with pytest.raises(NoMatchingVersionError) as exc_info:
            _select(["v1.0.0"], ">=2.0.0")

        assert isinstance(exc_info.value, ResolutionError)
        assert ">=2.0.0" in str(exc_info.value)

    @pytest.mark.parametrize("constraints", ["", ">=abc", "1.0 ||", ">= 1.0 <<2"])
    def test_invalid_constraint_is_configuration_error(self, constraints: str) -> None:
        from vendorsync.core.fetch.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            _select(["v1.0.0"], constraints)
