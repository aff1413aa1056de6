"""Tests for npm-style version range handling."""

import pytest

from scripts.snippets.versions import (
    InvalidVersionRange,
    parse_range,
    resolve_declared_version,
    satisfies,
)


class TestParseRange:
    """Tests for range parsing and containment."""

    @pytest.mark.parametrize("range_text,inside,outside", [
        ("^1.2.0", (1, 5, 0), (2, 0, 0)),
        ("^1.2.0", (1, 2, 0), (1, 1, 9)),
        ("^0.2.3", (0, 2, 9), (0, 3, 0)),
        ("^0.0.3", (0, 0, 3), (0, 0, 4)),
        ("~1.2.3", (1, 2, 9), (1, 3, 0)),
        ("~1", (1, 9, 0), (2, 0, 0)),
        ("1.x", (1, 9, 9), (2, 0, 0)),
        ("1.2", (1, 2, 7), (1, 3, 0)),
        (">=1.2 <2", (1, 2, 0), (2, 0, 0)),
        (">1.2", (1, 3, 0), (1, 2, 9)),
        ("<=2", (2, 9, 9), (3, 0, 0)),
        ("1.2 - 2.3.4", (2, 3, 4), (2, 3, 5)),
        ("1.2.3 - 2.3", (2, 3, 9), (2, 4, 0)),
        ("^4.0.0 || ^5.0.0", (5, 1, 0), (6, 0, 0)),
        (">=1.0,<2.0", (1, 5, 0), (2, 0, 0)),
        ("5.0.0", (5, 0, 0), (5, 0, 1)),
    ])
    def test_range_bounds(self, range_text, inside, outside):
        """Ranges should contain versions inside their bounds only."""
        version_range = parse_range(range_text)
        assert version_range.contains(inside)
        assert not version_range.contains(outside)

    @pytest.mark.parametrize("range_text", ["*", "", "x", "1.2.x || *"])
    def test_wildcards_match_everything(self, range_text):
        """Wildcard ranges should match any version."""
        assert parse_range(range_text).contains((0, 0, 1))
        assert parse_range(range_text).contains((99, 0, 0))

    def test_operator_followed_by_space(self):
        """'>= 1.2.0' should parse like '>=1.2.0'."""
        assert parse_range(">= 1.2.0").contains((1, 2, 0))
        assert not parse_range(">= 1.2.0").contains((1, 1, 0))

    def test_prerelease_tag_ignored(self):
        """Pre-release tags should be accepted and compared as the release."""
        assert parse_range("5.0.0-next.1").contains((5, 0, 0))

    @pytest.mark.parametrize("range_text", ["not-a-version", "^^1", ">=", "1.2.3.4"])
    def test_invalid_range_raises(self, range_text):
        """Unparseable ranges should raise InvalidVersionRange."""
        with pytest.raises(InvalidVersionRange):
            parse_range(range_text)

    def test_invalid_range_is_value_error(self):
        """InvalidVersionRange should be catchable as ValueError."""
        with pytest.raises(ValueError):
            parse_range("garbage")


class TestResolveDeclaredVersion:
    """Tests for reading the lowest version of a declared constraint."""

    @pytest.mark.parametrize("declared,expected", [
        ("^1.2.0", (1, 2, 0)),
        ("~5", (5, 0, 0)),
        ("1.x", (1, 0, 0)),
        (">=4.1 <5", (4, 1, 0)),
        ("5.0.0", (5, 0, 0)),
        ("workspace:^1.0.0", (1, 0, 0)),
        ("npm:@scope/pkg@^3.1.0", (3, 1, 0)),
    ])
    def test_resolvable(self, declared, expected):
        assert resolve_declared_version(declared) == expected

    @pytest.mark.parametrize("declared", [
        "*", "latest", "", "<2.0.0", "github:user/repo", "file:../local", "npm:@scope/pkg",
    ])
    def test_unresolvable_returns_none(self, declared):
        """Declarations without a usable lower bound should resolve to None."""
        assert resolve_declared_version(declared) is None


class TestSatisfies:
    """Tests for checking declared versions against ranges."""

    def test_satisfied(self):
        assert satisfies("^4.2.0", "^4.0.0") is True

    def test_not_satisfied(self):
        assert satisfies("5.0.0", "^4.0.0") is False

    def test_unknown_declared_version(self):
        """Unresolvable declarations should give None, not False."""
        assert satisfies("latest", "^4.0.0") is None

    def test_invalid_range_raises(self):
        with pytest.raises(InvalidVersionRange):
            satisfies("1.0.0", "bogus")
