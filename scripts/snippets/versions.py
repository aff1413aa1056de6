"""npm-style semantic version ranges.

Supports the range forms found in package.json manifests:

- exact and partial versions: ``1.2.3``, ``1.2``, ``1.x``, ``*``
- comparators: ``>=1.2.0 <2``, ``>1.2``, ``<=2``
- caret and tilde: ``^1.2.0``, ``^0.2``, ``~1.2.3``
- hyphen ranges: ``1.2 - 2.3.4``
- alternatives: ``^4.0.0 || ^5.0.0``

Pre-release and build tags are accepted but ignored for comparison.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

Version = tuple[int, int, int]
Partial = tuple[Optional[int], Optional[int], Optional[int]]

_PARTIAL_RE = re.compile(
    r"^v?(?P<major>\d+|[xX*])(?:\.(?P<minor>\d+|[xX*]))?(?:\.(?P<patch>\d+|[xX*]))?"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)
_COMPARATOR_RE = re.compile(r"^(?P<op><=|>=|<|>|=|\^|~>|~)?(?P<version>.+)$")
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")
_HYPHEN_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_VERSION_IN_TEXT_RE = re.compile(r"\d+(?:\.\d+){0,2}")
_WILDCARDS = {"x", "X", "*"}


class InvalidVersionRange(ValueError):
    """A version or range string cannot be parsed."""


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` bound."""

    op: str  # <, <=, >, >=, =
    version: Version

    def test(self, version: Version) -> bool:
        if self.op == "<":
            return version < self.version
        if self.op == "<=":
            return version <= self.version
        if self.op == ">":
            return version > self.version
        if self.op == ">=":
            return version >= self.version
        return version == self.version

    def __str__(self) -> str:
        return f"{self.op}{format_version(self.version)}"


@dataclass(frozen=True)
class VersionRange:
    """A parsed range: OR over alternatives, AND within each alternative."""

    raw: str
    alternatives: tuple[tuple[Comparator, ...], ...]

    def contains(self, version: Version) -> bool:
        return any(
            all(comparator.test(version) for comparator in alternative)
            for alternative in self.alternatives
        )

    def __str__(self) -> str:
        return self.raw


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


def _parse_partial(text: str, raw: str) -> Partial:
    match = _PARTIAL_RE.match(text)
    if not match:
        raise InvalidVersionRange(f"Invalid version '{text}' in range '{raw}'")

    parts: list[Optional[int]] = []
    wildcard = False
    for key in ("major", "minor", "patch"):
        value = match.group(key)
        if value is None or value in _WILDCARDS or wildcard:
            # Everything after the first wildcard is a wildcard too (1.x.3 == 1.x)
            wildcard = True
            parts.append(None)
        else:
            parts.append(int(value))
    return parts[0], parts[1], parts[2]


def _expand(op: str, partial: Partial) -> list[Comparator]:
    """Desugar one comparator into plain bounds."""
    major, minor, patch = partial

    if major is None:
        if op in ("<", ">"):
            # Nothing is below or above "any version"
            return [Comparator("<", (0, 0, 0))]
        return []

    low = (major, minor or 0, patch or 0)

    if op == "^":
        if major > 0 or minor is None:
            upper = (major + 1, 0, 0)
        elif minor > 0 or patch is None:
            upper = (0, minor + 1, 0)
        else:
            upper = (0, 0, patch + 1)
        return [Comparator(">=", low), Comparator("<", upper)]

    if op in ("~", "~>"):
        if minor is None:
            upper = (major + 1, 0, 0)
        else:
            upper = (major, minor + 1, 0)
        return [Comparator(">=", low), Comparator("<", upper)]

    if op in ("", "="):
        if minor is None:
            return [Comparator(">=", low), Comparator("<", (major + 1, 0, 0))]
        if patch is None:
            return [Comparator(">=", low), Comparator("<", (major, minor + 1, 0))]
        return [Comparator("=", low)]

    if op == ">=":
        return [Comparator(">=", low)]

    if op == "<":
        return [Comparator("<", low)]

    if op == ">":
        if minor is None:
            return [Comparator(">=", (major + 1, 0, 0))]
        if patch is None:
            return [Comparator(">=", (major, minor + 1, 0))]
        return [Comparator(">", low)]

    # op == "<="
    if minor is None:
        return [Comparator("<", (major + 1, 0, 0))]
    if patch is None:
        return [Comparator("<", (major, minor + 1, 0))]
    return [Comparator("<=", low)]


def _parse_alternative(text: str, raw: str) -> tuple[Comparator, ...]:
    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        lower = _parse_partial(hyphen.group(1), raw)
        upper = _parse_partial(hyphen.group(2), raw)
        bounds = _expand(">=", lower) if lower[0] is not None else []
        bounds += _expand("<=", upper)
        return tuple(bounds)

    comparators: list[Comparator] = []
    for token in _OPERATOR_SPACE_RE.sub(r"\1", text).split():
        match = _COMPARATOR_RE.match(token)
        if not match:
            raise InvalidVersionRange(f"Invalid comparator '{token}' in range '{raw}'")
        op = match.group("op") or ""
        comparators.extend(_expand(op, _parse_partial(match.group("version"), raw)))
    return tuple(comparators)


@lru_cache(maxsize=256)
def parse_range(text: str) -> VersionRange:
    """Parse an npm-style range string.

    Raises:
        InvalidVersionRange: If the range cannot be parsed.
    """
    raw = text.strip()
    alternatives = []
    for alternative in raw.split("||"):
        # Accept pip-style comma separators as well (">=1.0,<2.0")
        alternative = alternative.replace(",", " ").strip()
        alternatives.append(_parse_alternative(alternative, raw))
    return VersionRange(raw=raw, alternatives=tuple(alternatives))


def resolve_declared_version(declared: str) -> Optional[Version]:
    """Resolve a declared dependency constraint to the lowest version it admits.

    ``^1.2.0`` -> (1, 2, 0), ``~5`` -> (5, 0, 0), ``>=4.1 <5`` -> (4, 1, 0).

    Returns:
        The version tuple, or None when the declaration carries no usable
        lower bound (``*``, ``latest``, ``<2.0.0``, git/file/url sources).
    """
    text = declared.strip()

    if text.startswith("npm:"):
        # Aliased package: npm:@scope/name@^1.2.0
        if "@" not in text[len("npm:") + 1:]:
            return None
        text = text.rsplit("@", 1)[1]
    elif text.startswith("workspace:"):
        text = text[len("workspace:"):]

    if not text or text.startswith("<") or ":" in text or "/" in text:
        return None

    match = _VERSION_IN_TEXT_RE.search(text)
    if not match:
        return None

    numbers = [int(part) for part in match.group(0).split(".")]
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def satisfies(declared: str, range_text: str) -> Optional[bool]:
    """Check whether a declared dependency version falls inside a range.

    Returns:
        True or False, or None when the declared version cannot be resolved.

    Raises:
        InvalidVersionRange: If ``range_text`` cannot be parsed.
    """
    version_range = parse_range(range_text)
    version = resolve_declared_version(declared)
    if version is None:
        return None
    return version_range.contains(version)
