"""Package-name matching for detection rules."""

from __future__ import annotations

import fnmatch
import re
from typing import Callable

from scripts.snippets.config import DetectionRule


def match_package(package: str, pattern: str) -> bool:
    """Exact, case-sensitive package name match."""
    return package == pattern


def match_package_glob(package: str, pattern: str) -> bool:
    """Match a package name against a glob like ``@convex-dev/*``.

    Unlike path globs, ``*`` may cross the scope separator; npm names have
    at most one ``/``.
    """
    return fnmatch.fnmatchcase(package, pattern)


def match_package_regex(package: str, pattern: str) -> bool:
    """Match a package name against a regex (must match the whole name)."""
    try:
        return re.fullmatch(pattern, package) is not None
    except re.error:
        return False


# Rule type -> matcher. Register new rule kinds here.
RULE_MATCHERS: dict[str, Callable[[str, str], bool]] = {
    "package": match_package,
    "glob": match_package_glob,
    "regex": match_package_regex,
}


def match_rule_name(rule: DetectionRule, package: str) -> bool:
    """Check the name part of a rule against one package.

    Unknown rule types never match.
    """
    matcher = RULE_MATCHERS.get(rule.type)
    if matcher is None:
        return False
    return matcher(package, rule.pattern)
