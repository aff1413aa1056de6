"""Resolve which snippet entries apply to a project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from scripts.snippets.config import DetectionRule, IntegrationDescriptor
from scripts.snippets.detector import ProjectSignature
from scripts.snippets.patterns import match_rule_name
from scripts.snippets.store import SnippetEntry, SnippetStore
from scripts.snippets.versions import satisfies

logger = logging.getLogger(__name__)

REASON_NO_ENTRIES = "no-entries"
REASON_VERSION_MISMATCH = "version-mismatch-excluded"
REASON_BUDGET_TRUNCATED = "budget-truncated"


@dataclass(frozen=True)
class IntegrationMatch:
    """Why an integration was matched."""

    identifier: str
    package: str
    declared_version: str
    rule: DetectionRule


@dataclass(frozen=True)
class SelectedEntry:
    """A store entry chosen for a project."""

    entry: SnippetEntry
    version_mismatch: bool = False
    declared_version: Optional[str] = None

    @property
    def id(self) -> str:
        return self.entry.id


@dataclass(frozen=True)
class DropRecord:
    """An integration or entry left out of the result, and why."""

    integration: str
    reason: str  # no-entries, version-mismatch-excluded, budget-truncated
    id: Optional[str] = None
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "integration": self.integration,
            "reason": self.reason,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class SelectionResult:
    """Matched integrations and their ordered entries."""

    matched_integrations: tuple[str, ...] = ()
    entries: tuple[SelectedEntry, ...] = ()
    matches: tuple[IntegrationMatch, ...] = ()
    dropped: tuple[DropRecord, ...] = ()
    empty_manifest: bool = False

    @property
    def ids(self) -> list[str]:
        return [item.id for item in self.entries]


def match_rule(
    rule: DetectionRule,
    dependencies: Mapping[str, str],
) -> Optional[tuple[str, str]]:
    """Test one rule against declared dependencies.

    Returns:
        (package, declared_version) of the first matching dependency in
        name order, or None.
    """
    for package in sorted(dependencies):
        if not match_rule_name(rule, package):
            continue

        declared = dependencies[package]
        if rule.version_constraint is None:
            return package, declared

        result = satisfies(declared, rule.version_constraint)
        if result is None:
            # Unresolvable declarations (latest, git urls) count as a match
            logger.debug(
                "Cannot resolve %s@%s against %s, accepting",
                package, declared, rule.version_constraint,
            )
            return package, declared
        if result:
            return package, declared

    return None


def match_descriptor(
    descriptor: IntegrationDescriptor,
    dependencies: Mapping[str, str],
) -> Optional[IntegrationMatch]:
    """Return the first rule match for a descriptor (rules are OR-ed)."""
    for rule in descriptor.detection_rules:
        found = match_rule(rule, dependencies)
        if found:
            package, declared = found
            return IntegrationMatch(
                identifier=descriptor.identifier,
                package=package,
                declared_version=declared,
                rule=rule,
            )
    return None


def _topic_rank(topic: str, priority: Sequence[str]) -> int:
    if topic in priority:
        return priority.index(topic)
    return len(priority)


def _installed_version(
    descriptor: IntegrationDescriptor,
    dependencies: Mapping[str, str],
) -> Optional[str]:
    """Declared version of the integration's own package, if the project lists it."""
    package = descriptor.versioned_package
    if package is None:
        return None
    return dependencies.get(package)


def _is_version_mismatch(entry: SnippetEntry, declared: Optional[str]) -> bool:
    if entry.compatible_versions is None or declared is None:
        return False
    # Unknown declared versions are not flagged
    return satisfies(declared, entry.compatible_versions) is False


def select(
    signature: ProjectSignature,
    store: SnippetStore,
    descriptors: Sequence[IntegrationDescriptor],
    topic_priority: Optional[Sequence[str]] = None,
) -> SelectionResult:
    """Select the snippet entries relevant to a project.

    Entries are ordered by the declaration position of their integration's
    descriptor, then by topic priority (the descriptor's own list, else
    ``topic_priority``), then by id.

    Entry compatibility is checked against the declared version of the
    integration's own package (``versioned_package``), whichever package
    triggered the match. If that package is not declared, nothing is flagged.

    Args:
        signature: The project's declared dependencies.
        store: Loaded snippet store.
        descriptors: Known integrations, in precedence order.
        topic_priority: Fallback canonical topic order.

    Returns:
        SelectionResult. An empty signature selects nothing.
    """
    if signature.empty:
        logger.debug("Empty manifest, nothing selected")
        return SelectionResult(empty_manifest=True)

    fallback_priority = tuple(topic_priority or ())
    positions: dict[str, int] = {}
    matched: dict[str, tuple[IntegrationMatch, IntegrationDescriptor]] = {}

    for descriptor in descriptors:
        positions.setdefault(descriptor.identifier, len(positions))
        if descriptor.identifier in matched:
            continue
        match = match_descriptor(descriptor, signature.dependencies)
        if match:
            logger.debug("Matched %s via %s (%s)", match.identifier, match.package, match.rule)
            matched[descriptor.identifier] = (match, descriptor)

    ordered_ids = sorted(matched, key=lambda identifier: positions[identifier])

    selected: dict[str, tuple[tuple[int, int, str], SelectedEntry]] = {}
    dropped: list[DropRecord] = []

    for identifier in ordered_ids:
        match, descriptor = matched[identifier]
        entries = store.lookup(identifier)
        if not entries:
            logger.debug("Integration %s matched but has no entries", identifier)
            dropped.append(DropRecord(
                integration=identifier,
                reason=REASON_NO_ENTRIES,
                detail=f"matched via {match.package}",
            ))
            continue

        priority = descriptor.topic_priority or fallback_priority
        installed = _installed_version(descriptor, signature.dependencies)
        for entry in entries:
            if entry.id in selected:
                continue
            key = (positions[identifier], _topic_rank(entry.topic, priority), entry.id)
            selected[entry.id] = (key, SelectedEntry(
                entry=entry,
                version_mismatch=_is_version_mismatch(entry, installed),
                declared_version=installed,
            ))

    entries_in_order = tuple(
        item for _, item in sorted(selected.values(), key=lambda pair: pair[0])
    )

    return SelectionResult(
        matched_integrations=tuple(ordered_ids),
        entries=entries_in_order,
        matches=tuple(matched[identifier][0] for identifier in ordered_ids),
        dropped=tuple(dropped),
    )
