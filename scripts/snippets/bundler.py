"""Assemble selected snippets into a size-bounded bundle."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from scripts.snippets.config import POLICY_FAIL, BudgetConfig, validate_budget
from scripts.snippets.errors import BudgetExceededError
from scripts.snippets.selector import (
    REASON_BUDGET_TRUNCATED,
    REASON_VERSION_MISMATCH,
    DropRecord,
    SelectedEntry,
    SelectionResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BundleRecord:
    """One entry as handed to the consumer."""

    id: str
    integration: str
    topic: str
    content: str
    version_mismatch: bool = False

    @classmethod
    def from_selected(cls, item: SelectedEntry) -> "BundleRecord":
        return cls(
            id=item.entry.id,
            integration=item.entry.integration,
            topic=item.entry.topic,
            content=item.entry.content,
            version_mismatch=item.version_mismatch,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "integration": self.integration,
            "topic": self.topic,
            "content": self.content,
            "version_mismatch": self.version_mismatch,
        }


_BACKTICK_RUN_RE = re.compile(r"`+")


def _fence_for(content: str) -> str:
    """A code fence longer than any backtick run inside ``content``."""
    longest = max((len(run) for run in _BACKTICK_RUN_RE.findall(content)), default=0)
    return "`" * max(3, longest + 1)


@dataclass(frozen=True)
class Bundle:
    """Ordered entries plus a manifest of what was left out."""

    entries: tuple[BundleRecord, ...] = ()
    dropped: tuple[DropRecord, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.dropped

    @property
    def total_bytes(self) -> int:
        return sum(len(record.content.encode("utf-8")) for record in self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [record.to_dict() for record in self.entries],
            "dropped": [record.to_dict() for record in self.dropped],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)

    def render_text(self) -> str:
        """Render as flat text for context injection."""
        lines: list[str] = []
        for record in self.entries:
            header = f"## {record.id}"
            if record.version_mismatch:
                header += " (may not match the installed version)"
            lines.append(header)
            lines.append("")
            fence = _fence_for(record.content)
            lines.append(fence)
            lines.append(record.content.rstrip("\n"))
            lines.append(fence)
            lines.append("")

        if self.dropped:
            lines.append("Omitted:")
            for drop in self.dropped:
                target = drop.id or drop.integration
                suffix = f" ({drop.detail})" if drop.detail else ""
                lines.append(f"- {target}: {drop.reason}{suffix}")

        return "\n".join(lines).rstrip("\n") + "\n" if lines else ""


def _over_budget(count: int, total_bytes: int, budget: BudgetConfig) -> Optional[str]:
    """Name the first limit exceeded, or None if the budget holds."""
    if budget.max_entries is not None and count > budget.max_entries:
        return f"max_entries={budget.max_entries}"
    if budget.max_bytes is not None and total_bytes > budget.max_bytes:
        return f"max_bytes={budget.max_bytes}"
    return None


def bundle(selection: SelectionResult, budget: Optional[BudgetConfig] = None) -> Bundle:
    """Fit a selection into a budget.

    Under ``drop-lowest-priority`` entries are removed from the tail of the
    selection order until every limit holds. Under ``fail`` nothing is
    returned if the selection does not fit.

    Args:
        selection: Ordered selection from ``select``.
        budget: Limits and policy. Defaults to an unlimited budget.

    Returns:
        Bundle with the included entries and the drop manifest.

    Raises:
        BudgetExceededError: If the policy is ``fail`` and a limit is exceeded.
        ConfigError: If the budget itself is invalid.
    """
    budget = budget or BudgetConfig()
    validate_budget(budget)

    dropped = list(selection.dropped)
    candidates: list[SelectedEntry] = []

    for item in selection.entries:
        if item.version_mismatch and budget.exclude_version_mismatch:
            dropped.append(DropRecord(
                integration=item.entry.integration,
                reason=REASON_VERSION_MISMATCH,
                id=item.id,
                detail=f"declared {item.declared_version}, compatible {item.entry.compatible_versions}",
            ))
            continue
        candidates.append(item)

    total_bytes = sum(item.entry.size for item in candidates)
    exceeded = _over_budget(len(candidates), total_bytes, budget)

    if exceeded and budget.truncation_policy == POLICY_FAIL:
        raise BudgetExceededError(
            f"{len(candidates)} entries ({total_bytes} bytes) exceed {exceeded}",
            entry_count=len(candidates),
            total_bytes=total_bytes,
            max_entries=budget.max_entries,
            max_bytes=budget.max_bytes,
        )

    truncated: list[tuple[SelectedEntry, str]] = []
    while candidates and exceeded:
        item = candidates.pop()
        total_bytes -= item.entry.size
        truncated.append((item, exceeded))
        exceeded = _over_budget(len(candidates), total_bytes, budget)

    # Report truncations in priority order
    for item, limit in reversed(truncated):
        dropped.append(DropRecord(
            integration=item.entry.integration,
            reason=REASON_BUDGET_TRUNCATED,
            id=item.id,
            detail=f"exceeds {limit}",
        ))

    if truncated:
        logger.debug("Truncated %d entries to fit budget", len(truncated))

    return Bundle(
        entries=tuple(BundleRecord.from_selected(item) for item in candidates),
        dropped=tuple(dropped),
    )
