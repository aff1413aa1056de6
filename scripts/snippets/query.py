"""Query interface for a loaded snippet store."""

from __future__ import annotations

from typing import Any, Optional

from scripts.snippets.store import SnippetEntry, SnippetStore


def describe_entry(entry: SnippetEntry, include_content: bool = False) -> dict[str, Any]:
    """Describe an entry as a plain dictionary."""
    result: dict[str, Any] = {
        "id": entry.id,
        "integration": entry.integration,
        "topic": entry.topic,
        "compatible_versions": entry.compatible_versions,
        "size": entry.size,
        "digest": entry.digest,
        "source_path": entry.source_path,
    }
    if include_content:
        result["content"] = entry.content
    return result


def query_by_integration(
    store: SnippetStore,
    integration: Optional[str] = None,
) -> list[dict[str, Any]]:
    """List entries, optionally for one integration.

    Args:
        store: Loaded snippet store.
        integration: Integration identifier to filter by, or None for all.

    Returns:
        Entry descriptions sorted by id.
    """
    if integration is None:
        return [describe_entry(entry) for entry in store]
    return [describe_entry(entry) for entry in store.lookup(integration)]


def query_by_id(store: SnippetStore, entry_id: str) -> Optional[dict[str, Any]]:
    """Describe a single entry, including its content, or None if unknown."""
    entry = store.get(entry_id)
    if not entry:
        return None
    return describe_entry(entry, include_content=True)


def get_summary(store: SnippetStore) -> dict[str, Any]:
    """Get summary statistics for a store.

    Returns:
        Summary dictionary with counts, total size and the store digest.
    """
    by_integration = {
        integration: len(store.lookup(integration))
        for integration in store.integrations()
    }
    return {
        "entry_count": len(store),
        "by_integration": by_integration,
        "total_bytes": sum(entry.size for entry in store),
        "digest": store.digest,
    }
