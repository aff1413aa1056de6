"""Immutable, content-addressed store of integration snippets.

Corpus layout::

    <root>/<integration>/[assets/]<topic>.example.<ext>
    <root>/<integration>/snippets.yaml      (optional sidecar)

The sidecar may override the integration identifier and give per-topic
``compatible_versions`` ranges::

    integration: autumn
    topics:
      autumn-config:
        compatible_versions: ">=0.1.0"
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Optional, Union

import yaml

from scripts.snippets.config import BUNDLED_CORPUS_DIR
from scripts.snippets.errors import DuplicateIdError, MalformedEntryError
from scripts.snippets.versions import InvalidVersionRange, parse_range

logger = logging.getLogger(__name__)

EXAMPLE_MARKER = ".example."
SIDECAR_NAME = "snippets.yaml"
SKIP_DIRS = ("__pycache__", "node_modules")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class SnippetEntry:
    """One example file of the corpus."""

    id: str  # "<integration>/<topic>"
    integration: str
    topic: str
    content: str
    compatible_versions: Optional[str] = None
    source_path: str = ""
    digest: str = ""  # SHA-256 of content

    @property
    def size(self) -> int:
        """Payload size in UTF-8 bytes."""
        return len(self.content.encode("utf-8"))


@dataclass(frozen=True)
class NotFound:
    """Returned by ``SnippetStore.get`` for an unknown id."""

    id: str

    def __bool__(self) -> bool:
        return False


def compute_digest(content: str) -> str:
    """Compute the SHA-256 hex digest of an entry payload."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def make_entry(
    integration: str,
    topic: str,
    content: str,
    compatible_versions: Optional[str] = None,
    source_path: str = "",
) -> SnippetEntry:
    """Build an entry, deriving its id and digest."""
    return SnippetEntry(
        id=f"{integration}/{topic}",
        integration=integration,
        topic=topic,
        content=content,
        compatible_versions=compatible_versions,
        source_path=source_path,
        digest=compute_digest(content),
    )


class SnippetStore:
    """Read-only index of snippet entries by id and by integration."""

    def __init__(self, entries: Iterable[SnippetEntry] = ()):
        by_id: dict[str, SnippetEntry] = {}
        by_integration: dict[str, list[SnippetEntry]] = {}

        for entry in entries:
            existing = by_id.get(entry.id)
            if existing is not None:
                raise DuplicateIdError(entry.id, existing.source_path, entry.source_path)
            by_id[entry.id] = entry
            by_integration.setdefault(entry.integration, []).append(entry)

        self._by_id = MappingProxyType(by_id)
        self._by_integration = MappingProxyType({
            integration: tuple(sorted(group, key=lambda e: e.id))
            for integration, group in by_integration.items()
        })

        hasher = hashlib.sha256()
        for entry_id in sorted(by_id):
            hasher.update(f"{entry_id}\0{by_id[entry_id].digest}\n".encode("utf-8"))
        self.digest = hasher.hexdigest()

    def lookup(self, integration: str) -> tuple[SnippetEntry, ...]:
        """All entries for an integration (exact, case-sensitive), sorted by id."""
        return self._by_integration.get(integration, ())

    def get(self, entry_id: str) -> Union[SnippetEntry, NotFound]:
        """Direct lookup by id. Absence is returned, not raised."""
        entry = self._by_id.get(entry_id)
        if entry is None:
            return NotFound(entry_id)
        return entry

    def ids(self) -> list[str]:
        return sorted(self._by_id)

    def integrations(self) -> list[str]:
        return sorted(self._by_integration)

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[SnippetEntry]:
        for entry_id in sorted(self._by_id):
            yield self._by_id[entry_id]

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._by_id


def derive_topic(filename: str) -> Optional[str]:
    """Derive a topic from an example file name.

    ``schema.example.ts`` -> ``schema``,
    ``counter.svelte.example.ts`` -> ``counter-svelte``.

    Returns:
        The topic, or None if the file carries no ``.example.`` marker.
    """
    index = filename.find(EXAMPLE_MARKER)
    if index < 0:
        return None
    return filename[:index].replace(".", "-")


def _read_sidecar(integration_dir: Path) -> dict[str, Any]:
    """Read an integration directory's sidecar metadata, if present."""
    path = integration_dir / SIDECAR_NAME
    if not path.is_file():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise MalformedEntryError(f"Invalid sidecar metadata: {e}", file=str(path))

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedEntryError("Sidecar metadata must be a mapping", file=str(path))
    if not isinstance(data.get("topics") or {}, dict):
        raise MalformedEntryError("Sidecar 'topics' must be a mapping", file=str(path))
    return data


def _iter_example_files(root: Path) -> Iterator[Path]:
    """Yield example files under a corpus root in sorted order."""
    for dirpath, dirnames, filenames in os.walk(root):
        # Sort in place so os.walk descends deterministically
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in SKIP_DIRS and not d.startswith(".")
        )
        for filename in sorted(filenames):
            if filename.startswith(".") or EXAMPLE_MARKER not in filename:
                continue
            yield Path(dirpath) / filename


def _load_entry(
    root: Path,
    path: Path,
    sidecars: dict[str, dict[str, Any]],
) -> SnippetEntry:
    relative = path.relative_to(root)
    source = str(path)

    if len(relative.parts) < 2:
        raise MalformedEntryError(
            "Example file is not inside an integration directory",
            file=source,
        )

    dir_name = relative.parts[0]
    if dir_name not in sidecars:
        sidecars[dir_name] = _read_sidecar(root / dir_name)
    sidecar = sidecars[dir_name]

    integration = sidecar.get("integration") or dir_name
    topic = derive_topic(path.name)

    if not isinstance(integration, str) or not _IDENTIFIER_RE.match(integration):
        raise MalformedEntryError(f"Invalid integration identifier '{integration}'", file=source)
    if not topic or not _IDENTIFIER_RE.match(topic):
        raise MalformedEntryError(f"Cannot derive a topic from '{path.name}'", file=source)

    topic_meta = (sidecar.get("topics") or {}).get(topic) or {}
    if not isinstance(topic_meta, dict):
        raise MalformedEntryError(f"Sidecar entry for topic '{topic}' must be a mapping", file=source)

    compatible = topic_meta.get("compatible_versions")
    if compatible is not None:
        compatible = str(compatible)
        try:
            parse_range(compatible)
        except InvalidVersionRange as e:
            raise MalformedEntryError(str(e), file=source)

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedEntryError(f"Example is not valid UTF-8: {e}", file=source)

    return make_entry(
        integration=integration,
        topic=topic,
        content=content,
        compatible_versions=compatible,
        source_path=source,
    )


def load(source_paths: Iterable[Path | str]) -> SnippetStore:
    """Load every example under the given corpus roots.

    Args:
        source_paths: Corpus root directories, scanned in order.

    Returns:
        The populated, read-only SnippetStore.

    Raises:
        FileNotFoundError: If a corpus root does not exist.
        DuplicateIdError: If two files resolve to the same id.
        MalformedEntryError: If an entry's integration or topic cannot be
            derived, or its metadata is invalid.
    """
    entries: list[SnippetEntry] = []
    roots = [Path(source) for source in source_paths]

    for root in roots:
        if not root.is_dir():
            raise FileNotFoundError(f"Snippet corpus not found: {root}")

        sidecars: dict[str, dict[str, Any]] = {}
        count = len(entries)
        for path in _iter_example_files(root):
            entries.append(_load_entry(root, path, sidecars))

        loaded_topics = {(e.integration, e.topic) for e in entries[count:]}
        for dir_name, sidecar in sidecars.items():
            integration = sidecar.get("integration") or dir_name
            for topic in sidecar.get("topics") or {}:
                if (integration, topic) not in loaded_topics:
                    logger.warning(
                        "Sidecar in %s lists topic '%s' with no example file",
                        root / dir_name, topic,
                    )
        logger.debug("Loaded %d snippets from %s", len(entries) - count, root)

    store = SnippetStore(entries)
    logger.debug("Snippet store ready: %d entries, digest %s", len(store), store.digest[:12])
    return store


def load_default_store() -> SnippetStore:
    """Load the corpus bundled with the package."""
    return load([BUNDLED_CORPUS_DIR])


class StoreHandle:
    """Holds the current store for long-running callers.

    ``reload`` builds a complete new store before swapping it in, so readers
    see either the old store or the new one, never a partial load.
    """

    def __init__(self, source_paths: Iterable[Path | str]):
        self._source_paths = tuple(Path(p) for p in source_paths)
        self._store = load(self._source_paths)

    @property
    def store(self) -> SnippetStore:
        return self._store

    def reload(self) -> SnippetStore:
        """Reload the corpus. On error the current store stays in place."""
        store = load(self._source_paths)
        self._store = store
        logger.debug("Snippet store reloaded")
        return store
