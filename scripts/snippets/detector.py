"""Shape a project's declared dependencies into a ProjectSignature."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from scripts.snippets.errors import EmptyManifestError, ManifestError

# package.json sections, in precedence order
MANIFEST_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


@dataclass(frozen=True)
class ProjectSignature:
    """Declared dependencies of one project (request-scoped)."""

    dependencies: Mapping[str, str]
    error: Optional[EmptyManifestError] = None

    @property
    def empty(self) -> bool:
        return not self.dependencies


def detect(manifest: Mapping[str, Any], strict: bool = False) -> ProjectSignature:
    """Build a ProjectSignature from a parsed manifest mapping.

    Args:
        manifest: Dependency name -> version constraint. ``None`` versions
            are read as ``"*"``.
        strict: Raise EmptyManifestError instead of returning a flagged
            signature when nothing is declared.

    Returns:
        The signature. An empty manifest yields a signature whose ``error``
        holds the EmptyManifestError; selecting with it matches nothing.

    Raises:
        TypeError: If ``manifest`` is not a mapping.
        EmptyManifestError: If ``strict`` and the manifest is empty.
    """
    if not isinstance(manifest, Mapping):
        raise TypeError(f"manifest must be a mapping, got {type(manifest).__name__}")

    dependencies: dict[str, str] = {}
    for name, version in manifest.items():
        if not isinstance(name, str) or not name:
            raise TypeError(f"dependency names must be non-empty strings, got {name!r}")
        dependencies[name] = "*" if version is None else str(version).strip()

    if not dependencies:
        error = EmptyManifestError("Manifest declares no dependencies")
        if strict:
            raise error
        return ProjectSignature(dependencies=MappingProxyType({}), error=error)

    return ProjectSignature(dependencies=MappingProxyType(dependencies))


def load_manifest(manifest_path: Path | str) -> dict[str, str]:
    """Read the declared dependencies of a package.json.

    Sections are merged in MANIFEST_SECTIONS order; the first declaration
    of a package wins.

    Raises:
        ManifestError: If the file is missing, unreadable or malformed.
    """
    manifest_path = Path(manifest_path)
    manifest_file = str(manifest_path)

    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ManifestError("Manifest not found", file=manifest_file)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(f"Invalid JSON: {e}", file=manifest_file)
    except OSError as e:
        raise ManifestError(f"Cannot read manifest: {e}", file=manifest_file)

    if not isinstance(data, dict):
        raise ManifestError("Top-level manifest must be an object", file=manifest_file)

    dependencies: dict[str, str] = {}
    for section in MANIFEST_SECTIONS:
        declared = data.get(section) or {}
        if not isinstance(declared, dict):
            raise ManifestError(f"'{section}' must be an object", file=manifest_file)
        for name, version in declared.items():
            dependencies.setdefault(name, str(version))

    return dependencies
