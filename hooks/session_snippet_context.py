#!/usr/bin/env python3
"""
SessionStart hook: inject integration examples for the current project.

Reads the project's package.json, selects the matching snippets and prints
the bundle to stdout so the session starts with the relevant examples in
context. Never blocks the session: problems are reported on stderr and the
hook exits 0.
"""

import dataclasses
import os
import sys
from pathlib import Path
from typing import Optional

# Plugin root holds the scripts/ package
PLUGIN_ROOT = Path(__file__).resolve().parent.parent
if str(PLUGIN_ROOT) not in sys.path:
    sys.path.insert(0, str(PLUGIN_ROOT))

from scripts.snippets.bundler import bundle  # noqa: E402
from scripts.snippets.config import (  # noqa: E402
    DEFAULT_CONFIG_PATH,
    POLICY_DROP,
    get_default_config,
    load_config,
)
from scripts.snippets.detector import detect, load_manifest  # noqa: E402
from scripts.snippets.errors import SnippetError  # noqa: E402
from scripts.snippets.selector import select  # noqa: E402
from scripts.snippets.store import load  # noqa: E402

HOOK_PREFIX = "[snippets]"

# Keep injected context modest; override with SNIPPETS_MAX_BYTES
DEFAULT_MAX_BYTES = 24_000


def log_info(msg: str) -> None:
    print(f"{HOOK_PREFIX} {msg}", file=sys.stderr)


def get_project_dir() -> Path:
    """Get project directory from environment or cwd."""
    project_dir = os.environ.get("CLAUDE_PROJECT_DIR")
    if project_dir:
        return Path(project_dir)
    return Path.cwd()


def get_max_bytes() -> int:
    """Read the byte budget from SNIPPETS_MAX_BYTES.

    Raises:
        ValueError: If the variable is not an integer.
    """
    return int(os.environ.get("SNIPPETS_MAX_BYTES", DEFAULT_MAX_BYTES))


def build_context(project_dir: Path, max_bytes: Optional[int] = DEFAULT_MAX_BYTES) -> Optional[str]:
    """Build the text to inject for a project, or None if nothing applies.

    Integrations that matched but were left out (no examples, over budget)
    are still listed so the session knows its coverage is incomplete.
    """
    manifest_path = project_dir / "package.json"
    if not manifest_path.exists():
        return None

    config_path = project_dir / DEFAULT_CONFIG_PATH
    if config_path.exists():
        config = load_config(config_path)
        base_dir = config_path.parent
    else:
        config = get_default_config()
        base_dir = project_dir

    signature = detect(load_manifest(manifest_path))
    if signature.empty:
        return None

    store = load(config.corpus_paths(base_dir))
    selection = select(signature, store, config.integrations, config.topic_priority)
    if not selection.entries and not selection.dropped:
        return None

    # A session hook must always produce something usable
    budget = dataclasses.replace(config.budget, truncation_policy=POLICY_DROP)
    if max_bytes is not None:
        budget = dataclasses.replace(budget, max_bytes=max_bytes)

    result = bundle(selection, budget)

    integrations = ", ".join(selection.matched_integrations)
    if result.entries:
        header = f"Reference examples for this project's integrations ({integrations}):\n\n"
    else:
        header = f"No reference examples included for this project's integrations ({integrations}).\n\n"
    return header + result.render_text()


def main() -> int:
    try:
        context = build_context(get_project_dir(), get_max_bytes())
    except (SnippetError, OSError, ValueError) as e:
        log_info(f"Skipping snippet context: {e}")
        return 0

    if context:
        sys.stdout.write(context)
    return 0


if __name__ == "__main__":
    sys.exit(main())
