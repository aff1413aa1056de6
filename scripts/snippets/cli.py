"""Command-line interface for the snippet catalog."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import shutil
import sys
from enum import IntEnum
from pathlib import Path
from typing import Optional

from scripts.snippets.bundler import bundle
from scripts.snippets.config import (
    BUNDLED_CONFIG_PATH,
    DEFAULT_CONFIG_PATH,
    LEGACY_CONFIG_PATH,
    TRUNCATION_POLICIES,
    CatalogConfig,
    get_default_config,
    load_config,
)
from scripts.snippets.detector import detect, load_manifest
from scripts.snippets.errors import (
    BudgetExceededError,
    ConfigError,
    DuplicateIdError,
    MalformedEntryError,
    ManifestError,
    SnippetError,
)
from scripts.snippets.query import get_summary, query_by_id, query_by_integration
from scripts.snippets.selector import select
from scripts.snippets.store import SnippetStore, load


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    FILE_SYSTEM_ERROR = 2
    PARTIAL_SUCCESS = 3
    CORPUS_ERROR = 4
    BUDGET_EXCEEDED = 5


def _find_config_path(config_path: Optional[str]) -> Optional[Path]:
    """Locate the config file.

    Search order:
    1. Explicit --config path
    2. .claude/snippets/config.yaml
    3. snippets.yaml
    4. None (bundled defaults)
    """
    if config_path:
        return Path(config_path)

    for candidate in (DEFAULT_CONFIG_PATH, LEGACY_CONFIG_PATH):
        path = Path.cwd() / candidate
        if path.exists():
            return path

    return None


def _get_config(config_path: Optional[str]) -> tuple[CatalogConfig, Path]:
    """Load config and return it with the directory relative corpus paths resolve against."""
    path = _find_config_path(config_path)
    if path is None:
        return get_default_config(), Path.cwd()
    return load_config(path), path.resolve().parent


def _load_store(config: CatalogConfig, base_dir: Path) -> SnippetStore:
    return load(config.corpus_paths(base_dir))


def _print_error(error: Exception) -> None:
    if isinstance(error, SnippetError):
        print(json.dumps(error.to_json()), file=sys.stderr)
    else:
        print(f"Error: {error}", file=sys.stderr)


def _prepare(args: argparse.Namespace) -> tuple[Optional[CatalogConfig], Optional[SnippetStore], int]:
    """Load config and store, mapping failures to exit codes."""
    try:
        config, base_dir = _get_config(args.config)
    except ConfigError as e:
        _print_error(e)
        return None, None, ExitCode.CONFIG_ERROR

    try:
        store = _load_store(config, base_dir)
    except (DuplicateIdError, MalformedEntryError) as e:
        _print_error(e)
        return config, None, ExitCode.CORPUS_ERROR
    except OSError as e:
        _print_error(e)
        return config, None, ExitCode.FILE_SYSTEM_ERROR

    return config, store, ExitCode.SUCCESS


def _read_dependencies(args: argparse.Namespace) -> dict[str, str]:
    """Collect dependencies from --manifest and --dependency arguments.

    Raises:
        ManifestError: If the manifest cannot be read or an argument is malformed.
    """
    dependencies: dict[str, str] = {}

    manifest = args.manifest
    if manifest is None and not args.dependency:
        manifest = "package.json"
    if manifest is not None:
        dependencies.update(load_manifest(Path(manifest)))

    for item in args.dependency or []:
        name, sep, version = item.partition("=")
        if not name:
            raise ManifestError(f"Invalid --dependency '{item}', expected NAME[=VERSION]")
        dependencies[name] = version if sep else "*"

    return dependencies


def cmd_list(args: argparse.Namespace) -> int:
    """List entry ids."""
    _config, store, code = _prepare(args)
    if store is None:
        return code

    results = query_by_integration(store, args.integration)
    if args.json:
        print(json.dumps(results, indent=2))
        return ExitCode.SUCCESS

    for r in results:
        marker = f"  [{r['compatible_versions']}]" if r["compatible_versions"] else ""
        print(f"{r['id']}{marker}")
    if not results and args.integration:
        print(f"No snippets for integration: {args.integration}", file=sys.stderr)
    return ExitCode.SUCCESS


def cmd_show(args: argparse.Namespace) -> int:
    """Print one entry."""
    _config, store, code = _prepare(args)
    if store is None:
        return code

    result = query_by_id(store, args.id)
    if result is None:
        print(f"Snippet not found: {args.id}", file=sys.stderr)
        return ExitCode.FILE_SYSTEM_ERROR

    if args.json:
        print(json.dumps(result, indent=2))
    else:
        sys.stdout.write(result["content"])
    return ExitCode.SUCCESS


def cmd_detect(args: argparse.Namespace) -> int:
    """Show which integrations a project uses."""
    config, store, code = _prepare(args)
    if store is None:
        return code

    try:
        signature = detect(_read_dependencies(args))
    except ManifestError as e:
        _print_error(e)
        return ExitCode.FILE_SYSTEM_ERROR

    if signature.error:
        print(f"Warning: {signature.error}", file=sys.stderr)

    result = select(signature, store, config.integrations, config.topic_priority)
    for match in result.matches:
        print(f"{match.identifier}  ({match.package} {match.declared_version}, rule {match.rule})")
    for drop in result.dropped:
        print(f"{drop.integration}  [{drop.reason}]")
    if not result.matches:
        print("No known integrations detected", file=sys.stderr)
    return ExitCode.SUCCESS


def cmd_bundle(args: argparse.Namespace) -> int:
    """Select and bundle snippets for a project."""
    config, store, code = _prepare(args)
    if store is None:
        return code

    try:
        signature = detect(_read_dependencies(args))
    except ManifestError as e:
        _print_error(e)
        return ExitCode.FILE_SYSTEM_ERROR

    if signature.error:
        print(f"Warning: {signature.error}; nothing selected", file=sys.stderr)

    overrides = {}
    if args.max_entries is not None:
        overrides["max_entries"] = args.max_entries
    if args.max_bytes is not None:
        overrides["max_bytes"] = args.max_bytes
    if args.policy is not None:
        overrides["truncation_policy"] = args.policy
    if args.exclude_mismatched:
        overrides["exclude_version_mismatch"] = True
    budget = dataclasses.replace(config.budget, **overrides)

    selection = select(signature, store, config.integrations, config.topic_priority)
    try:
        result = bundle(selection, budget)
    except BudgetExceededError as e:
        _print_error(e)
        return ExitCode.BUDGET_EXCEEDED
    except ConfigError as e:
        _print_error(e)
        return ExitCode.CONFIG_ERROR

    if args.format == "json":
        print(result.to_json())
    else:
        sys.stdout.write(result.render_text())

    # Exit PARTIAL_SUCCESS if anything was left out
    if result.dropped:
        return ExitCode.PARTIAL_SUCCESS
    return ExitCode.SUCCESS


def cmd_status(args: argparse.Namespace) -> int:
    """Show corpus status."""
    config, store, code = _prepare(args)
    if store is None:
        return code

    summary = get_summary(store)
    config_path = _find_config_path(args.config)

    print("Snippet Catalog Status")
    print("=" * 40)
    print(f"\nConfig: {config_path or 'bundled defaults'}")
    print(f"Entries: {summary['entry_count']} ({summary['total_bytes']} bytes)")
    print(f"Digest: {summary['digest']}")
    print("  By integration:")
    for integration, count in summary["by_integration"].items():
        print(f"    {integration}: {count}")

    declared = [descriptor.identifier for descriptor in config.integrations]
    undocumented = [identifier for identifier in declared if not store.lookup(identifier)]
    undeclared = [integration for integration in store.integrations() if integration not in declared]

    if undocumented:
        print(f"\nIntegrations without snippets: {', '.join(undocumented)}")
    if undeclared:
        print(f"\nSnippets with no detection rules (never selected): {', '.join(undeclared)}")

    return ExitCode.SUCCESS


def cmd_init(_args: argparse.Namespace) -> int:
    """Write a starter config into the current project."""
    config_path = Path.cwd() / DEFAULT_CONFIG_PATH

    if config_path.exists():
        print(f"Config already exists: {config_path}")
        return ExitCode.SUCCESS

    config_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        shutil.copy(BUNDLED_CONFIG_PATH, config_path)
    except OSError as e:
        print(f"Error: Could not write config: {e}", file=sys.stderr)
        return ExitCode.FILE_SYSTEM_ERROR

    print(f"Created {config_path}")
    print("\nNext steps:")
    print("  1. Add corpus_dirs or integrations to the config")
    print("  2. Run 'snippets status' to check the corpus")
    print("  3. Run 'snippets bundle' in a project with a package.json")
    return ExitCode.SUCCESS


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    """Add --config argument to a parser."""
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )


def _add_manifest_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--manifest",
        "-m",
        help="Path to package.json (default: ./package.json unless --dependency is given)",
    )
    parser.add_argument(
        "--dependency",
        "-d",
        action="append",
        metavar="NAME[=VERSION]",
        help="Declare a dependency directly (repeatable)",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="snippets",
        description="Select integration examples for a project's dependencies",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Write a starter config into the current project")

    list_parser = subparsers.add_parser("list", help="List snippet ids")
    _add_config_arg(list_parser)
    list_parser.add_argument("--integration", "-i", help="Only list this integration")
    list_parser.add_argument("--json", action="store_true", help="Print JSON records")

    show_parser = subparsers.add_parser("show", help="Print one snippet")
    _add_config_arg(show_parser)
    show_parser.add_argument("id", help="Snippet id, e.g. convex/schema")
    show_parser.add_argument("--json", action="store_true", help="Print the JSON record")

    detect_parser = subparsers.add_parser("detect", help="Show integrations used by a project")
    _add_config_arg(detect_parser)
    _add_manifest_args(detect_parser)

    bundle_parser = subparsers.add_parser("bundle", help="Bundle snippets for a project")
    _add_config_arg(bundle_parser)
    _add_manifest_args(bundle_parser)
    bundle_parser.add_argument("--max-entries", type=int, help="Maximum number of entries")
    bundle_parser.add_argument("--max-bytes", type=int, help="Maximum total content size in bytes")
    bundle_parser.add_argument("--policy", choices=TRUNCATION_POLICIES, help="Truncation policy")
    bundle_parser.add_argument(
        "--exclude-mismatched",
        action="store_true",
        help="Leave out entries known not to match the installed version",
    )
    bundle_parser.add_argument("--format", choices=("text", "json"), default="text")

    status_parser = subparsers.add_parser("status", help="Show corpus status")
    _add_config_arg(status_parser)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    commands = {
        "init": cmd_init,
        "list": cmd_list,
        "show": cmd_show,
        "detect": cmd_detect,
        "bundle": cmd_bundle,
        "status": cmd_status,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
