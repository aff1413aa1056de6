"""Configuration loading and validation for the snippet catalog."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from fnmatch import translate as glob_translate
from pathlib import Path
from typing import Any, Optional

import yaml

from scripts.snippets.errors import ConfigError
from scripts.snippets.versions import InvalidVersionRange, parse_range

# Bundled data shipped with the package
PACKAGE_DIR = Path(__file__).resolve().parent
BUNDLED_CORPUS_DIR = PACKAGE_DIR / "corpus"
BUNDLED_CONFIG_PATH = PACKAGE_DIR / "integrations.yaml"

# Default paths inside a consuming project
DEFAULT_CONFIG_PATH = ".claude/snippets/config.yaml"
LEGACY_CONFIG_PATH = "snippets.yaml"

POLICY_DROP = "drop-lowest-priority"
POLICY_FAIL = "fail"
TRUNCATION_POLICIES = (POLICY_DROP, POLICY_FAIL)

RULE_TYPES = ("package", "glob", "regex")


@dataclass(frozen=True)
class DetectionRule:
    """A package-name rule indicating an integration is in use."""

    type: str  # package, glob, regex
    pattern: str
    version_constraint: Optional[str] = None

    def __str__(self) -> str:
        if self.version_constraint:
            return f"{self.type}:{self.pattern}@{self.version_constraint}"
        return f"{self.type}:{self.pattern}"


@dataclass(frozen=True)
class IntegrationDescriptor:
    """A known integration and the rules that detect it."""

    identifier: str
    detection_rules: tuple[DetectionRule, ...] = ()
    topic_priority: tuple[str, ...] = ()
    version_package: Optional[str] = None

    @property
    def versioned_package(self) -> Optional[str]:
        """Package whose declared version stands for the integration.

        Defaults to the pattern of the first 'package' rule.
        """
        if self.version_package:
            return self.version_package
        for rule in self.detection_rules:
            if rule.type == "package":
                return rule.pattern
        return None


@dataclass(frozen=True)
class BudgetConfig:
    """Limits applied when assembling a bundle."""

    max_entries: Optional[int] = None
    max_bytes: Optional[int] = None
    truncation_policy: str = POLICY_DROP
    exclude_version_mismatch: bool = False


@dataclass
class CatalogConfig:
    """Complete catalog configuration."""

    version: str = "1.0"
    corpus_dirs: list[str] = field(default_factory=list)
    include_bundled_corpus: bool = True
    topic_priority: list[str] = field(default_factory=list)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    integrations: list[IntegrationDescriptor] = field(default_factory=list)

    def corpus_paths(self, base_dir: Optional[Path] = None) -> list[Path]:
        """Resolve corpus roots, bundled corpus first.

        Relative entries in ``corpus_dirs`` are resolved against ``base_dir``
        (normally the directory holding the config file).
        """
        paths = [BUNDLED_CORPUS_DIR] if self.include_bundled_corpus else []
        for corpus_dir in self.corpus_dirs:
            path = Path(corpus_dir)
            if not path.is_absolute() and base_dir is not None:
                path = base_dir / path
            paths.append(path)
        return paths


def _get_list(
    data: dict[str, Any],
    key: str,
    config_file: Optional[str] = None,
    default: Optional[list[Any]] = None,
) -> list[Any]:
    """Read an optional list value; null counts as empty."""
    value = data.get(key, default)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(
            f"'{key}' must be a list, got {type(value).__name__}",
            file=config_file,
        )
    return list(value)


def _get_string_list(
    data: dict[str, Any],
    key: str,
    config_file: Optional[str] = None,
    default: Optional[list[str]] = None,
) -> list[str]:
    values = _get_list(data, key, config_file, default)
    for value in values:
        if not isinstance(value, str):
            raise ConfigError(f"'{key}' items must be strings, got: {value!r}", file=config_file)
    return values


def _parse_rule(rule_dict: Any, config_file: Optional[str] = None) -> DetectionRule:
    """Parse a rule dictionary into a DetectionRule."""
    if isinstance(rule_dict, str):
        # Shorthand: a bare package name
        rule_dict = {"type": "package", "pattern": rule_dict}
    if not isinstance(rule_dict, dict):
        raise ConfigError(f"Detection rule must be a mapping, got: {rule_dict!r}", file=config_file)

    rule_type = rule_dict.get("type", "package")
    if rule_type not in RULE_TYPES:
        raise ConfigError(f"Unknown rule type: {rule_type}", file=config_file)

    pattern = rule_dict.get("pattern")
    if not pattern or not isinstance(pattern, str):
        raise ConfigError(f"Detection rule of type '{rule_type}' requires a 'pattern'", file=config_file)

    constraint = rule_dict.get("version_constraint")
    if constraint is not None:
        constraint = str(constraint)

    return DetectionRule(type=rule_type, pattern=pattern, version_constraint=constraint)


def _parse_integration(
    int_dict: Any, config_file: Optional[str] = None
) -> IntegrationDescriptor:
    """Parse an integration dictionary into an IntegrationDescriptor."""
    if not isinstance(int_dict, dict):
        raise ConfigError(f"Integration must be a mapping, got: {int_dict!r}", file=config_file)

    identifier = int_dict.get("identifier")
    if not identifier or not isinstance(identifier, str):
        raise ConfigError("Integration requires an 'identifier'", file=config_file)

    rules = tuple(
        _parse_rule(rule_dict, config_file)
        for rule_dict in _get_list(int_dict, "detection_rules", config_file)
    )

    version_package = int_dict.get("version_package")
    if version_package is not None and (not version_package or not isinstance(version_package, str)):
        raise ConfigError(
            f"Integration '{identifier}': 'version_package' must be a package name",
            file=config_file,
        )

    return IntegrationDescriptor(
        identifier=identifier,
        detection_rules=rules,
        topic_priority=tuple(_get_string_list(int_dict, "topic_priority", config_file)),
        version_package=version_package,
    )


def _parse_budget(budget_dict: Any, config_file: Optional[str] = None) -> BudgetConfig:
    """Parse budget configuration."""
    if not isinstance(budget_dict, dict):
        raise ConfigError("'budget' must be a mapping", file=config_file)

    defaults = BudgetConfig()
    return BudgetConfig(
        max_entries=budget_dict.get("max_entries", defaults.max_entries),
        max_bytes=budget_dict.get("max_bytes", defaults.max_bytes),
        truncation_policy=budget_dict.get("truncation_policy", defaults.truncation_policy),
        exclude_version_mismatch=bool(
            budget_dict.get("exclude_version_mismatch", defaults.exclude_version_mismatch)
        ),
    )


def _validate_regex(pattern: str, config_file: Optional[str] = None) -> None:
    """Validate a regex pattern."""
    try:
        re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"Invalid regex pattern '{pattern}': {e}", file=config_file)


def _validate_glob(pattern: str, config_file: Optional[str] = None) -> None:
    """Validate a glob pattern."""
    try:
        glob_translate(pattern)
    except Exception as e:
        raise ConfigError(f"Invalid glob pattern '{pattern}': {e}", file=config_file)
    # fnmatch treats an unclosed bracket as a literal, which is never intended here
    if pattern.count("[") != pattern.count("]"):
        raise ConfigError(f"Invalid glob pattern '{pattern}': unclosed bracket", file=config_file)


def _validate_version_range(constraint: str, config_file: Optional[str] = None) -> None:
    try:
        parse_range(constraint)
    except InvalidVersionRange as e:
        raise ConfigError(str(e), file=config_file)


def validate_budget(budget: BudgetConfig, config_file: Optional[str] = None) -> None:
    """Validate budget values.

    Raises:
        ConfigError: If a limit is negative or the policy is unknown.
    """
    for name in ("max_entries", "max_bytes"):
        value = getattr(budget, name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(
                f"Budget '{name}' must be a non-negative integer, got: {value!r}",
                file=config_file,
            )
    if budget.truncation_policy not in TRUNCATION_POLICIES:
        raise ConfigError(
            f"Unknown truncation policy '{budget.truncation_policy}'. "
            f"Must be one of: {', '.join(TRUNCATION_POLICIES)}",
            file=config_file,
        )


def validate_config(config: CatalogConfig, config_file: Optional[str] = None) -> None:
    """Validate configuration values.

    Raises:
        ConfigError: If configuration is invalid.
    """
    seen: set[str] = set()
    for descriptor in config.integrations:
        if descriptor.identifier in seen:
            raise ConfigError(
                f"Integration '{descriptor.identifier}' is declared more than once",
                file=config_file,
            )
        seen.add(descriptor.identifier)

        for rule in descriptor.detection_rules:
            if rule.type == "regex":
                _validate_regex(rule.pattern, config_file)
            elif rule.type == "glob":
                _validate_glob(rule.pattern, config_file)
            if rule.version_constraint is not None:
                _validate_version_range(rule.version_constraint, config_file)

    validate_budget(config.budget, config_file)


def _read_yaml(config_path: Path) -> Optional[dict[str, Any]]:
    config_file = str(config_path)
    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config: {e}", file=config_file)

    if not content.strip():
        return None

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}", file=config_file)

    if not data:
        return None
    if not isinstance(data, dict):
        raise ConfigError("Top-level snippet config must be a mapping", file=config_file)
    return data


def _build_config(
    data: dict[str, Any],
    defaults: CatalogConfig,
    config_file: Optional[str] = None,
) -> CatalogConfig:
    if "integrations" in data:
        integrations = [
            _parse_integration(int_dict, config_file)
            for int_dict in _get_list(data, "integrations", config_file)
        ]
    else:
        integrations = list(defaults.integrations)

    if "budget" in data:
        budget = _parse_budget(data.get("budget") or {}, config_file)
    else:
        budget = defaults.budget

    config = CatalogConfig(
        version=str(data.get("version", defaults.version)),
        corpus_dirs=_get_string_list(data, "corpus_dirs", config_file, defaults.corpus_dirs),
        include_bundled_corpus=bool(
            data.get("include_bundled_corpus", defaults.include_bundled_corpus)
        ),
        topic_priority=_get_string_list(data, "topic_priority", config_file, defaults.topic_priority),
        budget=budget,
        integrations=integrations,
    )
    validate_config(config, config_file)
    return config


def get_default_config() -> CatalogConfig:
    """Return the bundled default configuration."""
    data = _read_yaml(BUNDLED_CONFIG_PATH)
    if data is None:
        return CatalogConfig()
    return _build_config(data, CatalogConfig(), str(BUNDLED_CONFIG_PATH))


def load_config(config_path: Path | str) -> CatalogConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the snippet config file.

    Returns:
        CatalogConfig with loaded values merged over the bundled defaults.
        Keys missing from the file keep their default values; a present
        ``integrations`` list replaces the default descriptors entirely.

    Raises:
        ConfigError: If the file exists but contains invalid configuration.
    """
    config_path = Path(config_path)
    defaults = get_default_config()

    if not config_path.exists():
        return defaults

    data = _read_yaml(config_path)
    if data is None:
        return defaults

    return _build_config(data, defaults, str(config_path))
