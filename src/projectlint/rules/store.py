"""Rule store: read slice, profile, active-rule, base, and override documents.

Documents are TOML (``.toml``) or YAML (``.yml`` / ``.yaml``) files sharing
one schema.  The on-disk layout of a configuration directory is::

    config.toml              user overrides (mode, enabled/disabled checks)
    rules/core.toml          base defaults
    rules/slices/*.toml      domain rule groups
    rules/profiles/*.toml    context-activation profiles
    rules/active/*.toml      standalone enabled rule documents

A store is a plain value built once per invocation and passed explicitly
to every component; nothing here is cached at module level.
"""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import yaml

from projectlint.rules.models import (
    NO_FIX,
    ActivationSpec,
    ActiveRuleDocument,
    BaseDocument,
    CallDetector,
    ConditionMode,
    ContentCondition,
    ContentMatch,
    Detector,
    DocumentMetadata,
    Fix,
    MatchPosition,
    Mode,
    OverrideDocument,
    PatternDetector,
    ProfileDocument,
    RuleDefinition,
    Severity,
    SliceDocument,
    SubstitutionFix,
    Target,
    TemplateFix,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIXES: frozenset[str] = frozenset({".toml", ".yml", ".yaml"})
BUNDLED_DEFAULTS_DIR: Path = Path(__file__).resolve().parent.parent / "defaults"

# s/search/replace/ with an optional trailing "g"; "\/" escapes the delimiter.
_SUBSTITUTION_RE = re.compile(r"s/((?:[^/\\]|\\.)*)/((?:[^/\\]|\\.)*)/(g?)")

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DocumentError(ValueError):
    """Raised when a rule document is unreadable or malformed."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{path}: {reason}")


# ---------------------------------------------------------------------------
# Raw reading
# ---------------------------------------------------------------------------


def read_document(path: Path) -> dict[str, Any]:
    """Read a TOML or YAML document into a mapping.

    Raises :class:`DocumentError` on I/O or syntax errors, or when the
    top level is not a mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentError(path, f"cannot read document ({exc})") from exc

    try:
        if path.suffix == ".toml":
            data: object = tomllib.loads(text)
        else:
            data = yaml.safe_load(text)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
        raise DocumentError(path, f"syntax error: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DocumentError(path, "document must be a mapping")
    return data


def _list_documents(directory: Path) -> list[Path]:
    """Return rule documents under *directory*, recursively, in sorted order."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.rglob("*") if p.is_file() and p.suffix in DOCUMENT_SUFFIXES
    )


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _str_list(value: object, context: str) -> tuple[str, ...]:
    """Normalize a string or list of strings into a tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    msg = f"{context} must be a string or a list of strings"
    raise ValueError(msg)


def _mapping(value: object, context: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"{context} must be a mapping"
        raise ValueError(msg)
    return value


def _parse_metadata(data: dict[str, Any], *, fallback_name: str | None = None) -> DocumentMetadata:
    """Parse the ``[metadata]`` block; ``name`` is required."""
    if "metadata" not in data and fallback_name is None:
        msg = "missing required [metadata] block"
        raise ValueError(msg)
    meta = _mapping(data.get("metadata"), "[metadata]")
    name = meta.get("name", fallback_name)
    if name is None or not isinstance(name, str) or not name.strip():
        msg = "[metadata] missing required 'name' field"
        raise ValueError(msg)
    return DocumentMetadata(
        name=name.strip(),
        version=str(meta.get("version", "1")),
        scope=str(meta.get("scope", "")),
        description=str(meta.get("description", "")),
    )


def _parse_messages(data: dict[str, Any]) -> dict[str, str]:
    messages = _mapping(data.get("messages"), "[messages]")
    return {str(key): str(value) for key, value in messages.items()}


def parse_fix(raw: object, context: str) -> Fix:
    """Parse a ``fix`` value into a tagged fix variant.

    * ``None`` → no fix;
    * ``"s/search/replace/[g]"`` → :class:`SubstitutionFix`;
    * any other string → :class:`TemplateFix`;
    * a mapping with ``template`` or ``search``/``replace`` keys → the
      corresponding variant.
    """
    if raw is None:
        return NO_FIX

    if isinstance(raw, str):
        match = _SUBSTITUTION_RE.fullmatch(raw)
        if match is None:
            return TemplateFix(template=raw)
        search = match.group(1).replace("\\/", "/")
        replace = match.group(2).replace("\\/", "/")
        _check_regex(search, f"{context}: fix search")
        return SubstitutionFix(search=search, replace=replace, count=0 if match.group(3) else 1)

    if isinstance(raw, dict):
        if "template" in raw:
            return TemplateFix(template=str(raw["template"]))
        if "search" in raw and "replace" in raw:
            search = str(raw["search"])
            _check_regex(search, f"{context}: fix search")
            return SubstitutionFix(
                search=search,
                replace=str(raw["replace"]),
                count=0 if raw.get("global", False) else 1,
            )

    msg = f"{context}: 'fix' must be a string or a mapping with 'template' or 'search'/'replace'"
    raise ValueError(msg)


def _check_regex(pattern: str, context: str) -> None:
    try:
        re.compile(pattern)
    except re.error as exc:
        msg = f"{context}: invalid regular expression '{pattern}' ({exc})"
        raise ValueError(msg) from exc


def _parse_detector(rule_data: dict[str, Any], context: str) -> Detector:
    has_pattern = "pattern" in rule_data
    has_functions = "functions" in rule_data
    if has_pattern == has_functions:
        msg = f"{context}: must have exactly one of 'pattern' or 'functions'"
        raise ValueError(msg)

    if has_pattern:
        pattern = rule_data["pattern"]
        if not isinstance(pattern, str) or not pattern:
            msg = f"{context}: 'pattern' must be a non-empty string"
            raise ValueError(msg)
        return PatternDetector(pattern=pattern)

    functions = _str_list(rule_data["functions"], f"{context}: 'functions'")
    if not functions or not all(f.strip() for f in functions):
        msg = f"{context}: 'functions' must list at least one function name"
        raise ValueError(msg)
    return CallDetector(functions=tuple(f.strip() for f in functions))


def _parse_content_condition(raw: object, context: str) -> ContentCondition | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return ContentCondition(pattern=raw)
    cond = _mapping(raw, f"{context}: 'content_condition'")
    pattern = cond.get("pattern")
    if not isinstance(pattern, str) or not pattern:
        msg = f"{context}: content_condition.pattern must be a non-empty string"
        raise ValueError(msg)
    mode_raw = str(cond.get("mode", ConditionMode.CONTAINS.value))
    if mode_raw == "must_contain":
        # Legacy spelling: the rule fires when the text lacks the pattern.
        mode_raw = ConditionMode.MUST_NOT_CONTAIN.value
    try:
        mode = ConditionMode(mode_raw)
    except ValueError:
        msg = (
            f"{context}: invalid content_condition.mode '{mode_raw}', "
            f"must be one of {sorted(m.value for m in ConditionMode)}"
        )
        raise ValueError(msg) from None
    return ContentCondition(pattern=pattern, mode=mode)


def parse_rule(
    rule_data: dict[str, Any],
    *,
    category: str = "",
    origin: str = "",
    messages: dict[str, str] | None = None,
    default_severity: Severity = Severity.WARNING,
    default_triggers: frozenset[str] = frozenset(),
) -> RuleDefinition:
    """Parse one rule entry into a :class:`RuleDefinition`.

    Syntax of the regular expressions is *not* checked here: a bad pattern
    only disables its own rule when the detection engine compiles it.
    """
    name = rule_data.get("name")
    if name is None or not isinstance(name, str) or not name.strip():
        msg = f"rule in '{category or origin}' missing required 'name' field"
        raise ValueError(msg)
    name = name.strip()
    context = f"Rule '{name}'"

    detector = _parse_detector(rule_data, context)

    severity_raw = rule_data.get("severity")
    try:
        severity = default_severity if severity_raw is None else Severity.parse(severity_raw)
    except ValueError as exc:
        msg = f"{context}: {exc}"
        raise ValueError(msg) from None

    message = rule_data.get("message", rule_data.get("message_template"))
    message_key = rule_data.get("message_key")
    if message is None and message_key is not None:
        if messages is None or str(message_key) not in messages:
            msg = f"{context}: unknown message_key '{message_key}'"
            raise ValueError(msg)
        message = messages[str(message_key)]
    if message is None:
        message = f"{name}: {{matched}}"

    fix = parse_fix(rule_data.get("fix", rule_data.get("fix_template")), context)

    triggers_raw = rule_data.get("triggers")
    triggers = (
        default_triggers
        if triggers_raw is None
        else frozenset(_str_list(triggers_raw, f"{context}: 'triggers'"))
    )

    target_raw = str(rule_data.get("target", Target.TEXT.value))
    try:
        target = Target(target_raw)
    except ValueError:
        msg = (
            f"{context}: invalid target '{target_raw}', "
            f"must be one of {sorted(t.value for t in Target)}"
        )
        raise ValueError(msg) from None

    file_glob = rule_data.get("file_glob")

    return RuleDefinition(
        name=name,
        detector=detector,
        severity=severity,
        message_template=str(message),
        fix=fix,
        case_sensitive=bool(rule_data.get("case_sensitive", True)),
        triggers=triggers,
        file_glob=str(file_glob) if file_glob is not None else None,
        content_condition=_parse_content_condition(rule_data.get("content_condition"), context),
        target=target,
        category=category,
        origin=origin,
    )


def _parse_rule_list(
    raw: object,
    *,
    context: str,
    seen: set[str],
    **kwargs: Any,
) -> tuple[RuleDefinition, ...]:
    if not isinstance(raw, list):
        msg = f"{context} must be a list of rule tables"
        raise ValueError(msg)
    rules: list[RuleDefinition] = []
    for idx, rule_data in enumerate(raw):
        if not isinstance(rule_data, dict):
            msg = f"{context}: rule at index {idx} must be a mapping"
            raise ValueError(msg)
        rule = parse_rule(rule_data, **kwargs)
        if rule.name in seen:
            msg = f"Duplicate rule name '{rule.name}'"
            raise ValueError(msg)
        seen.add(rule.name)
        rules.append(rule)
    return tuple(rules)


# ---------------------------------------------------------------------------
# Document parsers
# ---------------------------------------------------------------------------


def parse_slice(
    data: dict[str, Any],
    *,
    origin: str = "",
    default_severity: Severity = Severity.WARNING,
) -> SliceDocument:
    """Parse a slice document: ``[metadata]``, ``[messages]``, ``[[rules.<category>]]``."""
    metadata = _parse_metadata(data)
    messages = _parse_messages(data)
    rules_block = _mapping(data.get("rules"), "[rules]")

    seen: set[str] = set()
    categories: dict[str, tuple[RuleDefinition, ...]] = {}
    for category, raw_rules in rules_block.items():
        categories[str(category)] = _parse_rule_list(
            raw_rules,
            context=f"[rules.{category}]",
            seen=seen,
            category=str(category),
            origin=origin or metadata.name,
            messages=messages,
            default_severity=default_severity,
        )

    return SliceDocument(metadata=metadata, categories=categories, messages=messages)


def _parse_content_matches(raw: object) -> tuple[ContentMatch, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = "activation.content must be a list of tables"
        raise ValueError(msg)
    result: list[ContentMatch] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            msg = f"activation.content at index {idx} must be a mapping"
            raise ValueError(msg)
        matches = _str_list(item.get("matches"), f"activation.content[{idx}].matches")
        if not matches:
            msg = f"activation.content[{idx}] must list at least one string in 'matches'"
            raise ValueError(msg)
        position_raw = str(item.get("position", MatchPosition.ANY.value))
        try:
            position = MatchPosition(position_raw)
        except ValueError:
            msg = (
                f"activation.content[{idx}]: invalid position '{position_raw}', "
                f"must be one of {sorted(p.value for p in MatchPosition)}"
            )
            raise ValueError(msg) from None
        result.append(
            ContentMatch(
                matches=matches,
                globs=_str_list(item.get("globs"), f"activation.content[{idx}].globs"),
                position=position,
            )
        )
    return tuple(result)


def parse_profile(data: dict[str, Any]) -> ProfileDocument:
    """Parse a profile document.

    Accepts ``[checks] enable/disable`` and the older ``[enable] domains``
    spelling for slice references.
    """
    metadata = _parse_metadata(data)
    activation_data = _mapping(data.get("activation"), "[activation]")
    activation = ActivationSpec(
        indicators=_str_list(activation_data.get("indicators"), "activation.indicators"),
        paths=_str_list(activation_data.get("paths"), "activation.paths"),
        globs=_str_list(activation_data.get("globs"), "activation.globs"),
        content=_parse_content_matches(activation_data.get("content")),
        events=_str_list(activation_data.get("events"), "activation.events"),
    )

    checks = _mapping(data.get("checks"), "[checks]")
    legacy_enable = _mapping(data.get("enable"), "[enable]")
    slices = _str_list(data.get("slices"), "slices") + _str_list(
        legacy_enable.get("domains"), "enable.domains"
    )

    return ProfileDocument(
        metadata=metadata,
        activation=activation,
        enable=frozenset(_str_list(checks.get("enable"), "checks.enable")),
        disable=frozenset(_str_list(checks.get("disable"), "checks.disable")),
        slices=tuple(dict.fromkeys(slices)),
    )


def parse_active_rule(
    data: dict[str, Any],
    *,
    origin: str = "",
    default_severity: Severity = Severity.WARNING,
) -> ActiveRuleDocument:
    """Parse a standalone rule document (``rules/active/*.toml``)."""
    metadata = _parse_metadata(data, fallback_name=data.get("name"))
    messages = _parse_messages(data)
    triggers = frozenset(_str_list(data.get("triggers"), "triggers"))

    severity = default_severity
    if "severity" in data:
        severity = Severity.parse(data["severity"])

    rules = _parse_rule_list(
        data.get("rules", []),
        context="[[rules]]",
        seen=set(),
        category=metadata.name,
        origin=origin or metadata.name,
        messages=messages,
        default_severity=severity,
        default_triggers=triggers,
    )
    return ActiveRuleDocument(
        metadata=metadata, rules=rules, enabled=bool(data.get("enabled", True))
    )


def parse_base(data: dict[str, Any]) -> BaseDocument:
    """Parse ``rules/core.toml``; absent keys keep their defaults."""
    defaults = BaseDocument()
    global_block = _mapping(data.get("global"), "[global]")
    output_block = _mapping(data.get("output"), "[output]")
    files_block = _mapping(data.get("files"), "[files]")

    default_severity = defaults.default_severity
    if "default_severity" in global_block:
        default_severity = Severity.parse(global_block["default_severity"])

    try:
        max_file_size_mb = float(global_block.get("max_file_size_mb", defaults.max_file_size_mb))
        jobs = int(global_block.get("jobs", defaults.jobs))
        debounce_ms = int(global_block.get("debounce_ms", defaults.debounce_ms))
        max_issues = int(
            output_block.get("max_issues_per_rule", defaults.max_issues_per_rule)
        )
    except (TypeError, ValueError) as exc:
        msg = f"invalid numeric setting ({exc})"
        raise ValueError(msg) from exc

    if jobs < 1:
        msg = "[global] jobs must be at least 1"
        raise ValueError(msg)

    ignored = defaults.ignored_patterns
    if "ignored_patterns" in files_block:
        ignored = _str_list(files_block["ignored_patterns"], "files.ignored_patterns")

    return BaseDocument(
        default_severity=default_severity,
        max_file_size_mb=max_file_size_mb,
        jobs=jobs,
        debounce_ms=debounce_ms,
        max_issues_per_rule=max_issues,
        ignored_patterns=ignored,
    )


def parse_override(
    data: dict[str, Any], *, default_severity: Severity = Severity.WARNING
) -> OverrideDocument:
    """Parse ``config.toml``: ``mode`` plus the ``[rules]`` block."""
    mode_raw = str(data.get("mode", Mode.DENYLIST.value)).strip().lower()
    try:
        mode = Mode(mode_raw)
    except ValueError:
        msg = f"invalid mode '{mode_raw}', must be one of {sorted(m.value for m in Mode)}"
        raise ValueError(msg) from None

    rules_block = _mapping(data.get("rules"), "[rules]")
    custom_rules = _parse_rule_list(
        rules_block.get("custom_rules", []),
        context="[[rules.custom_rules]]",
        seen=set(),
        category="custom",
        origin="config",
        default_severity=default_severity,
    )
    return OverrideDocument(
        mode=mode,
        enabled_checks=frozenset(_str_list(rules_block.get("enabled_checks"), "enabled_checks")),
        disabled_checks=frozenset(
            _str_list(rules_block.get("disabled_checks"), "disabled_checks")
        ),
        custom_rules=custom_rules,
    )


# ---------------------------------------------------------------------------
# File-level loaders (wrap ValueError with the file path)
# ---------------------------------------------------------------------------


def load_slice(path: Path, *, default_severity: Severity = Severity.WARNING) -> SliceDocument:
    try:
        return parse_slice(
            read_document(path), origin=path.stem, default_severity=default_severity
        )
    except DocumentError:
        raise
    except ValueError as exc:
        raise DocumentError(path, str(exc)) from exc


def load_profile(path: Path) -> ProfileDocument:
    try:
        return parse_profile(read_document(path))
    except DocumentError:
        raise
    except ValueError as exc:
        raise DocumentError(path, str(exc)) from exc


def load_active_rule(
    path: Path, *, default_severity: Severity = Severity.WARNING
) -> ActiveRuleDocument:
    try:
        return parse_active_rule(
            read_document(path), origin=path.stem, default_severity=default_severity
        )
    except DocumentError:
        raise
    except ValueError as exc:
        raise DocumentError(path, str(exc)) from exc


def load_base(path: Path) -> BaseDocument:
    if not path.is_file():
        return BaseDocument()
    try:
        return parse_base(read_document(path))
    except DocumentError:
        raise
    except ValueError as exc:
        raise DocumentError(path, str(exc)) from exc


def load_override(
    path: Path, *, default_severity: Severity = Severity.WARNING
) -> OverrideDocument:
    if not path.is_file():
        return OverrideDocument()
    try:
        return parse_override(read_document(path), default_severity=default_severity)
    except DocumentError:
        raise
    except ValueError as exc:
        raise DocumentError(path, str(exc)) from exc


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleStore:
    """All rule documents for one invocation. Immutable after construction."""

    base: BaseDocument = field(default_factory=BaseDocument)
    override: OverrideDocument = field(default_factory=OverrideDocument)
    slices: Mapping[str, SliceDocument] = field(default_factory=dict)
    profiles: tuple[ProfileDocument, ...] = ()
    active_rules: tuple[ActiveRuleDocument, ...] = ()
    source_dir: Path | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "slices", MappingProxyType(dict(self.slices)))

    def known_rule_names(self) -> frozenset[str]:
        """Every rule name declared anywhere in the store."""
        names: set[str] = set()
        for slice_doc in self.slices.values():
            names.update(rule.name for rule in slice_doc.iter_rules())
        for doc in self.active_rules:
            names.update(rule.name for rule in doc.rules)
        names.update(rule.name for rule in self.override.custom_rules)
        return frozenset(names)

    def profile(self, name: str) -> ProfileDocument | None:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None


def load_store(config_dir: Path | None = None) -> RuleStore:
    """Build a :class:`RuleStore` from *config_dir*.

    When *config_dir* is ``None`` or does not exist, the bundled defaults
    shipped with the package are used.  Any malformed document raises
    :class:`DocumentError`; no partially-built store is returned.
    """
    if config_dir is None or not config_dir.is_dir():
        logger.debug("No configuration directory, using bundled defaults")
        config_dir = BUNDLED_DEFAULTS_DIR

    rules_dir = config_dir / "rules"
    base = load_base(rules_dir / "core.toml")
    override = load_override(config_dir / "config.toml", default_severity=base.default_severity)

    slices: dict[str, SliceDocument] = {}
    for path in _list_documents(rules_dir / "slices"):
        slice_doc = load_slice(path, default_severity=base.default_severity)
        if slice_doc.name in slices:
            raise DocumentError(path, f"duplicate slice name '{slice_doc.name}'")
        slices[slice_doc.name] = slice_doc
        logger.debug("Loaded slice '%s' from %s", slice_doc.name, path)

    profiles: list[ProfileDocument] = []
    for path in _list_documents(rules_dir / "profiles"):
        profile = load_profile(path)
        if any(p.name == profile.name for p in profiles):
            raise DocumentError(path, f"duplicate profile name '{profile.name}'")
        profiles.append(profile)
        logger.debug("Loaded profile '%s' from %s", profile.name, path)

    active: list[ActiveRuleDocument] = []
    for path in _list_documents(rules_dir / "active"):
        doc = load_active_rule(path, default_severity=base.default_severity)
        if not doc.enabled:
            logger.debug("Skipping disabled rule document: %s", doc.name)
            continue
        active.append(doc)

    logger.info(
        "Loaded %d slices, %d profiles, %d active rule documents from %s",
        len(slices),
        len(profiles),
        len(active),
        config_dir,
    )
    return RuleStore(
        base=base,
        override=override,
        slices=slices,
        profiles=tuple(profiles),
        active_rules=tuple(active),
        source_dir=config_dir,
    )
