"""Rule data model: severities, rule definitions, and the declarative documents."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Severity(enum.Enum):
    """Severity of a rule, ordered ``info < warning < error < critical``."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, raw: object) -> Severity:
        """Parse a severity string, accepting the aliases used by older rule files."""
        value = str(raw).strip().lower()
        value = SEVERITY_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            valid = sorted({s.value for s in cls} | set(SEVERITY_ALIASES))
            msg = f"invalid severity '{raw}', must be one of {valid}"
            raise ValueError(msg) from None


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}

SEVERITY_ALIASES: dict[str, str] = {
    "warn": "warning",
    "low": "info",
    "medium": "warning",
    "high": "error",
}


class Mode(enum.Enum):
    """Composition mode read from the override document."""

    ALLOWLIST = "allowlist"
    DENYLIST = "denylist"


class Target(enum.Enum):
    """What a rule's detector inspects: the text payload or the file path."""

    TEXT = "text"
    PATH = "path"


class ConditionMode(enum.Enum):
    CONTAINS = "contains"
    MUST_NOT_CONTAIN = "must_not_contain"


class MatchPosition(enum.Enum):
    """Where a profile content match looks inside a file."""

    ANY = "any"
    HEADER = "header"


# ---------------------------------------------------------------------------
# Detectors and fixes (tagged variants)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternDetector:
    """Flag every non-overlapping match of a regular expression."""

    pattern: str


@dataclass(frozen=True)
class CallDetector:
    """Flag identifier-call syntax (``name(``) for any of *functions*."""

    functions: tuple[str, ...]


Detector = PatternDetector | CallDetector


@dataclass(frozen=True)
class NoFix:
    """The rule offers no automatic fix."""


@dataclass(frozen=True)
class TemplateFix:
    """Replace the matched text with a rendered template."""

    template: str


@dataclass(frozen=True)
class SubstitutionFix:
    """``s/search/replace/[g]``: substitute *inside* the matched text.

    *count* is 0 for a global substitution, 1 otherwise (``re.sub`` semantics).
    """

    search: str
    replace: str
    count: int = 1


Fix = NoFix | TemplateFix | SubstitutionFix

NO_FIX = NoFix()


@dataclass(frozen=True)
class ContentCondition:
    """Gate a rule on the presence (or absence) of a pattern in the inspected text."""

    pattern: str
    mode: ConditionMode = ConditionMode.CONTAINS


# ---------------------------------------------------------------------------
# Rule definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleDefinition:
    """A single declarative rule. Immutable once loaded."""

    name: str
    detector: Detector
    severity: Severity
    message_template: str
    fix: Fix = NO_FIX
    case_sensitive: bool = True
    triggers: frozenset[str] = frozenset()
    file_glob: str | None = None
    content_condition: ContentCondition | None = None
    target: Target = Target.TEXT
    category: str = ""
    origin: str = ""  # document the rule was loaded from


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentMetadata:
    """The required ``[metadata]`` block of every rule document."""

    name: str
    version: str = "1"
    scope: str = ""
    description: str = ""


@dataclass(frozen=True)
class SliceDocument:
    """A named, versioned collection of rules grouped by category."""

    metadata: DocumentMetadata
    categories: dict[str, tuple[RuleDefinition, ...]] = field(default_factory=dict)
    messages: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    def iter_rules(self) -> list[RuleDefinition]:
        """Return all rules in category order, then declaration order."""
        rules: list[RuleDefinition] = []
        for category_rules in self.categories.values():
            rules.extend(category_rules)
        return rules


@dataclass(frozen=True)
class ContentMatch:
    """Activation by file content: any substring in any file matching *globs*."""

    matches: tuple[str, ...]
    globs: tuple[str, ...] = ()
    position: MatchPosition = MatchPosition.ANY


@dataclass(frozen=True)
class ActivationSpec:
    """Evidence categories, OR-combined across and within categories."""

    indicators: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    globs: tuple[str, ...] = ()
    content: tuple[ContentMatch, ...] = ()
    events: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.indicators or self.paths or self.globs or self.content or self.events)


@dataclass(frozen=True)
class ProfileDocument:
    """Context-activation rule bundling evidence with enable/disable sets."""

    metadata: DocumentMetadata
    activation: ActivationSpec = field(default_factory=ActivationSpec)
    enable: frozenset[str] = frozenset()
    disable: frozenset[str] = frozenset()
    slices: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.metadata.name


@dataclass(frozen=True)
class ActiveRuleDocument:
    """A standalone rule document outside the profile/slice hierarchy."""

    metadata: DocumentMetadata
    rules: tuple[RuleDefinition, ...] = ()
    enabled: bool = True

    @property
    def name(self) -> str:
        return self.metadata.name


@dataclass(frozen=True)
class BaseDocument:
    """Global defaults (``rules/core.toml``)."""

    default_severity: Severity = Severity.WARNING
    max_file_size_mb: float = 10.0
    jobs: int = 4
    debounce_ms: int = 1000
    max_issues_per_rule: int = 0  # 0 = unlimited
    ignored_patterns: tuple[str, ...] = (
        "node_modules/",
        ".git/",
        "target/",
        "dist/",
        "__pycache__/",
        ".venv/",
    )


@dataclass(frozen=True)
class OverrideDocument:
    """User overrides (``config.toml``)."""

    mode: Mode = Mode.DENYLIST
    enabled_checks: frozenset[str] = frozenset()
    disabled_checks: frozenset[str] = frozenset()
    custom_rules: tuple[RuleDefinition, ...] = ()
