"""Rules domain: data model, rule store, profile activation, rule composition."""

from projectlint.rules.activation import ProjectEvidence, activate, is_profile_active
from projectlint.rules.composer import EffectivePolicy, compose, compose_for_store
from projectlint.rules.globs import expand_braces, match_glob
from projectlint.rules.models import (
    ActivationSpec,
    ActiveRuleDocument,
    BaseDocument,
    CallDetector,
    ContentCondition,
    ContentMatch,
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
from projectlint.rules.store import (
    DocumentError,
    RuleStore,
    load_store,
    parse_profile,
    parse_rule,
    parse_slice,
)

__all__ = [
    "ActivationSpec",
    "ActiveRuleDocument",
    "BaseDocument",
    "CallDetector",
    "ContentCondition",
    "ContentMatch",
    "DocumentError",
    "EffectivePolicy",
    "Mode",
    "OverrideDocument",
    "PatternDetector",
    "ProfileDocument",
    "ProjectEvidence",
    "RuleDefinition",
    "RuleStore",
    "Severity",
    "SliceDocument",
    "SubstitutionFix",
    "Target",
    "TemplateFix",
    "activate",
    "compose",
    "compose_for_store",
    "expand_braces",
    "is_profile_active",
    "load_store",
    "match_glob",
    "parse_profile",
    "parse_rule",
    "parse_slice",
]
