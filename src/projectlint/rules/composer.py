"""Three-layer rule composition: base defaults, domain slices, user overrides.

The effective enabled set is the override's ``enabled_checks`` plus every
activated profile's ``checks.enable``; the disabled set is built the same
way.  A name present in both sets is disabled.  In allowlist mode a rule
runs only when enabled and not disabled; in denylist mode it runs unless
disabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from projectlint.rules.models import Mode

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from projectlint.rules.models import (
        ActiveRuleDocument,
        OverrideDocument,
        ProfileDocument,
        RuleDefinition,
        SliceDocument,
    )
    from projectlint.rules.store import RuleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectivePolicy:
    """Rules and enable/disable sets for one run."""

    mode: Mode
    enabled: frozenset[str]
    disabled: frozenset[str]
    rules: tuple[RuleDefinition, ...]
    activated_profiles: frozenset[str] = frozenset()
    warnings: tuple[str, ...] = ()

    def runs(self, name: str) -> bool:
        """Membership test for a rule name under this policy."""
        if name in self.disabled:
            return False
        if self.mode is Mode.ALLOWLIST:
            return name in self.enabled
        return True

    @property
    def running_rules(self) -> tuple[RuleDefinition, ...]:
        """Candidate rules that pass :meth:`runs`, in candidate order."""
        return tuple(r for r in self.rules if self.runs(r.name))

    def rules_by_name(self) -> dict[str, RuleDefinition]:
        return {r.name: r for r in self.rules}


def compose(
    mode: Mode,
    override: OverrideDocument,
    activated_profiles: Iterable[ProfileDocument],
    slices: Mapping[str, SliceDocument],
    *,
    active_rules: Iterable[ActiveRuleDocument] = (),
    known_rules: frozenset[str] | None = None,
) -> EffectivePolicy:
    """Compose the effective policy.

    Candidate order: rules of every slice referenced by an activated
    profile (profiles by name, slices in reference order, each slice once),
    then active rule documents, then the override's custom rules.  The first
    rule with a given name wins.  Unknown slice references and enable or
    disable names that match no known rule are reported as warnings.
    """
    profiles = sorted(activated_profiles, key=lambda p: p.name)
    warnings: list[str] = []

    enabled = set(override.enabled_checks)
    disabled = set(override.disabled_checks)
    for profile in profiles:
        enabled |= profile.enable
        disabled |= profile.disable

    candidates: list[RuleDefinition] = []
    seen_slices: set[str] = set()
    for profile in profiles:
        for slice_name in profile.slices:
            if slice_name in seen_slices:
                continue
            slice_doc = slices.get(slice_name)
            if slice_doc is None:
                warnings.append(
                    f"Profile '{profile.name}' references unknown slice '{slice_name}'"
                )
                continue
            seen_slices.add(slice_name)
            candidates.extend(slice_doc.iter_rules())

    for doc in active_rules:
        if doc.enabled:
            candidates.extend(doc.rules)
    candidates.extend(override.custom_rules)

    rules: list[RuleDefinition] = []
    names: set[str] = set()
    for rule in candidates:
        if rule.name in names:
            warnings.append(
                f"Duplicate rule name '{rule.name}' from '{rule.origin}' ignored"
            )
            continue
        names.add(rule.name)
        rules.append(rule)

    if known_rules is None:
        known_rules = frozenset(names)
    for label, referenced in (("enabled", enabled), ("disabled", disabled)):
        for name in sorted(referenced - known_rules):
            warnings.append(f"Unknown rule '{name}' in {label} checks")

    conflicts = enabled & disabled
    if conflicts:
        logger.debug("Disabled overrides enabled for: %s", ", ".join(sorted(conflicts)))

    for warning in warnings:
        logger.warning(warning)

    return EffectivePolicy(
        mode=mode,
        enabled=frozenset(enabled),
        disabled=frozenset(disabled),
        rules=tuple(rules),
        activated_profiles=frozenset(p.name for p in profiles),
        warnings=tuple(warnings),
    )


def compose_for_store(
    store: RuleStore,
    active_profile_names: frozenset[str],
) -> EffectivePolicy:
    """Compose using everything in *store* for the given active profile names."""
    activated = [p for p in store.profiles if p.name in active_profile_names]
    return compose(
        store.override.mode,
        store.override,
        activated,
        store.slices,
        active_rules=store.active_rules,
        known_rules=store.known_rule_names(),
    )
