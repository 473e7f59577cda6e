"""Decision engine: evaluate one normalized event against an effective policy.

1. Trigger filter: a rule is kept when its ``triggers`` are empty or name
   the event kind, ``all``, or the IDE-native event name.
2. Conditions: ``file_glob`` needs a matching ``file_path``; text rules
   inspect ``command`` then ``content``; path rules inspect ``file_path``.
3. Reduction: the strongest severity wins (ties go to declaration order).
   critical/error deny, warning warns, info allows with a message.  The
   first matching rule whose fix applies to the command supplies the
   rewritten command.

No filesystem access happens here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from projectlint.detection.engine import (
    CompiledRule,
    applies_to_file,
    compile_rules,
    detect,
)
from projectlint.detection.fixes import apply_fixes
from projectlint.hooks.events import Decision, HookResult
from projectlint.rules.activation import event_matches
from projectlint.rules.models import Severity, Target

if TYPE_CHECKING:
    from collections.abc import Iterable

    from projectlint.detection.engine import DetectionIssue
    from projectlint.hooks.events import ProjectLintEvent
    from projectlint.rules.composer import EffectivePolicy

logger = logging.getLogger(__name__)

_DECISION_BY_SEVERITY: dict[Severity, Decision] = {
    Severity.CRITICAL: Decision.DENY,
    Severity.ERROR: Decision.DENY,
    Severity.WARNING: Decision.WARN,
    Severity.INFO: Decision.ALLOW,
}


def triggers_match(compiled: CompiledRule, event: ProjectLintEvent) -> bool:
    triggers = compiled.rule.triggers
    return not triggers or event_matches(triggers, event)


def _evaluate_rule(
    compiled: CompiledRule, event: ProjectLintEvent
) -> tuple[list[DetectionIssue], str | None]:
    """Return the rule's issues and, when its fix applies, the rewritten command."""
    rule = compiled.rule
    if rule.file_glob and not (event.file_path and applies_to_file(compiled, event.file_path)):
        return [], None

    file_path = event.file_path or ""
    if rule.target is Target.PATH:
        if not event.file_path:
            return [], None
        return detect(compiled, "", file_path), None

    if event.command is None and event.content is None:
        return [], None

    issues: list[DetectionIssue] = []
    rewritten = None
    if event.command is not None:
        command_issues = detect(compiled, event.command, file_path)
        issues.extend(command_issues)
        if any(i.fix is not None for i in command_issues):
            outcome = apply_fixes(event.command, command_issues)
            if outcome.text != event.command:
                rewritten = outcome.text
    if event.content is not None:
        issues.extend(detect(compiled, event.content, file_path))
    return issues, rewritten


def reduce_issues(
    issues: Iterable[DetectionIssue], rewritten_command: str | None = None
) -> HookResult:
    """Fold issues (in rule order) into a single decision."""
    issues = tuple(issues)
    if not issues:
        return HookResult(rewritten_command=rewritten_command)

    strongest = issues[0]
    for issue in issues[1:]:
        if issue.severity.rank > strongest.severity.rank:
            strongest = issue

    return HookResult(
        decision=_DECISION_BY_SEVERITY[strongest.severity],
        message=strongest.message,
        rewritten_command=rewritten_command,
        issues=issues,
    )


class RuleEngine:
    """Holds the compiled running rules of one policy; evaluates events."""

    def __init__(self, policy: EffectivePolicy) -> None:
        self.policy = policy
        self.rules: list[CompiledRule] = compile_rules(policy.running_rules)

    def evaluate(self, event: ProjectLintEvent) -> HookResult:
        issues: list[DetectionIssue] = []
        rewritten: str | None = None

        for compiled in self.rules:
            if not triggers_match(compiled, event):
                continue
            try:
                rule_issues, rule_rewrite = _evaluate_rule(compiled, event)
            except Exception as exc:
                logger.warning("Rule '%s' failed on %s: %s", compiled.name, event.kind.value, exc)
                continue
            if rule_issues:
                logger.debug("Rule '%s' matched %d time(s)", compiled.name, len(rule_issues))
            issues.extend(rule_issues)
            if rewritten is None and rule_rewrite is not None:
                rewritten = rule_rewrite

        result = reduce_issues(issues, rewritten)
        logger.info(
            "Event %s from %s: %s (%d issue(s))",
            event.kind.value,
            event.source,
            result.decision.value,
            len(result.issues),
        )
        return result


def evaluate_event(event: ProjectLintEvent, policy: EffectivePolicy) -> HookResult:
    """Evaluate *event* against *policy*, compiling its rules for this call."""
    return RuleEngine(policy).evaluate(event)
