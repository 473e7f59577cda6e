"""Consume findings produced by external per-language AST queries.

The AST query layer is not part of this package; it yields
:class:`AstFinding` records lazily, and this module turns the ones whose
rule runs under the current policy into :class:`DetectionIssue` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from projectlint.detection.engine import DetectionIssue, render_template

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from projectlint.rules.composer import EffectivePolicy
    from projectlint.rules.models import RuleDefinition, Severity


@dataclass(frozen=True)
class AstFinding:
    """One independent match reported by an AST query."""

    rule_id: str
    file: str
    line: int
    column: int
    matched_text: str


def consume_findings(
    findings: Iterable[AstFinding],
    policy: EffectivePolicy,
    rules_by_name: Mapping[str, RuleDefinition],
    default_severity: Severity,
) -> Iterator[DetectionIssue]:
    """Yield an issue for every finding whose rule runs under *policy*.

    A finding for a rule that has no definition gets *default_severity*
    and its matched text as the message.
    """
    for finding in findings:
        if not policy.runs(finding.rule_id):
            continue
        rule = rules_by_name.get(finding.rule_id)
        values = {
            "matched": finding.matched_text,
            "line": str(finding.line),
            "column": str(finding.column),
            "file": finding.file,
            "rule": finding.rule_id,
        }
        if rule is None:
            severity = default_severity
            message = finding.matched_text
        else:
            severity = rule.severity
            message = render_template(rule.message_template, values)
        yield DetectionIssue(
            rule_name=finding.rule_id,
            severity=severity,
            file_path=finding.file,
            line=finding.line,
            column=finding.column,
            message=message,
            fix=None,
            matched_text=finding.matched_text,
            span=(0, 0),
        )
