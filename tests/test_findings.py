"""Tests for projectlint.detection.findings: consuming external AST findings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from projectlint.detection.findings import AstFinding, consume_findings
from projectlint.rules.composer import EffectivePolicy
from projectlint.rules.models import Mode, Severity

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from projectlint.rules.models import RuleDefinition


def _policy(rules: tuple[RuleDefinition, ...], disabled: frozenset[str] = frozenset()) -> EffectivePolicy:
    return EffectivePolicy(
        mode=Mode.DENYLIST, enabled=frozenset(), disabled=disabled, rules=rules
    )


class TestConsumeFindings:
    def test_renders_rule_message(self, make_rule: Callable[..., RuleDefinition]) -> None:
        rule = make_rule(
            "ts-any", severity=Severity.ERROR, message="{matched} at {file}:{line}:{column}"
        )
        finding = AstFinding("ts-any", "src/a.ts", 3, 7, "any")
        issues = list(consume_findings([finding], _policy((rule,)), {"ts-any": rule}, Severity.INFO))
        assert len(issues) == 1
        assert issues[0].message == "any at src/a.ts:3:7"
        assert issues[0].severity is Severity.ERROR
        assert issues[0].fix is None

    def test_disabled_rules_dropped(self, make_rule: Callable[..., RuleDefinition]) -> None:
        rule = make_rule("ts-any")
        policy = _policy((rule,), disabled=frozenset({"ts-any"}))
        findings = [AstFinding("ts-any", "a.ts", 1, 1, "any")]
        assert list(consume_findings(findings, policy, {"ts-any": rule}, Severity.INFO)) == []

    def test_unknown_rule_gets_default_severity(self) -> None:
        finding = AstFinding("ast-only", "a.py", 1, 1, "eval(x)")
        issues = list(consume_findings([finding], _policy(()), {}, Severity.WARNING))
        assert issues[0].severity is Severity.WARNING
        assert issues[0].message == "eval(x)"

    def test_consumes_lazily(self) -> None:
        pulled: list[int] = []

        def _gen() -> Iterator[AstFinding]:
            for n in range(3):
                pulled.append(n)
                yield AstFinding("r", "a", n + 1, 1, "x")

        issues = consume_findings(_gen(), _policy(()), {}, Severity.INFO)
        assert pulled == []
        next(issues)
        assert pulled == [0]
