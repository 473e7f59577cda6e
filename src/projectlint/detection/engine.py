"""Generic detection: compile rule regexes once, match them over text.

Everything in this module is pure.  :func:`detect` never touches the
filesystem and never mutates its input; fix *application* lives in
:mod:`projectlint.detection.fixes`.
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from projectlint.rules.globs import match_glob
from projectlint.rules.models import (
    CallDetector,
    ConditionMode,
    Severity,
    SubstitutionFix,
    Target,
    TemplateFix,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from projectlint.rules.models import RuleDefinition

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


class RuleCompileError(ValueError):
    """Raised when a rule's pattern, content condition, or fix is not a valid regex."""

    def __init__(self, rule_name: str, reason: str) -> None:
        self.rule_name = rule_name
        self.reason = reason
        super().__init__(f"Rule '{rule_name}': {reason}")


@dataclass(frozen=True)
class DetectionIssue:
    """One rule match in one piece of text."""

    rule_name: str
    severity: Severity
    file_path: str
    line: int  # 1-based; 0 for path rules
    column: int  # 1-based; 0 for path rules
    message: str
    fix: str | None
    matched_text: str
    span: tuple[int, int]


@dataclass(frozen=True)
class CompiledRule:
    """A rule with its regexes compiled once."""

    rule: RuleDefinition
    regex: re.Pattern[str]
    condition: re.Pattern[str] | None = None
    fix_search: re.Pattern[str] | None = None

    @property
    def name(self) -> str:
        return self.rule.name


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def _flags(rule: RuleDefinition) -> int:
    flags = re.MULTILINE
    if not rule.case_sensitive:
        flags |= re.IGNORECASE
    return flags


def _compile(pattern: str, flags: int, rule_name: str, what: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        msg = f"invalid {what} '{pattern}' ({exc})"
        raise RuleCompileError(rule_name, msg) from exc


def compile_rule(rule: RuleDefinition) -> CompiledRule:
    """Compile *rule*'s detector, content condition, and substitution fix.

    Call detectors match ``name(`` with optional whitespace before the
    parenthesis; each name is escaped, and the matched name is captured
    as the ``function`` group.
    """
    flags = _flags(rule)
    if isinstance(rule.detector, CallDetector):
        alternatives = "|".join(re.escape(f) for f in rule.detector.functions)
        pattern = rf"\b(?P<function>{alternatives})\s*\("
    else:
        pattern = rule.detector.pattern
    regex = _compile(pattern, flags, rule.name, "pattern")

    condition = None
    if rule.content_condition is not None:
        condition = _compile(
            rule.content_condition.pattern, flags, rule.name, "content condition"
        )

    fix_search = None
    if isinstance(rule.fix, SubstitutionFix):
        fix_search = _compile(rule.fix.search, flags, rule.name, "fix search")
        try:
            fix_search.sub(rule.fix.replace, "")
        except re.error as exc:
            msg = f"invalid fix replacement '{rule.fix.replace}' ({exc})"
            raise RuleCompileError(rule.name, msg) from exc

    return CompiledRule(rule=rule, regex=regex, condition=condition, fix_search=fix_search)


def compile_rules(rules: Iterable[RuleDefinition]) -> list[CompiledRule]:
    """Compile every rule, skipping (and logging) those that fail."""
    compiled: list[CompiledRule] = []
    for rule in rules:
        try:
            compiled.append(compile_rule(rule))
        except RuleCompileError as exc:
            logger.warning("Skipping rule: %s", exc)
    return compiled


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``{name}`` placeholders; unknown placeholders stay verbatim."""

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _PLACEHOLDER_RE.sub(_sub, template)


def applies_to_file(compiled: CompiledRule, rel_path: str) -> bool:
    """True if the rule has no ``file_glob`` or *rel_path* matches it."""
    file_glob = compiled.rule.file_glob
    if not file_glob:
        return True
    try:
        return match_glob(file_glob, rel_path)
    except ValueError as exc:
        logger.warning("Rule '%s': %s", compiled.name, exc)
        return False


def condition_allows(compiled: CompiledRule, text: str) -> bool:
    """Evaluate the rule's content condition gate against *text*."""
    if compiled.condition is None or compiled.rule.content_condition is None:
        return True
    found = compiled.condition.search(text) is not None
    if compiled.rule.content_condition.mode is ConditionMode.MUST_NOT_CONTAIN:
        return not found
    return found


def render_fix(compiled: CompiledRule, matched: str, values: Mapping[str, str]) -> str | None:
    """Return the replacement for *matched*, or ``None`` when the rule has no fix."""
    fix = compiled.rule.fix
    if isinstance(fix, TemplateFix):
        return render_template(fix.template, values)
    if isinstance(fix, SubstitutionFix) and compiled.fix_search is not None:
        return compiled.fix_search.sub(fix.replace, matched, count=fix.count)
    return None


def _line_starts(text: str) -> list[int]:
    starts = [0]
    starts.extend(i + 1 for i, ch in enumerate(text) if ch == "\n")
    return starts


def _issue(
    compiled: CompiledRule,
    match: re.Match[str],
    file_path: str,
    line: int,
    column: int,
    *,
    with_fix: bool = True,
) -> DetectionIssue:
    matched = match.group(0)
    values = {k: v for k, v in match.groupdict().items() if v is not None}
    values.update(
        {
            "matched": matched,
            "line": str(line),
            "column": str(column),
            "file": file_path,
            "rule": compiled.name,
        }
    )
    return DetectionIssue(
        rule_name=compiled.name,
        severity=compiled.rule.severity,
        file_path=file_path,
        line=line,
        column=column,
        message=render_template(compiled.rule.message_template, values),
        fix=render_fix(compiled, matched, values) if with_fix else None,
        matched_text=matched,
        span=match.span(),
    )


def detect(compiled: CompiledRule, text: str, file_path: str = "") -> list[DetectionIssue]:
    """Return one issue per non-overlapping match of *compiled* in *text*.

    Matching runs over the whole text, so patterns may span lines.  Path
    rules (``target = "path"``) match *file_path* instead and report line
    and column 0 with no fix.
    """
    if compiled.rule.target is Target.PATH:
        if not file_path or not condition_allows(compiled, file_path):
            return []
        match = compiled.regex.search(file_path)
        if match is None:
            return []
        return [_issue(compiled, match, file_path, 0, 0, with_fix=False)]

    if not condition_allows(compiled, text):
        return []

    issues: list[DetectionIssue] = []
    starts: list[int] | None = None
    for match in compiled.regex.finditer(text):
        if match.end() == match.start():
            continue
        if starts is None:
            starts = _line_starts(text)
        idx = bisect.bisect_right(starts, match.start()) - 1
        issues.append(
            _issue(compiled, match, file_path, idx + 1, match.start() - starts[idx] + 1)
        )
    return issues


def detect_all(
    compiled_rules: Iterable[CompiledRule],
    text: str,
    file_path: str = "",
) -> list[DetectionIssue]:
    """Run every rule scoped to *file_path* over *text*, in rule order.

    A rule that fails while matching is logged and skipped; the rest still run.
    """
    issues: list[DetectionIssue] = []
    for compiled in compiled_rules:
        if file_path and not applies_to_file(compiled, file_path):
            continue
        try:
            issues.extend(detect(compiled, text, file_path))
        except (re.error, IndexError) as exc:
            logger.warning(
                "Rule '%s' failed on %s: %s", compiled.name, file_path or "<text>", exc
            )
    return issues
