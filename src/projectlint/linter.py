"""Batch lint orchestrator: load rules, activate profiles, compose, scan, format."""

from __future__ import annotations

import concurrent.futures
import json
import logging
import os
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from projectlint.detection.engine import CompiledRule, compile_rules, detect_all
from projectlint.detection.findings import consume_findings
from projectlint.detection.fixes import FixWriteError, read_source, write_fixes
from projectlint.rules.activation import ProjectEvidence, activate
from projectlint.rules.composer import compose_for_store
from projectlint.rules.globs import match_glob
from projectlint.rules.store import DocumentError, load_store

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from projectlint.detection.engine import DetectionIssue
    from projectlint.detection.findings import AstFinding
    from projectlint.rules.store import RuleStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a configuration error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    issues: list[DetectionIssue] = field(default_factory=list)
    errors: list[FixWriteError] = field(default_factory=list)
    activated_profiles: frozenset[str] = frozenset()
    warnings: tuple[str, ...] = ()
    rules_evaluated: int = 0
    files_scanned: int = 0
    files_skipped: int = 0
    fixes_applied: int = 0
    truncated: int = 0
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class _FileOutcome:
    issues: list[DetectionIssue]
    fixes_applied: int = 0
    error: FixWriteError | None = None
    skipped: bool = False


# ---------------------------------------------------------------------------
# File listing
# ---------------------------------------------------------------------------


def is_ignored(rel_path: str, ignored_patterns: Iterable[str]) -> bool:
    """True if *rel_path* falls under an ignored pattern.

    Patterns ending in ``/`` name directories anywhere in the tree; other
    patterns are globs over the relative path.
    """
    parts = rel_path.split("/")
    for pattern in ignored_patterns:
        if pattern.endswith("/"):
            if pattern.rstrip("/") in parts[:-1]:
                return True
        elif match_glob(pattern, rel_path):
            return True
    return False


def collect_files(project_root: Path, ignored_patterns: Iterable[str] = ()) -> list[str]:
    """List candidate files under *project_root* as sorted relative POSIX paths."""
    ignored = tuple(ignored_patterns)
    dir_names = {p.rstrip("/") for p in ignored if p.endswith("/")}
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(project_root):
        dirnames[:] = [d for d in dirnames if d not in dir_names]
        rel_dir = os.path.relpath(dirpath, project_root)
        for filename in filenames:
            rel = filename if rel_dir == "." else f"{rel_dir}/{filename}"
            rel = rel.replace(os.sep, "/")
            if not is_ignored(rel, ignored):
                found.append(rel)
    return sorted(found)


# ---------------------------------------------------------------------------
# Per-file task
# ---------------------------------------------------------------------------


def _lint_file(
    project_root: Path,
    rel_path: str,
    compiled: list[CompiledRule],
    *,
    max_bytes: int,
    fix: bool,
    dry_run: bool,
) -> _FileOutcome:
    path = project_root / rel_path
    try:
        if max_bytes and path.stat().st_size > max_bytes:
            logger.debug("Skipping large file: %s", rel_path)
            return _FileOutcome(issues=[], skipped=True)
        text = read_source(path)
    except UnicodeDecodeError:
        logger.debug("Skipping non-UTF-8 file: %s", rel_path)
        return _FileOutcome(issues=[], skipped=True)
    except OSError as exc:
        logger.warning("Cannot read %s: %s", rel_path, exc)
        return _FileOutcome(issues=[], skipped=True)

    issues = detect_all(compiled, text, rel_path)
    if not fix or not any(i.fix is not None for i in issues):
        return _FileOutcome(issues=issues)

    try:
        outcome = write_fixes(path, issues, dry_run=dry_run, text=text)
    except FixWriteError as exc:
        return _FileOutcome(issues=issues, error=exc)
    return _FileOutcome(issues=issues, fixes_applied=outcome.applied)


def _cap_per_rule(
    issues: list[DetectionIssue], max_per_rule: int
) -> tuple[list[DetectionIssue], int]:
    if max_per_rule <= 0:
        return issues, 0
    seen: Counter[str] = Counter()
    kept: list[DetectionIssue] = []
    for issue in issues:
        seen[issue.rule_name] += 1
        if seen[issue.rule_name] <= max_per_rule:
            kept.append(issue)
    return kept, len(issues) - len(kept)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    project_root: Path,
    *,
    config_dir: Path | None = None,
    store: RuleStore | None = None,
    files: Iterable[str] | None = None,
    fix: bool = False,
    dry_run: bool = False,
    jobs: int | None = None,
    findings: Iterable[AstFinding] | None = None,
) -> LintResult:
    """Lint *project_root* and return aggregated issues and fix errors.

    Parameters
    ----------
    project_root:
        Root of the project to scan.
    config_dir:
        Configuration directory; bundled defaults are used when *None*.
    store:
        A pre-built rule store; overrides *config_dir*.
    files:
        Restrict scanning to these relative paths (e.g. a watch batch).
        Profile activation still sees the whole tree.
    fix, dry_run:
        Apply fixes in place; with *dry_run* nothing is written.
    jobs:
        Worker threads; defaults to the base document's ``jobs``.
    findings:
        Matches reported by an external AST query layer.  Those whose rule
        runs under the composed policy are reported alongside regex issues.

    Raises
    ------
    LintError
        When a rule document is malformed.
    """
    start = time.monotonic()

    if store is None:
        try:
            store = load_store(config_dir)
        except DocumentError as exc:
            msg = f"Invalid rules configuration: {exc}"
            raise LintError(msg) from exc

    base = store.base
    all_files = collect_files(project_root, base.ignored_patterns)
    active = activate(store.profiles, ProjectEvidence(project_root, tuple(all_files)))
    policy = compose_for_store(store, active)
    compiled = compile_rules(policy.running_rules)

    targets = all_files if files is None else sorted(
        f for f in files if not is_ignored(f, base.ignored_patterns)
    )
    max_bytes = int(base.max_file_size_mb * 1024 * 1024)

    result = LintResult(
        activated_profiles=active,
        warnings=policy.warnings,
        rules_evaluated=len(compiled),
    )
    issues: list[DetectionIssue] = []
    workers = max(1, jobs or base.jobs)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(
                _lint_file,
                project_root,
                rel_path,
                compiled,
                max_bytes=max_bytes,
                fix=fix,
                dry_run=dry_run,
            ): rel_path
            for rel_path in targets
        }
        for future in concurrent.futures.as_completed(futures):
            outcome = future.result()
            if outcome.skipped:
                result.files_skipped += 1
                continue
            result.files_scanned += 1
            issues.extend(outcome.issues)
            result.fixes_applied += outcome.fixes_applied
            if outcome.error is not None:
                logger.error("%s", outcome.error)
                result.errors.append(outcome.error)

    if findings is not None:
        issues.extend(
            consume_findings(findings, policy, policy.rules_by_name(), base.default_severity)
        )

    issues.sort(key=lambda i: (i.file_path, i.line, i.column, i.rule_name))
    result.issues, result.truncated = _cap_per_rule(issues, base.max_issues_per_rule)
    result.errors.sort(key=lambda e: str(e.path))
    result.elapsed_ms = (time.monotonic() - start) * 1000
    return result


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

_SEVERITY_MARK = {"critical": "✗", "error": "✗", "warning": "!", "info": "i"}


def format_rich(result: LintResult) -> str:
    """Format a LintResult as human-readable text.

    Example output with issues::

        Profiles: general, web
        Files: 25 scanned (12 rules evaluated)

        ! src/app.ts:3:1 no-console [warning]
          Avoid console.log in production code

        1 issue found (0.1s)
    """
    lines: list[str] = []
    profiles = ", ".join(sorted(result.activated_profiles)) or "(none)"
    lines.append(f"Profiles: {profiles}")
    lines.append(f"Files: {result.files_scanned} scanned ({result.rules_evaluated} rules evaluated)")
    lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    for issue in result.issues:
        mark = _SEVERITY_MARK.get(issue.severity.value, "!")
        loc = issue.file_path
        if issue.line:
            loc += f":{issue.line}:{issue.column}"
        lines.append(f"{mark} {loc} {issue.rule_name} [{issue.severity.value}]")
        lines.append(f"  {issue.message}")
        if issue.fix is not None:
            lines.append(f"  fix: {issue.fix}")
        lines.append("")

    for error in result.errors:
        lines.append(f"✗ fix failed: {error}")
    if result.errors:
        lines.append("")

    if result.truncated:
        lines.append(f"({result.truncated} more issues hidden by max_issues_per_rule)")
    if result.fixes_applied:
        lines.append(f"{result.fixes_applied} fixes applied")

    count = len(result.issues)
    if count:
        noun = "issue" if count == 1 else "issues"
        lines.append(f"{count} {noun} found ({elapsed_str})")
    else:
        lines.append(f"✓ No issues found ({elapsed_str})")

    return "\n".join(lines)


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON with ``issues`` and ``summary``."""
    issues_list: list[dict[str, object]] = [
        {
            "rule_name": i.rule_name,
            "severity": i.severity.value,
            "file_path": i.file_path,
            "line": i.line,
            "column": i.column,
            "message": i.message,
            "matched_text": i.matched_text,
            "fix": i.fix,
        }
        for i in result.issues
    ]

    output: dict[str, object] = {
        "issues": issues_list,
        "errors": [{"file_path": str(e.path), "reason": e.reason} for e in result.errors],
        "summary": {
            "activated_profiles": sorted(result.activated_profiles),
            "rules_evaluated": result.rules_evaluated,
            "issues_count": len(result.issues),
            "files_scanned": result.files_scanned,
            "fixes_applied": result.fixes_applied,
            "truncated": result.truncated,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult) -> str:
    """Format a LintResult as one line per issue.

    Format: ``file_path:line:column:severity:rule_name:message``

    Returns empty string when there are no issues.
    """
    lines: list[str] = []
    for i in result.issues:
        message = i.message.replace("\n", " ")
        lines.append(
            f"{i.file_path}:{i.line}:{i.column}:{i.severity.value}:{i.rule_name}:{message}"
        )
    return "\n".join(lines)
