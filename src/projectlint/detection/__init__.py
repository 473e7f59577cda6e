"""Detection domain: regex/call matching, fix application, AST finding intake."""

from projectlint.detection.engine import (
    CompiledRule,
    DetectionIssue,
    RuleCompileError,
    applies_to_file,
    compile_rule,
    compile_rules,
    detect,
    detect_all,
    render_template,
)
from projectlint.detection.findings import AstFinding, consume_findings
from projectlint.detection.fixes import FixOutcome, FixWriteError, apply_fixes, write_fixes

__all__ = [
    "AstFinding",
    "CompiledRule",
    "DetectionIssue",
    "FixOutcome",
    "FixWriteError",
    "RuleCompileError",
    "applies_to_file",
    "apply_fixes",
    "compile_rule",
    "compile_rules",
    "consume_findings",
    "detect",
    "detect_all",
    "render_template",
    "write_fixes",
]
