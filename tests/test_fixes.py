"""Tests for projectlint.detection.fixes: fix application and atomic writes."""

from __future__ import annotations

import os
import stat
from typing import TYPE_CHECKING

import pytest

from projectlint.detection.engine import DetectionIssue, compile_rule, detect
from projectlint.detection.fixes import FixWriteError, apply_fixes, write_fixes
from projectlint.rules.models import Severity

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from projectlint.rules.models import RuleDefinition


def _issue(span: tuple[int, int], fix: str | None, text: str = "") -> DetectionIssue:
    return DetectionIssue(
        rule_name="r",
        severity=Severity.WARNING,
        file_path="f",
        line=1,
        column=span[0] + 1,
        message="m",
        fix=fix,
        matched_text=text,
        span=span,
    )


class TestApplyFixes:
    def test_replaces_right_to_left(self) -> None:
        outcome = apply_fixes("aa bb aa", [_issue((0, 2), "X"), _issue((6, 8), "YYY")])
        assert outcome.text == "X bb YYY"
        assert outcome.applied == 2

    def test_unmatched_text_untouched(self) -> None:
        text = "keepé [x] keep\n\ttabs"
        outcome = apply_fixes(text, [_issue((6, 9), "[y]")])
        assert outcome.text == "keepé [y] keep\n\ttabs"

    def test_overlapping_spans_skipped(self) -> None:
        outcome = apply_fixes("abcdef", [_issue((1, 4), "X"), _issue((2, 5), "Y")])
        assert outcome.text == "aXef"
        assert outcome.applied == 1
        assert outcome.skipped == 1

    def test_issues_without_fix_ignored(self) -> None:
        outcome = apply_fixes("abc", [_issue((0, 1), None)])
        assert outcome.text == "abc"
        assert not outcome.changed

    def test_idempotent(self, make_rule: Callable[..., RuleDefinition]) -> None:
        """Detect-then-fix on fixed text changes nothing."""
        compiled = compile_rule(make_rule("r", pattern="^npm ", fix="s/npm/pnpm/"))
        text = "npm install\nnpm test\n"
        once = apply_fixes(text, detect(compiled, text)).text
        twice = apply_fixes(once, detect(compiled, once)).text
        assert once == "pnpm install\npnpm test\n"
        assert twice == once


class TestWriteFixes:
    def test_writes_in_place(self, tmp_path: Path, make_rule: Callable[..., RuleDefinition]) -> None:
        path = tmp_path / "run.sh"
        path.write_text("npm install\n")
        compiled = compile_rule(make_rule("r", pattern="^npm ", fix="s/npm/pnpm/"))
        issues = detect(compiled, path.read_text())

        outcome = write_fixes(path, issues)

        assert outcome.applied == 1
        assert path.read_text() == "pnpm install\n"
        assert [p.name for p in tmp_path.iterdir()] == ["run.sh"]

    def test_dry_run_leaves_file(self, tmp_path: Path) -> None:
        path = tmp_path / "a.txt"
        path.write_text("abc")
        outcome = write_fixes(path, [_issue((0, 1), "X")], dry_run=True)
        assert outcome.text == "Xbc"
        assert path.read_text() == "abc"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FixWriteError) as exc_info:
            write_fixes(tmp_path / "gone.txt", [_issue((0, 1), "X")])
        assert exc_info.value.path == tmp_path / "gone.txt"

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unwritable_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "a.txt"
        path.write_text("abc")
        tmp_path.chmod(0o500)
        try:
            with pytest.raises(FixWriteError, match="cannot write"):
                write_fixes(path, [_issue((0, 1), "X")])
            assert path.read_text() == "abc"
        finally:
            tmp_path.chmod(0o700)

    def test_crlf_line_endings_preserved(
        self, tmp_path: Path, make_rule: Callable[..., RuleDefinition]
    ) -> None:
        path = tmp_path / "win.txt"
        path.write_bytes(b"foo\r\nkeep\r\n")
        compiled = compile_rule(make_rule("r", pattern="foo", fix="bar"))
        issues = detect(compiled, "foo\r\nkeep\r\n")

        write_fixes(path, issues)

        assert path.read_bytes() == b"bar\r\nkeep\r\n"

    def test_file_mode_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "deploy.sh"
        path.write_text("abc")
        path.chmod(0o755)
        write_fixes(path, [_issue((0, 1), "X")])
        assert path.read_text() == "Xbc"
        assert stat.S_IMODE(path.stat().st_mode) == 0o755
