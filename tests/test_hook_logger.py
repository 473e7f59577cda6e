"""Tests for projectlint.hooks.logger: JSONL hook log and statistics."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from projectlint.hooks.events import Decision, EventKind, HookResult, ProjectLintEvent
from projectlint.hooks.logger import HookLogger

if TYPE_CHECKING:
    from pathlib import Path

_DAY = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


def _event(kind: EventKind = EventKind.PRE_RUN_COMMAND, source: str = "claude") -> ProjectLintEvent:
    return ProjectLintEvent(kind=kind, source=source, command="npm i", session_id="s")


class TestHookLogger:
    def test_log_file_named_by_day(self, tmp_path: Path) -> None:
        hook_logger = HookLogger(tmp_path, today=_DAY)
        assert hook_logger.log_file == tmp_path / "hook-log-2026-03-14.jsonl"

    def test_log_appends_json_line(self, tmp_path: Path) -> None:
        hook_logger = HookLogger(tmp_path / "logs", today=_DAY)
        result = HookResult(decision=Decision.WARN, message="use pnpm")
        hook_logger.log(_event(), result, duration_ms=4)
        hook_logger.log(_event(), HookResult())

        lines = hook_logger.log_file.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["event_kind"] == "pre_run_command"
        assert first["decision"] == "warn"
        assert first["message"] == "use pnpm"
        assert first["duration_ms"] == 4
        assert first["command"] == "npm i"

    def test_recent_limit(self, tmp_path: Path) -> None:
        hook_logger = HookLogger(tmp_path, today=_DAY)
        for kind in (EventKind.SESSION_START, EventKind.PRE_TOOL_USE, EventKind.STOP):
            hook_logger.log(_event(kind), HookResult())
        assert [e.event_kind for e in hook_logger.recent(2)] == ["pre_tool_use", "stop"]
        assert len(hook_logger.recent()) == 3
        assert hook_logger.recent(0) == []

    def test_recent_without_file(self, tmp_path: Path) -> None:
        assert HookLogger(tmp_path, today=_DAY).recent() == []

    def test_malformed_lines_skipped(self, tmp_path: Path) -> None:
        hook_logger = HookLogger(tmp_path, today=_DAY)
        hook_logger.log(_event(), HookResult())
        with hook_logger.log_file.open("a") as fh:
            fh.write("not json\n{\"timestamp\": \"t\"}\n\n")
        hook_logger.log(_event(), HookResult())
        assert len(hook_logger.recent()) == 2

    def test_write_failure_does_not_raise(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        hook_logger = HookLogger(blocker / "logs", today=_DAY)
        entry = hook_logger.log(_event(), HookResult())
        assert entry.decision == "allow"
        assert not hook_logger.log_file.exists()


class TestHookStats:
    def test_aggregates(self, tmp_path: Path) -> None:
        hook_logger = HookLogger(tmp_path, today=_DAY)
        hook_logger.log(_event(source="claude"), HookResult(decision=Decision.DENY), 10)
        hook_logger.log(_event(source="claude"), HookResult(), 30)
        hook_logger.log(_event(EventKind.STOP, "windsurf"), HookResult())

        stats = hook_logger.stats()

        assert stats.total_events == 3
        assert stats.event_counts == {"pre_run_command": 2, "stop": 1}
        assert stats.source_counts == {"claude": 2, "windsurf": 1}
        assert stats.decision_counts == {"deny": 1, "allow": 2}
        assert stats.min_duration_ms == 10
        assert stats.max_duration_ms == 30
        assert stats.avg_duration_ms == 20

    def test_empty(self, tmp_path: Path) -> None:
        stats = HookLogger(tmp_path, today=_DAY).stats()
        assert stats.total_events == 0
        assert stats.avg_duration_ms is None
