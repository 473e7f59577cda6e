"""JSONL log of hook invocations and aggregated statistics.

One JSON object per line in ``hook-log-YYYY-MM-DD.jsonl`` under the log
directory (default ``~/.local/share/project-lint/logs``).
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from projectlint.hooks.events import HookResult, ProjectLintEvent

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "project-lint" / "logs"


@dataclass(frozen=True)
class HookLogEntry:
    """One logged hook invocation."""

    timestamp: str
    event_kind: str
    source: str
    decision: str
    session_id: str | None = None
    file_path: str | None = None
    tool_name: str | None = None
    command: str | None = None
    message: str | None = None
    duration_ms: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HookLogEntry:
        return cls(
            timestamp=str(data["timestamp"]),
            event_kind=str(data["event_kind"]),
            source=str(data["source"]),
            decision=str(data["decision"]),
            session_id=data.get("session_id"),
            file_path=data.get("file_path"),
            tool_name=data.get("tool_name"),
            command=data.get("command"),
            message=data.get("message"),
            duration_ms=data.get("duration_ms"),
        )


@dataclass
class HookStats:
    """Counts by event kind, source, and decision, plus duration figures."""

    total_events: int = 0
    event_counts: Counter[str] = field(default_factory=Counter)
    source_counts: Counter[str] = field(default_factory=Counter)
    decision_counts: Counter[str] = field(default_factory=Counter)
    min_duration_ms: int | None = None
    max_duration_ms: int | None = None
    _total_duration_ms: int = 0
    _timed_events: int = 0

    @property
    def avg_duration_ms(self) -> float | None:
        if self._timed_events == 0:
            return None
        return self._total_duration_ms / self._timed_events

    def add(self, entry: HookLogEntry) -> None:
        self.total_events += 1
        self.event_counts[entry.event_kind] += 1
        self.source_counts[entry.source] += 1
        self.decision_counts[entry.decision] += 1
        if entry.duration_ms is not None:
            self._total_duration_ms += entry.duration_ms
            self._timed_events += 1
            if self.min_duration_ms is None or entry.duration_ms < self.min_duration_ms:
                self.min_duration_ms = entry.duration_ms
            if self.max_duration_ms is None or entry.duration_ms > self.max_duration_ms:
                self.max_duration_ms = entry.duration_ms


class HookLogger:
    """Append hook entries to today's log file and read them back."""

    def __init__(self, log_dir: Path | None = None, *, today: datetime | None = None) -> None:
        self.log_dir = log_dir or DEFAULT_LOG_DIR
        day = (today or datetime.now(tz=timezone.utc)).strftime("%Y-%m-%d")
        self.log_file = self.log_dir / f"hook-log-{day}.jsonl"

    def log(
        self,
        event: ProjectLintEvent,
        result: HookResult,
        duration_ms: int | None = None,
    ) -> HookLogEntry:
        """Append one entry.  I/O failures are logged, never raised."""
        entry = HookLogEntry(
            timestamp=datetime.now(tz=timezone.utc).isoformat(),
            event_kind=event.kind.value,
            source=event.source,
            decision=result.decision.value,
            session_id=event.session_id,
            file_path=event.file_path,
            tool_name=event.tool_name,
            command=event.command,
            message=result.message,
            duration_ms=duration_ms,
        )
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(asdict(entry)) + "\n")
        except OSError as exc:
            logger.error("Failed to write hook log %s: %s", self.log_file, exc)
        return entry

    def recent(self, limit: int | None = None) -> list[HookLogEntry]:
        """Return the last *limit* entries (all when ``None``); bad lines are skipped."""
        if not self.log_file.is_file():
            return []
        lines = self.log_file.read_text(encoding="utf-8").splitlines()
        if limit is not None:
            lines = lines[-limit:] if limit > 0 else []

        entries: list[HookLogEntry] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                entries.append(HookLogEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.warning("Skipping malformed hook log line: %s", line[:80])
        return entries

    def stats(self) -> HookStats:
        stats = HookStats()
        for entry in self.recent():
            stats.add(entry)
        return stats
