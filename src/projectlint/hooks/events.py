"""Normalized hook events and decisions.

Every IDE's payload is translated (see :mod:`projectlint.hooks.mappers`)
into a :class:`ProjectLintEvent` before the decision engine sees it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from projectlint.detection.engine import DetectionIssue


class EventKind(enum.Enum):
    """Closed set of lifecycle events; anything else is ``UNKNOWN``."""

    SESSION_START = "session_start"
    SESSION_END = "session_end"
    PRE_TOOL_USE = "pre_tool_use"
    POST_TOOL_USE = "post_tool_use"
    PRE_READ_CODE = "pre_read_code"
    POST_READ_CODE = "post_read_code"
    PRE_WRITE_CODE = "pre_write_code"
    POST_WRITE_CODE = "post_write_code"
    PRE_RUN_COMMAND = "pre_run_command"
    POST_RUN_COMMAND = "post_run_command"
    PRE_USER_PROMPT = "pre_user_prompt"
    POST_MODEL_RESPONSE = "post_model_response"
    NOTIFICATION = "notification"
    PERMISSION_REQUEST = "permission_request"
    STOP = "stop"
    SUBAGENT_STOP = "subagent_stop"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> EventKind:
        """Map a kind name to a member; unrecognized names give ``UNKNOWN``."""
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class ProjectLintEvent:
    """One IDE/agent lifecycle event, already normalized."""

    kind: EventKind
    source: str = "generic"
    session_id: str | None = None
    timestamp: str | None = None
    file_path: str | None = None
    command: str | None = None
    content: str | None = None
    cwd: str | None = None
    tool_name: str | None = None
    native_name: str | None = None  # the IDE's own event name
    raw: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


class Decision(enum.Enum):
    ALLOW = "allow"
    WARN = "warn"
    DENY = "deny"


@dataclass(frozen=True)
class HookResult:
    """Outcome of evaluating one event."""

    decision: Decision = Decision.ALLOW
    message: str | None = None
    rewritten_command: str | None = None
    issues: tuple[DetectionIssue, ...] = ()

    def summary(self) -> str | None:
        """All issue messages, one per line, or ``None`` when nothing matched."""
        if not self.issues:
            return self.message
        lines = [f"[{i.severity.value}] {i.rule_name}: {i.message}" for i in self.issues]
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Generic wire form: ``{decision, message?, rewritten_command?}``."""
        data: dict[str, Any] = {"decision": self.decision.value}
        if self.message is not None:
            data["message"] = self.message
        if self.rewritten_command is not None:
            data["rewritten_command"] = self.rewritten_command
        return data
