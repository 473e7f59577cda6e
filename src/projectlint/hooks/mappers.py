"""IDE payload translators.

Each supported IDE has one mapper class implementing :class:`EventMapper`:
it parses the IDE's JSON payload into a :class:`ProjectLintEvent` and
renders a :class:`HookResult` in the IDE's response dialect.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol

from projectlint.hooks.events import Decision, EventKind, ProjectLintEvent

if TYPE_CHECKING:
    from projectlint.hooks.events import HookResult


class EventMapError(ValueError):
    """Raised when a hook payload cannot be translated into an event."""


class EventMapper(Protocol):
    source: str

    def map_event(self, raw: str) -> ProjectLintEvent: ...

    def format_response(self, result: HookResult, event: ProjectLintEvent) -> str: ...


def _load_payload(raw: str, source: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"{source}: payload is not valid JSON ({exc})"
        raise EventMapError(msg) from exc
    if not isinstance(payload, dict):
        msg = f"{source}: payload must be a JSON object"
        raise EventMapError(msg)
    return payload


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _as_dict(value: object) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Claude
# ---------------------------------------------------------------------------

_CLAUDE_EVENTS: dict[str, EventKind] = {
    "PreToolUse": EventKind.PRE_TOOL_USE,
    "PostToolUse": EventKind.POST_TOOL_USE,
    "UserPromptSubmit": EventKind.PRE_USER_PROMPT,
    "SessionStart": EventKind.SESSION_START,
    "SessionEnd": EventKind.SESSION_END,
    "Stop": EventKind.STOP,
    "SubagentStop": EventKind.SUBAGENT_STOP,
    "Notification": EventKind.NOTIFICATION,
    "PermissionRequest": EventKind.PERMISSION_REQUEST,
}


class ClaudeMapper:
    """Claude hooks: ``hook_event_name`` plus ``tool_name`` / ``tool_input``."""

    source = "claude"

    def map_event(self, raw: str) -> ProjectLintEvent:
        payload = _load_payload(raw, self.source)
        native = _opt_str(payload.get("hook_event_name"))
        if native is None:
            msg = f"{self.source}: missing 'hook_event_name'"
            raise EventMapError(msg)

        kind = _CLAUDE_EVENTS.get(native, EventKind.UNKNOWN)
        tool_name = _opt_str(payload.get("tool_name"))
        tool_input = _as_dict(payload.get("tool_input"))

        content = None
        if kind is EventKind.PRE_USER_PROMPT:
            content = _opt_str(payload.get("prompt"))
        elif tool_input:
            content = _opt_str(tool_input.get("content")) or _opt_str(
                tool_input.get("new_string")
            )

        return ProjectLintEvent(
            kind=kind,
            source=self.source,
            session_id=_opt_str(payload.get("session_id")),
            file_path=_opt_str(tool_input.get("file_path")),
            command=_opt_str(tool_input.get("command")),
            content=content,
            cwd=_opt_str(payload.get("cwd")),
            tool_name=tool_name,
            native_name=native,
            raw=payload,
        )

    def format_response(self, result: HookResult, event: ProjectLintEvent) -> str:
        response: dict[str, Any] = {"continue": True}
        if result.decision is Decision.DENY:
            response["continue"] = False
            if result.message:
                response["stopReason"] = result.message
        elif result.decision is Decision.WARN and result.message:
            response["systemMessage"] = result.message

        if result.rewritten_command is not None and result.decision is not Decision.DENY:
            updated = dict(_as_dict(event.raw.get("tool_input")))
            updated["command"] = result.rewritten_command
            response["hookSpecificOutput"] = {
                "hookEventName": event.native_name or "PreToolUse",
                "permissionDecision": "allow",
                "updatedInput": updated,
            }
        return json.dumps(response)


# ---------------------------------------------------------------------------
# Windsurf
# ---------------------------------------------------------------------------

_WINDSURF_EVENTS: dict[str, EventKind] = {
    "pre_read_code": EventKind.PRE_READ_CODE,
    "post_read_code": EventKind.POST_READ_CODE,
    "pre_write_code": EventKind.PRE_WRITE_CODE,
    "post_write_code": EventKind.POST_WRITE_CODE,
    "pre_run_command": EventKind.PRE_RUN_COMMAND,
    "post_run_command": EventKind.POST_RUN_COMMAND,
    "pre_mcp_tool_use": EventKind.PRE_TOOL_USE,
    "post_mcp_tool_use": EventKind.POST_TOOL_USE,
    "pre_user_prompt": EventKind.PRE_USER_PROMPT,
    "post_cascade_response": EventKind.POST_MODEL_RESPONSE,
}


class WindsurfMapper:
    """Windsurf Cascade hooks: ``agent_action_name`` plus ``tool_info``."""

    source = "windsurf"

    def map_event(self, raw: str) -> ProjectLintEvent:
        payload = _load_payload(raw, self.source)
        native = _opt_str(payload.get("agent_action_name"))
        if native is None:
            msg = f"{self.source}: missing 'agent_action_name'"
            raise EventMapError(msg)

        kind = _WINDSURF_EVENTS.get(native, EventKind.UNKNOWN)
        info = _as_dict(payload.get("tool_info"))

        content = None
        edits = info.get("edits")
        if isinstance(edits, list):
            content = "\n".join(
                str(e.get("new_string", "")) for e in edits if isinstance(e, dict)
            )
        elif kind is EventKind.PRE_USER_PROMPT:
            content = _opt_str(info.get("user_prompt"))
        elif kind is EventKind.POST_MODEL_RESPONSE:
            content = _opt_str(info.get("response"))

        return ProjectLintEvent(
            kind=kind,
            source=self.source,
            session_id=_opt_str(payload.get("trajectory_id")),
            timestamp=_opt_str(payload.get("timestamp")),
            file_path=_opt_str(info.get("file_path")),
            command=_opt_str(info.get("command_line")),
            content=content,
            cwd=_opt_str(info.get("cwd")),
            tool_name=_opt_str(info.get("mcp_tool_name")),
            native_name=native,
            raw=payload,
        )

    def format_response(self, result: HookResult, event: ProjectLintEvent) -> str:
        response: dict[str, Any] = {"decision": result.decision.value}
        if result.rewritten_command is not None and result.decision is not Decision.DENY:
            response["modified_input"] = {"command_line": result.rewritten_command}
        return json.dumps(response)


# ---------------------------------------------------------------------------
# Kiro
# ---------------------------------------------------------------------------

_KIRO_EVENTS: dict[str, EventKind] = {
    "file_save": EventKind.POST_WRITE_CODE,
    "file.save": EventKind.POST_WRITE_CODE,
    "file_create": EventKind.POST_WRITE_CODE,
    "file.create": EventKind.POST_WRITE_CODE,
    "prompt_submit": EventKind.PRE_USER_PROMPT,
    "prompt.submit": EventKind.PRE_USER_PROMPT,
    "turn_complete": EventKind.POST_MODEL_RESPONSE,
    "turn.complete": EventKind.POST_MODEL_RESPONSE,
}


class KiroMapper:
    """Kiro agent hooks: ``event`` (or ``type``) plus ``file`` / ``path``.

    Kiro reads only the exit status, so the response body is empty.
    """

    source = "kiro"

    def map_event(self, raw: str) -> ProjectLintEvent:
        payload = _load_payload(raw, self.source)
        native = _opt_str(payload.get("event")) or _opt_str(payload.get("type"))
        if native is None:
            msg = f"{self.source}: missing 'event' or 'type'"
            raise EventMapError(msg)

        return ProjectLintEvent(
            kind=_KIRO_EVENTS.get(native, EventKind.UNKNOWN),
            source=self.source,
            session_id=_opt_str(payload.get("session_id")),
            file_path=_opt_str(payload.get("file")) or _opt_str(payload.get("path")),
            content=_opt_str(payload.get("prompt")) or _opt_str(payload.get("content")),
            native_name=native,
            raw=payload,
        )

    def format_response(self, result: HookResult, event: ProjectLintEvent) -> str:
        return ""


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


class GenericMapper:
    """The normalized event record: ``{event_kind, source, session_id, ...}``."""

    source = "generic"

    def map_event(self, raw: str) -> ProjectLintEvent:
        payload = _load_payload(raw, self.source)
        kind_raw = payload.get("event_kind")
        if not isinstance(kind_raw, str):
            msg = f"{self.source}: missing 'event_kind'"
            raise EventMapError(msg)

        return ProjectLintEvent(
            kind=EventKind.parse(kind_raw),
            source=_opt_str(payload.get("source")) or self.source,
            session_id=_opt_str(payload.get("session_id")),
            timestamp=_opt_str(payload.get("timestamp")),
            file_path=_opt_str(payload.get("file_path")),
            command=_opt_str(payload.get("command")),
            content=_opt_str(payload.get("content")),
            cwd=_opt_str(payload.get("cwd")),
            native_name=kind_raw,
            raw=payload,
        )

    def format_response(self, result: HookResult, event: ProjectLintEvent) -> str:
        return json.dumps(result.to_dict())


MAPPERS: dict[str, type[EventMapper]] = {
    "claude": ClaudeMapper,
    "windsurf": WindsurfMapper,
    "kiro": KiroMapper,
    "generic": GenericMapper,
}


def get_mapper(source: str) -> EventMapper:
    """Return the mapper for *source*; raises ``ValueError`` for unknown IDEs."""
    try:
        return MAPPERS[source.lower()]()
    except KeyError:
        msg = f"Unknown hook source '{source}', must be one of {sorted(MAPPERS)}"
        raise ValueError(msg) from None
