"""Tests for the ``project-lint hook`` CLI command."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner, Result

from projectlint.cli import main
from projectlint.hooks.logger import HookLogger

if TYPE_CHECKING:
    from pathlib import Path

_SLICE = """\
[metadata]
name = "guard"

[[rules.shell]]
name = "no-rm-root"
pattern = 'rm -rf /(\\s|$)'
severity = "critical"
triggers = ["pre_run_command", "pre_tool_use"]
message = "Refusing to delete the filesystem root."

[[rules.shell]]
name = "npm-to-pnpm"
pattern = '^npm '
severity = "warning"
triggers = ["pre_run_command", "pre_tool_use"]
message = "Use pnpm here."
fix = 's/npm/pnpm/'
"""

_PROFILE = """\
slices = ["guard"]

[metadata]
name = "always"

[activation]
events = ["all"]
"""


@pytest.fixture(autouse=True)
def _isolated_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture()
def guard_config(config_dir: Path) -> Path:
    (config_dir / "rules" / "slices" / "guard.toml").write_text(_SLICE)
    (config_dir / "rules" / "profiles" / "always.toml").write_text(_PROFILE)
    return config_dir


def _hook(
    tmp_path: Path, config: Path, payload: str, *args: str, source: str = "generic"
) -> Result:
    project = tmp_path / "proj"
    project.mkdir(exist_ok=True)
    return CliRunner().invoke(
        main,
        [
            "hook",
            "--source",
            source,
            "--project",
            str(project),
            "--config-dir",
            str(config),
            "--log-dir",
            str(tmp_path / "logs"),
            *args,
        ],
        input=payload,
    )


def _response(result: Result) -> dict[str, object]:
    return json.loads(result.output.splitlines()[0])


class TestHookGeneric:
    def test_allow(self, tmp_path: Path, guard_config: Path) -> None:
        result = _hook(tmp_path, guard_config, '{"event_kind": "pre_run_command", "command": "ls"}')
        assert result.exit_code == 0
        assert _response(result) == {"decision": "allow"}

    def test_deny_exits_two(self, tmp_path: Path, guard_config: Path) -> None:
        payload = '{"event_kind": "pre_run_command", "command": "rm -rf /"}'
        result = _hook(tmp_path, guard_config, payload)
        assert result.exit_code == 2
        response = _response(result)
        assert response["decision"] == "deny"
        assert response["message"] == "Refusing to delete the filesystem root."
        assert "[critical] no-rm-root" in result.output

    def test_warn_with_rewrite(self, tmp_path: Path, guard_config: Path) -> None:
        payload = '{"event_kind": "pre_run_command", "command": "npm install left-pad"}'
        result = _hook(tmp_path, guard_config, payload)
        assert result.exit_code == 0
        assert _response(result) == {
            "decision": "warn",
            "message": "Use pnpm here.",
            "rewritten_command": "pnpm install left-pad",
        }

    def test_other_event_unaffected(self, tmp_path: Path, guard_config: Path) -> None:
        payload = '{"event_kind": "post_run_command", "command": "rm -rf /"}'
        result = _hook(tmp_path, guard_config, payload)
        assert result.exit_code == 0
        assert _response(result) == {"decision": "allow"}


class TestHookSources:
    def test_claude_rewrite(self, tmp_path: Path, guard_config: Path) -> None:
        payload = json.dumps(
            {
                "hook_event_name": "PreToolUse",
                "tool_name": "Bash",
                "tool_input": {"command": "npm test"},
            }
        )
        result = _hook(tmp_path, guard_config, payload, source="claude")
        assert result.exit_code == 0
        response = _response(result)
        assert response["continue"] is True
        assert response["hookSpecificOutput"]["updatedInput"]["command"] == "pnpm test"  # type: ignore[index]

    def test_windsurf_deny(self, tmp_path: Path, guard_config: Path) -> None:
        payload = json.dumps(
            {"agent_action_name": "pre_run_command", "tool_info": {"command_line": "rm -rf /"}}
        )
        result = _hook(tmp_path, guard_config, payload, source="windsurf")
        assert result.exit_code == 2
        assert _response(result) == {"decision": "deny"}

    def test_malformed_payload_allows(self, tmp_path: Path, guard_config: Path) -> None:
        result = _hook(tmp_path, guard_config, "not json", source="claude")
        assert result.exit_code == 0
        assert not (tmp_path / "logs").exists()


class TestHookConfig:
    def test_config_error_exits_two(self, tmp_path: Path, guard_config: Path) -> None:
        (guard_config / "rules" / "slices" / "broken.toml").write_text("[[rules.x]]\nname = 1\n")
        result = _hook(tmp_path, guard_config, '{"event_kind": "stop"}')
        assert result.exit_code == 2
        assert "broken.toml" in result.output


class TestHookLogging:
    def test_logs_invocation(self, tmp_path: Path, guard_config: Path) -> None:
        _hook(tmp_path, guard_config, '{"event_kind": "pre_run_command", "command": "npm ci"}')
        entries = HookLogger(tmp_path / "logs").recent()
        assert len(entries) == 1
        assert entries[0].decision == "warn"
        assert entries[0].command == "npm ci"
        assert entries[0].duration_ms is not None

    def test_no_log(self, tmp_path: Path, guard_config: Path) -> None:
        _hook(tmp_path, guard_config, '{"event_kind": "stop"}', "--no-log")
        assert HookLogger(tmp_path / "logs").recent() == []
