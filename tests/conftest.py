"""Shared test fixtures for project-lint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from projectlint.rules.models import (
    CallDetector,
    PatternDetector,
    RuleDefinition,
    Severity,
)
from projectlint.rules.store import parse_fix

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture()
def make_rule() -> Callable[..., RuleDefinition]:
    """Build a RuleDefinition from keyword arguments.

    ``pattern`` or ``functions`` picks the detector; ``fix`` accepts the
    document syntax (``s/a/b/`` or a template string).
    """

    def _make(
        name: str = "rule",
        *,
        pattern: str | None = None,
        functions: tuple[str, ...] | None = None,
        severity: Severity = Severity.WARNING,
        message: str = "{rule}: {matched}",
        fix: str | None = None,
        **kwargs: Any,
    ) -> RuleDefinition:
        detector = (
            CallDetector(functions=functions)
            if functions is not None
            else PatternDetector(pattern=pattern or name)
        )
        return RuleDefinition(
            name=name,
            detector=detector,
            severity=severity,
            message_template=message,
            fix=parse_fix(fix, name),
            **kwargs,
        )

    return _make


@pytest.fixture()
def config_dir(tmp_path: Path) -> Path:
    """Create an empty configuration directory layout."""
    root = tmp_path / "config"
    for sub in ("slices", "profiles", "active"):
        (root / "rules" / sub).mkdir(parents=True)
    return root


@pytest.fixture()
def pnpm_project(tmp_path: Path) -> Path:
    """A pnpm workspace: package.json, pnpm-lock.yaml and one source file."""
    project = tmp_path / "proj"
    project.mkdir()
    (project / "package.json").write_text('{"name": "demo", "packageManager": "pnpm@9.0.0"}\n')
    (project / "pnpm-lock.yaml").write_text("lockfileVersion: '9.0'\n")
    (project / "src").mkdir()
    (project / "src" / "index.ts").write_text("export const answer = 42;\n")
    return project
