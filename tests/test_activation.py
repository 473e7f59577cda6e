"""Tests for projectlint.rules.activation: profile activation from evidence."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

from projectlint.hooks.events import EventKind, ProjectLintEvent
from projectlint.rules.activation import ProjectEvidence, activate, is_profile_active
from projectlint.rules.models import (
    ActivationSpec,
    ContentMatch,
    DocumentMetadata,
    MatchPosition,
    ProfileDocument,
)

if TYPE_CHECKING:
    from pathlib import Path


def _profile(name: str, **activation: object) -> ProfileDocument:
    return ProfileDocument(
        metadata=DocumentMetadata(name=name),
        activation=ActivationSpec(**activation),  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Single categories
# ---------------------------------------------------------------------------


class TestIndicators:
    def test_indicator_present(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{}")
        profile = _profile("web", indicators=("package.json",))
        assert is_profile_active(profile, ProjectEvidence(tmp_path))

    def test_indicator_absent(self, tmp_path: Path) -> None:
        profile = _profile("web", indicators=("package.json",))
        assert not is_profile_active(profile, ProjectEvidence(tmp_path))

    def test_indicator_from_file_list(self, tmp_path: Path) -> None:
        profile = _profile("web", indicators=("package.json",))
        evidence = ProjectEvidence(tmp_path, files=("package.json",))
        assert is_profile_active(profile, evidence)


class TestPaths:
    def test_directory_path(self, tmp_path: Path) -> None:
        (tmp_path / ".github" / "workflows").mkdir(parents=True)
        profile = _profile("ci", paths=(".github/workflows",))
        assert is_profile_active(profile, ProjectEvidence(tmp_path))

    def test_directory_implied_by_file_list(self, tmp_path: Path) -> None:
        profile = _profile("ci", paths=(".github/workflows",))
        evidence = ProjectEvidence(tmp_path, files=(".github/workflows/ci.yml",))
        assert is_profile_active(profile, evidence)


class TestGlobs:
    def test_nested_match(self, tmp_path: Path) -> None:
        profile = _profile("web", globs=("**/*.tsx",))
        evidence = ProjectEvidence(tmp_path, files=("src/components/App.tsx",))
        assert is_profile_active(profile, evidence)

    def test_root_level_match(self, tmp_path: Path) -> None:
        profile = _profile("web", globs=("**/*.tsx",))
        assert is_profile_active(profile, ProjectEvidence(tmp_path, files=("App.tsx",)))

    def test_no_match(self, tmp_path: Path) -> None:
        profile = _profile("web", globs=("**/*.tsx",))
        assert not is_profile_active(profile, ProjectEvidence(tmp_path, files=("main.py",)))

    def test_brace_alternatives(self, tmp_path: Path) -> None:
        profile = _profile("c", globs=("**/*.{c,h}",))
        assert is_profile_active(profile, ProjectEvidence(tmp_path, files=("inc/a.h",)))

    def test_invalid_glob_is_no_match(self, tmp_path: Path) -> None:
        profile = _profile("bad", globs=("**/*.{c,h",))
        assert not is_profile_active(profile, ProjectEvidence(tmp_path, files=("a.c",)))

    def test_lazy_listing_skips_vendor_dirs(self, tmp_path: Path) -> None:
        (tmp_path / "node_modules" / "x").mkdir(parents=True)
        (tmp_path / "node_modules" / "x" / "a.tsx").write_text("")
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "b.tsx").write_text("")
        evidence = ProjectEvidence(tmp_path)
        assert evidence.file_list == ("src/b.tsx",)


class TestContent:
    def test_substring_in_matching_file(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text('{"packageManager": "pnpm@9"}')
        profile = _profile(
            "pnpm",
            content=(ContentMatch(matches=('"packageManager": "pnpm',), globs=("package.json",)),),
        )
        assert is_profile_active(profile, ProjectEvidence(tmp_path))

    def test_default_glob_covers_all_files(self, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "main.c").write_text("#include <stdio.h>\n")
        profile = _profile("c", content=(ContentMatch(matches=("#include",)),))
        assert is_profile_active(profile, ProjectEvidence(tmp_path))

    def test_header_position_reads_first_kilobyte(self, tmp_path: Path) -> None:
        (tmp_path / "late.txt").write_text("x" * 2000 + "MARKER")
        header = _profile(
            "h", content=(ContentMatch(matches=("MARKER",), position=MatchPosition.HEADER),)
        )
        anywhere = _profile("a", content=(ContentMatch(matches=("MARKER",)),))
        evidence = ProjectEvidence(tmp_path)
        assert not is_profile_active(header, evidence)
        assert is_profile_active(anywhere, evidence)

    def test_unreadable_file_is_no_match(self, tmp_path: Path) -> None:
        profile = _profile("x", content=(ContentMatch(matches=("a",)),))
        evidence = ProjectEvidence(tmp_path, files=("missing.txt",))
        assert not is_profile_active(profile, evidence)


class TestEvents:
    def test_event_kind(self, tmp_path: Path) -> None:
        profile = _profile("cmd", events=("pre_run_command",))
        event = ProjectLintEvent(kind=EventKind.PRE_RUN_COMMAND)
        assert is_profile_active(profile, ProjectEvidence(tmp_path, files=()), event)

    def test_native_name(self, tmp_path: Path) -> None:
        profile = _profile("cmd", events=("PreToolUse",))
        event = ProjectLintEvent(kind=EventKind.PRE_TOOL_USE, native_name="PreToolUse")
        assert is_profile_active(profile, ProjectEvidence(tmp_path, files=()), event)

    def test_no_event_supplied(self, tmp_path: Path) -> None:
        profile = _profile("cmd", events=("all",))
        assert not is_profile_active(profile, ProjectEvidence(tmp_path, files=()))


# ---------------------------------------------------------------------------
# activate()
# ---------------------------------------------------------------------------


class TestActivate:
    def test_or_across_categories(self, tmp_path: Path) -> None:
        """A single satisfied category is enough, whatever the others say."""
        profile = _profile(
            "web",
            indicators=("package.json",),
            globs=("**/*.tsx",),
        )
        evidence = ProjectEvidence(tmp_path, files=("ui/App.tsx",))
        assert activate([profile], evidence) == frozenset({"web"})

    def test_empty_activation_never_activates(self, tmp_path: Path) -> None:
        assert activate([_profile("idle")], ProjectEvidence(tmp_path, files=("a",))) == (
            frozenset()
        )

    def test_order_independent(self, tmp_path: Path) -> None:
        profiles = [
            _profile("a", globs=("*.py",)),
            _profile("b", globs=("*.ts",)),
            _profile("c", globs=("*.rs",)),
        ]
        evidence = ProjectEvidence(tmp_path, files=("x.py", "y.rs"))
        results = {activate(list(p), evidence) for p in itertools.permutations(profiles)}
        assert results == {frozenset({"a", "c"})}

    def test_monotonic_in_evidence(self, tmp_path: Path) -> None:
        """Adding files can only add activated profiles."""
        profiles = [
            _profile("py", globs=("**/*.py",)),
            _profile("ts", globs=("**/*.ts",)),
            _profile("docker", indicators=("Dockerfile",)),
        ]
        small = activate(profiles, ProjectEvidence(tmp_path, files=("a.py",)))
        large = activate(
            profiles, ProjectEvidence(tmp_path, files=("a.py", "b.ts", "Dockerfile"))
        )
        assert small <= large
        assert large == frozenset({"py", "ts", "docker"})
