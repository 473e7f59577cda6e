"""Profile activation from project evidence.

A profile activates when *any* of its activation categories yields *any*
true condition: an indicator file exists, a listed path exists, a glob
matches at least one file, a content substring appears in a candidate
file, or the current event matches one of its ``events``.  Profiles are
independent of each other, so the result does not depend on the order
they are given in.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from projectlint.rules.globs import match_glob
from projectlint.rules.models import MatchPosition

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from projectlint.hooks.events import ProjectLintEvent
    from projectlint.rules.models import ContentMatch, ProfileDocument

logger = logging.getLogger(__name__)

HEADER_SIZE = 1024
_SKIP_DIRS = frozenset({".git", "node_modules", "target", "dist", "__pycache__", ".venv"})


@dataclass(frozen=True)
class ProjectEvidence:
    """What the activator may look at: a project root and its candidate files.

    *files* are relative POSIX paths.  When omitted, the tree under *root*
    is listed on first use.
    """

    root: Path
    files: tuple[str, ...] | None = None

    @cached_property
    def file_list(self) -> tuple[str, ...]:
        if self.files is not None:
            return self.files
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
            rel_dir = os.path.relpath(dirpath, self.root)
            for filename in sorted(filenames):
                rel = filename if rel_dir == "." else f"{rel_dir}/{filename}"
                found.append(rel.replace(os.sep, "/"))
        return tuple(found)

    def exists(self, rel_path: str) -> bool:
        """True if *rel_path* is a candidate file, a parent of one, or exists on disk."""
        rel_path = rel_path.strip("/")
        if self.files is not None:
            prefix = rel_path + "/"
            if any(f == rel_path or f.startswith(prefix) for f in self.files):
                return True
        return (self.root / rel_path).exists()


def _read_for_match(path: Path, position: MatchPosition) -> str | None:
    try:
        with path.open("rb") as fh:
            data = fh.read(HEADER_SIZE) if position is MatchPosition.HEADER else fh.read()
    except OSError:
        return None
    return data.decode("utf-8", errors="replace")


def _glob_hits(pattern: str, files: Iterable[str]) -> list[str]:
    try:
        return [f for f in files if match_glob(pattern, f)]
    except ValueError as exc:
        logger.warning("Invalid glob pattern '%s': %s", pattern, exc)
        return []


def _content_matches(match: ContentMatch, evidence: ProjectEvidence) -> bool:
    globs = match.globs or ("**/*",)
    for pattern in globs:
        for rel in _glob_hits(pattern, evidence.file_list):
            text = _read_for_match(evidence.root / rel, match.position)
            if text is not None and any(s in text for s in match.matches):
                return True
    return False


def event_matches(names: Iterable[str], event: ProjectLintEvent) -> bool:
    """True if *names* contains ``all``, the event kind, or the native event name."""
    wanted = set(names)
    if "all" in wanted or event.kind.value in wanted:
        return True
    return bool(event.native_name) and event.native_name in wanted


def is_profile_active(
    profile: ProfileDocument,
    evidence: ProjectEvidence,
    event: ProjectLintEvent | None = None,
) -> bool:
    """Evaluate one profile's activation spec against *evidence*."""
    activation = profile.activation

    for indicator in activation.indicators:
        if evidence.exists(indicator):
            logger.debug("Profile '%s' activated by indicator: %s", profile.name, indicator)
            return True

    for path in activation.paths:
        if evidence.exists(path):
            logger.debug("Profile '%s' activated by path: %s", profile.name, path)
            return True

    for pattern in activation.globs:
        if _glob_hits(pattern, evidence.file_list):
            logger.debug("Profile '%s' activated by glob: %s", profile.name, pattern)
            return True

    for content in activation.content:
        if _content_matches(content, evidence):
            logger.debug("Profile '%s' activated by content: %s", profile.name, content.matches)
            return True

    if event is not None and activation.events and event_matches(activation.events, event):
        logger.debug("Profile '%s' activated by event: %s", profile.name, event.kind.value)
        return True

    return False


def activate(
    profiles: Iterable[ProfileDocument],
    evidence: ProjectEvidence,
    event: ProjectLintEvent | None = None,
) -> frozenset[str]:
    """Return the names of every profile whose activation condition holds.

    Pure with respect to *evidence*: the same profiles and evidence always
    give the same set.
    """
    active = frozenset(p.name for p in profiles if is_profile_active(p, evidence, event))
    logger.info("Active profiles: %s", ", ".join(sorted(active)) or "(none)")
    return active
