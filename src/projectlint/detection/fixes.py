"""Fix application: splice rendered replacements into text, optionally on disk."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from projectlint.detection.engine import DetectionIssue

logger = logging.getLogger(__name__)


class FixWriteError(OSError):
    """Raised when a fixed file cannot be read or written back."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


@dataclass(frozen=True)
class FixOutcome:
    """Result of applying fixes to one text."""

    text: str
    applied: int = 0
    skipped: int = 0

    @property
    def changed(self) -> bool:
        return self.applied > 0


def apply_fixes(text: str, issues: Iterable[DetectionIssue]) -> FixOutcome:
    """Replace each fixable issue's span in *text*, right to left.

    Text outside the replaced spans is left byte-identical.  When spans
    overlap, the one starting first wins and the rest are skipped.
    """
    fixable = sorted(
        (i for i in issues if i.fix is not None and i.span[1] > i.span[0]),
        key=lambda i: (i.span[0], i.span[1]),
    )

    kept: list[DetectionIssue] = []
    skipped = 0
    last_end = -1
    for issue in fixable:
        start, end = issue.span
        if start < last_end or end > len(text):
            skipped += 1
            continue
        kept.append(issue)
        last_end = end

    result = text
    for issue in reversed(kept):
        start, end = issue.span
        result = result[:start] + (issue.fix or "") + result[end:]

    applied = sum(1 for i in kept if text[i.span[0] : i.span[1]] != i.fix)
    return FixOutcome(text=result, applied=applied, skipped=skipped)


def read_source(path: Path) -> str:
    """Read *path* as UTF-8 with line endings left untouched."""
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


def atomic_write_text(path: Path, text: str) -> None:
    """Write *text* to a sibling temp file, then ``os.replace`` it over *path*.

    The temp file takes *path*'s permission bits before the swap.
    """
    tmp_path = path.with_name(f".{path.name}.tmp-{os.getpid()}")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def write_fixes(
    path: Path,
    issues: Iterable[DetectionIssue],
    *,
    dry_run: bool = False,
    text: str | None = None,
) -> FixOutcome:
    """Apply *issues*' fixes to the file at *path*.

    *text* is the content the issues were detected on; it is read from
    *path* when omitted.  With *dry_run*, nothing is written.
    """
    if text is None:
        try:
            text = read_source(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise FixWriteError(path, f"cannot read ({exc})") from exc

    outcome = apply_fixes(text, issues)
    if dry_run or outcome.text == text:
        return outcome

    try:
        atomic_write_text(path, outcome.text)
    except OSError as exc:
        raise FixWriteError(path, f"cannot write ({exc})") from exc
    logger.info("Applied %d fix(es) to %s", outcome.applied, path)
    return outcome
