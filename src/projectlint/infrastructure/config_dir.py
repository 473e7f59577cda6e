"""Configuration directory resolution and scaffolding."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from projectlint.rules.store import BUNDLED_DEFAULTS_DIR

logger = logging.getLogger(__name__)

APP_NAME = "project-lint"


def find_project_root(start: Path) -> Path:
    """Walk up from *start* to the nearest directory containing ``.git``.

    Falls back to *start* itself when no repository is found.
    """
    start = start.resolve()
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return start


def project_config_dir(project_root: Path) -> Path:
    return project_root / ".config" / APP_NAME


def user_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/project-lint``, default ``~/.config/project-lint``."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / APP_NAME


def resolve_config_dir(project_root: Path, explicit: Path | None = None) -> Path | None:
    """Pick the configuration directory for *project_root*.

    Order: *explicit*, then ``<project>/.config/project-lint``, then the
    user directory.  Returns ``None`` when none exists, meaning the
    bundled defaults apply.
    """
    if explicit is not None:
        return explicit
    for candidate in (project_config_dir(project_root), user_config_dir()):
        if candidate.is_dir():
            logger.debug("Using configuration directory %s", candidate)
            return candidate
    return None


def init_config_dir(target: Path, *, force: bool = False) -> list[Path]:
    """Copy the bundled default documents into *target*.

    Existing files are kept unless *force* is set.  Returns the paths
    written.
    """
    written: list[Path] = []
    for source in sorted(BUNDLED_DEFAULTS_DIR.rglob("*")):
        if not source.is_file() or source.suffix not in {".toml", ".yml", ".yaml"}:
            continue
        dest = target / source.relative_to(BUNDLED_DEFAULTS_DIR)
        if dest.exists() and not force:
            logger.debug("Keeping existing %s", dest)
            continue
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
        written.append(dest)
    return written
