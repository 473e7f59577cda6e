"""File watcher: re-lint on file changes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from projectlint.linter import format_rich, is_ignored, lint
from projectlint.rules.store import DocumentError, load_store

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from projectlint.rules.store import RuleStore

_RULE_SUFFIXES = frozenset({".toml", ".yml", ".yaml"})


def _is_config_file(path_str: str, config_dir: Path | None) -> bool:
    """Check if *path_str* is a rule document inside *config_dir*."""
    if config_dir is None:
        return False
    path = Path(path_str)
    return path.suffix in _RULE_SUFFIXES and path.is_relative_to(config_dir)


def _filter_relevant(
    changes: Iterable[tuple[object, str]],
    project_root: Path,
    ignored_patterns: Iterable[str] = (),
) -> list[tuple[object, str]]:
    """Drop temp files, hidden directories (except ``.config``) and ignored paths."""
    ignored = tuple(ignored_patterns)
    result: list[tuple[object, str]] = []

    for change_type, path_str in changes:
        p = Path(path_str)

        if p.name.startswith("~") or p.name.endswith(".tmp") or ".tmp-" in p.name:
            continue

        try:
            rel = p.relative_to(project_root)
        except ValueError:
            continue

        if any(part.startswith(".") and part != ".config" for part in rel.parts[:-1]):
            continue
        if is_ignored(rel.as_posix(), ignored):
            continue

        result.append((change_type, path_str))

    return result


def _format_time() -> str:
    """Return current time as ``HH:MM:SS`` string."""
    return datetime.now(tz=timezone.utc).strftime("%H:%M:%S")


@dataclass(frozen=True)
class WatchEvent:
    """A single watch event after filtering and debounce."""

    files_changed: int
    is_config_change: bool
    issues_found: int


def watch(
    project_root: Path,
    config_dir: Path | None = None,
    debounce_ms: int | None = None,
    callback: Callable[[WatchEvent], None] | None = None,
) -> None:
    """Watch the project and lint changed files.

    A change to a rule document reloads the store and re-lints the whole
    tree; other changes lint just the changed files.
    """
    from rich.console import Console
    from watchfiles import watch as fs_watch

    project_root = project_root.resolve()
    if config_dir is not None:
        config_dir = config_dir.resolve()
    console = Console()
    store: RuleStore = load_store(config_dir)
    debounce = debounce_ms if debounce_ms is not None else store.base.debounce_ms

    watch_paths = [project_root]
    if config_dir is not None and config_dir.is_dir() and not config_dir.is_relative_to(
        project_root
    ):
        watch_paths.append(config_dir)

    console.print(f"[bold blue]Watching:[/bold blue] {project_root}")
    console.print(f"[dim]Debounce: {debounce}ms  |  Press Ctrl+C to stop[/dim]")
    console.print()

    try:
        for batch in fs_watch(*watch_paths, debounce=debounce):
            config_changed = any(_is_config_file(p, config_dir) for _, p in batch)
            relevant = _filter_relevant(batch, project_root, store.base.ignored_patterns)
            if not relevant and not config_changed:
                continue

            if config_changed:
                try:
                    store = load_store(config_dir)
                except DocumentError as exc:
                    console.print(f"[red]Config error:[/red] {exc}")
                    continue
                result = lint(project_root, store=store)
            else:
                changed = sorted(
                    {
                        Path(p).relative_to(project_root).as_posix()
                        for _, p in relevant
                        if Path(p).is_file()
                    }
                )
                result = lint(project_root, store=store, files=changed)

            timestamp = _format_time()
            scope = "full lint" if config_changed else "lint"
            console.print(
                f"[dim]{timestamp}[/dim] [green]{scope}[/green] "
                f"({len(relevant)} file{'s' if len(relevant) != 1 else ''} changed)"
            )
            if result.issues:
                console.print(format_rich(result), markup=False)

            if callback is not None:
                callback(
                    WatchEvent(
                        files_changed=len(relevant),
                        is_config_change=config_changed,
                        issues_found=len(result.issues),
                    )
                )

    except KeyboardInterrupt:
        console.print("\n[yellow]Watch stopped.[/yellow]")
