"""project-lint CLI entry point."""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import click

from projectlint import __version__


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich so stdout stays machine-readable."""
    from rich.console import Console
    from rich.logging import RichHandler

    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="project-lint")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """project-lint - profile-aware source-tree lint and IDE/agent hooks."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    _configure_logging(verbose=verbose, quiet=quiet)


_project_option = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: repository containing the current directory).",
)
_config_dir_option = click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Configuration directory (default: <project>/.config/project-lint, then user dir).",
)


def _project_root(project: Path | None) -> Path:
    from projectlint.infrastructure.config_dir import find_project_root

    return project.resolve() if project is not None else find_project_root(Path.cwd())


# ---------------------------------------------------------------------------
# lint
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option("--strict", is_flag=True, default=False, help="Exit 1 if issues found.")
@click.option("--fix", is_flag=True, default=False, help="Apply available fixes in place.")
@click.option(
    "--dry-run", is_flag=True, default=False, help="With --fix, report without writing."
)
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Worker threads.")
@_project_option
@_config_dir_option
def lint(
    *,
    fmt: str | None,
    strict: bool,
    fix: bool,
    dry_run: bool,
    jobs: int | None,
    project: Path | None,
    config_dir: Path | None,
) -> None:
    """Lint the project tree with the rules of its active profiles.

    Exit codes: 0 = clean or issues without --strict,
    1 = issues with --strict, 2 = configuration error.
    """
    from projectlint.infrastructure.config_dir import resolve_config_dir
    from projectlint.linter import LintError
    from projectlint.linter import format_json as _format_json
    from projectlint.linter import format_porcelain as _format_porcelain
    from projectlint.linter import format_rich as _format_rich
    from projectlint.linter import lint as run_lint

    project_root = _project_root(project)

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_lint(
            project_root,
            config_dir=resolve_config_dir(project_root, config_dir),
            fix=fix,
            dry_run=dry_run,
            jobs=jobs,
        )
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if strict and result.issues:
        sys.exit(1)


# ---------------------------------------------------------------------------
# hook
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--source",
    type=click.Choice(["claude", "windsurf", "kiro", "generic"]),
    default="generic",
    help="IDE that produced the payload on stdin.",
)
@_project_option
@_config_dir_option
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Hook log directory (default: ~/.local/share/project-lint/logs).",
)
@click.option("--no-log", is_flag=True, default=False, help="Do not write the hook log.")
def hook(
    *,
    source: str,
    project: Path | None,
    config_dir: Path | None,
    log_dir: Path | None,
    no_log: bool,
) -> None:
    """Evaluate one IDE/agent event read from stdin.

    Writes the IDE-specific response to stdout.  Exit codes: 0 = allow or
    warn, 2 = deny (or configuration error).
    """
    from projectlint.hooks.engine import RuleEngine
    from projectlint.hooks.events import Decision
    from projectlint.hooks.logger import HookLogger
    from projectlint.hooks.mappers import EventMapError, get_mapper
    from projectlint.infrastructure.config_dir import find_project_root, resolve_config_dir
    from projectlint.rules.activation import ProjectEvidence, activate
    from projectlint.rules.composer import compose_for_store
    from projectlint.rules.store import DocumentError, load_store

    logger = logging.getLogger(__name__)
    start = time.monotonic()
    mapper = get_mapper(source)
    raw = click.get_text_stream("stdin").read()

    try:
        event = mapper.map_event(raw)
    except EventMapError as exc:
        logger.error("Cannot map hook payload: %s", exc)
        return

    if project is not None:
        project_root = project.resolve()
    elif event.cwd:
        project_root = find_project_root(Path(event.cwd))
    else:
        project_root = find_project_root(Path.cwd())

    try:
        store = load_store(resolve_config_dir(project_root, config_dir))
    except DocumentError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    active = activate(store.profiles, ProjectEvidence(project_root), event)
    result = RuleEngine(compose_for_store(store, active)).evaluate(event)
    duration_ms = int((time.monotonic() - start) * 1000)

    if not no_log:
        HookLogger(log_dir).log(event, result, duration_ms)

    response = mapper.format_response(result, event)
    if response:
        click.echo(response)
    if result.decision is not Decision.ALLOW and result.issues:
        click.echo(result.summary(), err=True)

    if result.decision is Decision.DENY:
        sys.exit(2)


# ---------------------------------------------------------------------------
# profiles
# ---------------------------------------------------------------------------


@main.command()
@_project_option
@_config_dir_option
def profiles(*, project: Path | None, config_dir: Path | None) -> None:
    """List profiles and whether they activate for the project."""
    from rich.console import Console
    from rich.table import Table

    from projectlint.infrastructure.config_dir import resolve_config_dir
    from projectlint.rules.activation import ProjectEvidence, is_profile_active
    from projectlint.rules.store import DocumentError, load_store

    project_root = _project_root(project)
    try:
        store = load_store(resolve_config_dir(project_root, config_dir))
    except DocumentError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    evidence = ProjectEvidence(project_root)
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("Profile")
    table.add_column("Active")
    table.add_column("Slices")
    table.add_column("Description")
    for profile in sorted(store.profiles, key=lambda p: p.name):
        active = is_profile_active(profile, evidence)
        table.add_row(
            profile.name,
            "[green]yes[/green]" if active else "[dim]no[/dim]",
            ", ".join(profile.slices),
            profile.metadata.description,
        )
    Console().print(table)


# ---------------------------------------------------------------------------
# logs
# ---------------------------------------------------------------------------


@main.command()
@click.option("--limit", "-n", type=click.IntRange(min=1), default=20, help="Entries to show.")
@click.option("--stats", is_flag=True, default=False, help="Show aggregated statistics.")
@click.option(
    "--dir",
    "log_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Hook log directory (default: ~/.local/share/project-lint/logs).",
)
def logs(*, limit: int, stats: bool, log_dir: Path | None) -> None:
    """Show today's hook log entries or their statistics."""
    from projectlint.hooks.logger import HookLogger

    hook_logger = HookLogger(log_dir)

    if stats:
        summary = hook_logger.stats()
        click.echo(f"Total events: {summary.total_events}")
        for title, counts in (
            ("By event", summary.event_counts),
            ("By source", summary.source_counts),
            ("By decision", summary.decision_counts),
        ):
            if counts:
                click.echo(f"{title}:")
                for name, count in counts.most_common():
                    click.echo(f"  {name}: {count}")
        if summary.avg_duration_ms is not None:
            click.echo(
                f"Duration: min {summary.min_duration_ms}ms, "
                f"max {summary.max_duration_ms}ms, avg {summary.avg_duration_ms:.1f}ms"
            )
        return

    entries = hook_logger.recent(limit)
    if not entries:
        click.echo("No hook log entries.")
        return
    for entry in entries:
        detail = entry.command or entry.file_path or ""
        click.echo(
            f"{entry.timestamp} {entry.source} {entry.event_kind} {entry.decision} {detail}".rstrip()
        )


# ---------------------------------------------------------------------------
# watch
# ---------------------------------------------------------------------------


@main.command("watch")
@click.option("--debounce", default=None, type=int, help="Debounce delay in ms.")
@_project_option
@_config_dir_option
def watch_cmd(*, debounce: int | None, project: Path | None, config_dir: Path | None) -> None:
    """Watch files and re-lint on changes.

    Rule document changes reload the configuration and re-lint the tree.
    """
    from projectlint.infrastructure.config_dir import resolve_config_dir
    from projectlint.infrastructure.watcher import watch
    from projectlint.rules.store import DocumentError

    project_root = _project_root(project)
    try:
        watch(
            project_root,
            config_dir=resolve_config_dir(project_root, config_dir),
            debounce_ms=debounce,
        )
    except DocumentError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@main.command()
@click.option("--force", is_flag=True, default=False, help="Overwrite existing files.")
@_project_option
@_config_dir_option
def init(*, force: bool, project: Path | None, config_dir: Path | None) -> None:
    """Scaffold a configuration directory from the bundled defaults."""
    from projectlint.infrastructure.config_dir import init_config_dir, project_config_dir

    target = config_dir or project_config_dir(_project_root(project))
    written = init_config_dir(target, force=force)
    if written:
        click.echo(f"Wrote {len(written)} file(s) to {target}")
    else:
        click.echo(f"Nothing to write: {target} already initialized (use --force).")
