"""
handoff CLI - Session and context commands.

Every command resolves the store root, reads files, writes at most one
file and exits. Nothing is remembered between invocations.
"""

import functools
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from handoff import __version__
from handoff.core.aggregator import ContextAggregator
from handoff.core.composer import SectionStatus, chars_for_tokens
from handoff.core.recorder import SessionRecorder
from handoff.errors import HandoffError
from handoff.store.artifacts import ArtifactStore, Category
from handoff.validation.config import Config

console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    SectionStatus.INCLUDED: "green",
    SectionStatus.TRUNCATED: "yellow",
    SectionStatus.DROPPED: "red",
}

root_option = click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=str),
    default=None,
    help="Store root (overrides HANDOFF_ROOT and the config file).",
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=False)],
    )


def handle_errors(func):
    """Turn handoff errors into a one-line message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HandoffError as e:
            err_console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
            sys.exit(1)

    return wrapper


def _open_store(ctx: click.Context, root: Optional[str]) -> Tuple[Config, ArtifactStore]:
    """Load config and resolve the root before touching the store."""
    config = Config.load(ctx.obj.get("config_path"))
    return config, ArtifactStore(config.resolve_root(root))


def _recorder(config: Config, store: ArtifactStore) -> SessionRecorder:
    session = config.merged.session
    return SessionRecorder(store, focus_items=session.focus_items, notes=session.notes)


@click.group()
@click.version_option(__version__, "--version", prog_name="handoff")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/handoff/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[Path]) -> None:
    """
    handoff - Context aggregation for multi-assistant development.

    \b
    Examples:
        handoff init --root ~/Drive/Context
        handoff start-session --status-file status.txt
        handoff aggregate-context --feature auth --budget 20000
        git log -1 --stat | handoff record-report
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command("init")
@click.option(
    "--root",
    required=True,
    type=click.Path(file_okay=False, path_type=str),
    help="Directory to use as the store root.",
)
@click.pass_context
@handle_errors
def init_command(ctx: click.Context, root: str) -> None:
    """Create the store layout and remember the root in the config file."""
    root_path = Path(root).expanduser()
    try:
        root_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        err_console.print(f"[red]Error:[/red] cannot create {escape(str(root_path))}: {e}")
        sys.exit(1)

    config = Config.load(ctx.obj.get("config_path"))
    store = ArtifactStore(config.resolve_root(str(root_path)))
    store.ensure_layout()
    _recorder(config, store).ensure_conventions()

    config.set_root(str(root_path))
    saved = config.save()
    console.print(f"[green]✓[/green] Initialized store in {escape(str(store.root))}", soft_wrap=True)
    console.print(f"[dim]Root saved to {escape(str(saved))}[/dim]", soft_wrap=True)


@cli.command("start-session")
@root_option
@click.option("--status", "status_text", default=None, help="Status summary to embed.")
@click.option(
    "--status-file",
    type=click.File("r"),
    default=None,
    help="Read the status summary from a file ('-' for stdin).",
)
@click.pass_context
@handle_errors
def start_session_command(
    ctx: click.Context,
    root: Optional[str],
    status_text: Optional[str],
    status_file,
) -> None:
    """Create today's daily brief (or show the existing one)."""
    if status_text is not None and status_file is not None:
        raise click.UsageError("--status and --status-file are mutually exclusive")
    if status_file is not None:
        status_text = status_file.read()

    config, store = _open_store(ctx, root)
    brief = _recorder(config, store).start_session(datetime.now(), status_text)

    console.print(f"[green]✓[/green] Daily brief {brief.id}", soft_wrap=True)
    console.print(f"[blue]Brief location:[/blue] {escape(str(brief.path))}", soft_wrap=True)


@cli.command("aggregate-context")
@root_option
@click.option("--feature", default=None, help="Feature tag used to pick a plan.")
@click.option(
    "--budget",
    type=click.IntRange(min=1),
    default=None,
    help="Budget in characters for the sections (header and instructions not counted).",
)
@click.option(
    "--budget-tokens",
    type=click.IntRange(min=1),
    default=None,
    help="Budget in tokens (4 characters per token).",
)
@click.option(
    "--include",
    "include",
    multiple=True,
    help="Project file name pattern to include, e.g. '*.py' (repeatable).",
)
@click.option(
    "--project-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory searched for --include patterns.",
)
@click.pass_context
@handle_errors
def aggregate_context_command(
    ctx: click.Context,
    root: Optional[str],
    feature: Optional[str],
    budget: Optional[int],
    budget_tokens: Optional[int],
    include: Tuple[str, ...],
    project_dir: Path,
) -> None:
    """Compose the current context into <root>/context-output.md."""
    if budget is not None and budget_tokens is not None:
        raise click.UsageError("--budget and --budget-tokens are mutually exclusive")
    if budget_tokens is not None:
        budget = chars_for_tokens(budget_tokens)

    config, store = _open_store(ctx, root)
    context = config.merged.context
    aggregator = ContextAggregator(
        store,
        policy=config.selection_policy(),
        budget_chars=context.budget_chars,
        report_tail_lines=context.report_tail_lines,
        recorder=_recorder(config, store),
        instructions=context.instructions,
        max_include_bytes=context.max_include_bytes,
    )

    result = aggregator.aggregate(
        datetime.now(),
        feature=feature,
        budget_chars=budget,
        include=list(include) or context.include_patterns,
        project_dir=project_dir,
    )
    path = aggregator.write(result)

    table = Table(title="Context sections", show_lines=False)
    table.add_column("Section")
    table.add_column("Status")
    table.add_column("Chars", justify="right")
    for outcome in result.outcomes:
        style = STATUS_STYLES[outcome.status]
        table.add_row(
            escape(outcome.title),
            f"[{style}]{outcome.status.value}[/{style}]",
            str(outcome.chars),
        )
    console.print(table)

    stats = result.stats
    console.print(f"[green]✓[/green] Context written to {escape(str(path))}", soft_wrap=True)
    console.print(
        f"[blue]Context size:[/blue] {stats['words']} words, {stats['lines']} lines, "
        f"{stats['chars']} chars; sections use {result.sections_chars} of budget "
        f"{result.budget_chars}",
        soft_wrap=True,
    )

    if result.warnings:
        err_console.print(f"[yellow]⚠ {len(result.warnings)} warning(s):[/yellow]")
        for warning in result.warnings:
            err_console.print(f"  - {escape(str(warning))}", soft_wrap=True)


@cli.command("record-report")
@root_option
@click.option(
    "--file",
    "source",
    type=click.File("r"),
    default="-",
    help="Read the report from a file instead of stdin.",
)
@click.pass_context
@handle_errors
def record_report_command(ctx: click.Context, root: Optional[str], source) -> None:
    """Append a new implementation report (body from stdin)."""
    config, store = _open_store(ctx, root)
    body = source.read()
    report = _recorder(config, store).record_report(datetime.now(), body)

    console.print(f"[green]✓[/green] Recorded report {report.id}", soft_wrap=True)
    console.print(f"[blue]Report location:[/blue] {escape(str(report.path))}", soft_wrap=True)


@cli.command("status")
@root_option
@click.pass_context
@handle_errors
def status_command(ctx: click.Context, root: Optional[str]) -> None:
    """Show the latest artifact of every category."""
    _, store = _open_store(ctx, root)

    table = Table(title=f"Store: {escape(str(store.root))}")
    table.add_column("Category")
    table.add_column("Latest")
    table.add_column("Created")
    table.add_column("Count", justify="right")
    for category in Category:
        infos = store.list(category)
        latest = infos[0] if infos else None
        table.add_row(
            category.value,
            escape(latest.id) if latest else "[dim]none[/dim]",
            latest.created_at.strftime("%Y-%m-%d %H:%M") if latest else "",
            str(len(infos)),
        )
    console.print(table)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
