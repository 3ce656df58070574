"""
Command-line interface for prompt-history.
"""

import json
import shlex
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .config import (
    DEFAULT_DATA_DIR, DEFAULT_FETCH_COMMAND, DEFAULT_FROM_VERSION,
    DEFAULT_PREPARE_COMMANDS, DEFAULT_UPDATE_INTERVAL_MS, UpdaterConfig,
)
from .differ import diff_versions, format_side_by_side_diff, format_unified_diff
from .errors import PromptNotFound, SelectionError, UpdateError
from .logs import configure_logging
from .repository import prompt_path, read_prompt, scan_versions
from .runner import UpdateRunner
from .selection import VersionSelection
from .service import UpdateService, install_signal_handlers
from .state import Failure, load_catalog, load_error_state

console = Console()
err_console = Console(stderr=True)

SIDE_BY_SIDE_MIN_WIDTH = 100


def fetch_options(f):
    """Options shared by commands that run update cycles."""
    f = click.option("--skip-prepare", envvar="SKIP_PREPARE", is_flag=True,
                     help="Don't install the CLI or clean the npm cache before fetching")(f)
    f = click.option("--from-version", envvar="FROM_VERSION", default=DEFAULT_FROM_VERSION,
                     show_default=True, help="Oldest version to fetch")(f)
    f = click.option("--fetch-command", envvar="FETCH_COMMAND", default=DEFAULT_FETCH_COMMAND,
                     show_default=True, help="Command that writes prompts-<version>.md files")(f)
    return f


def build_config(data_dir: Path, fetch_command: str, from_version: str, skip_prepare: bool,
                 interval: int = DEFAULT_UPDATE_INTERVAL_MS) -> UpdaterConfig:
    try:
        return UpdaterConfig(
            data_dir=data_dir,
            interval_ms=interval,
            fetch_command=tuple(shlex.split(fetch_command)),
            from_version=from_version,
            prepare_commands=() if skip_prepare else DEFAULT_PREPARE_COMMANDS,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def start_logging(data_dir: Path, verbose: bool) -> None:
    try:
        configure_logging(data_dir, verbose=verbose, console=err_console)
    except OSError as exc:
        raise click.ClickException(f"Cannot open log file in {data_dir}: {exc}")


def available_versions(data_dir: Path) -> list[str]:
    """Versions from the published catalog, or from a directory scan if none is published."""
    catalog = read_catalog(data_dir)
    if catalog is not None:
        return catalog.versions
    try:
        return scan_versions(data_dir)
    except UpdateError as exc:
        raise click.ClickException(exc.message)


def read_catalog(data_dir: Path):
    try:
        return load_catalog(data_dir)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot read version catalog: {exc}")


def read_error_state(data_dir: Path):
    try:
        return load_error_state(data_dir)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot read error state: {exc}")


def print_error_state(error) -> None:
    err_console.print(Panel(
        f"[red]{escape(error.error)}[/red]\n\n[dim]at {error.timestamp}[/dim]",
        title="Last update failed",
        border_style="red",
    ))


@click.group()
@click.option("--data-dir", envvar="DATA_DIR", default=DEFAULT_DATA_DIR, show_default=True,
              type=click.Path(file_okay=False, path_type=Path), help="Directory holding prompt files and state")
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages")
@click.pass_context
def main(ctx: click.Context, data_dir: Path, verbose: bool):
    """
    Track how a CLI tool's system prompts change between releases.

    A background updater fetches one prompts file per release into the
    data directory and publishes the version list; the other commands
    read what it published.

    Examples:

        prompt-history serve --interval 3600000

        prompt-history update --skip-prepare

        prompt-history versions

        prompt-history diff 1.0.0 1.0.67
    """
    ctx.ensure_object(dict)
    ctx.obj['data_dir'] = data_dir
    ctx.obj['verbose'] = verbose


@main.command()
@click.option("--interval", envvar="UPDATE_INTERVAL", default=DEFAULT_UPDATE_INTERVAL_MS,
              type=click.IntRange(min=1), show_default=True, help="Milliseconds between updates")
@fetch_options
@click.pass_obj
def serve(obj: dict, interval: int, fetch_command: str, from_version: str, skip_prepare: bool):
    """
    Run the update service until SIGTERM or SIGINT.

    Updates once immediately, then every interval.
    """
    config = build_config(obj['data_dir'], fetch_command, from_version, skip_prepare, interval)
    start_logging(config.data_dir, obj['verbose'])

    service = UpdateService(UpdateRunner(config), config.interval_seconds)
    install_signal_handlers(service)
    service.start()

    # Short waits let signal handlers run promptly.
    while not service.wait(timeout=1.0):
        pass


@main.command()
@fetch_options
@click.pass_obj
def update(obj: dict, fetch_command: str, from_version: str, skip_prepare: bool):
    """
    Run a single update cycle.

    Exits with status 1 if the update failed.
    """
    config = build_config(obj['data_dir'], fetch_command, from_version, skip_prepare)
    start_logging(config.data_dir, obj['verbose'])

    outcome = UpdateRunner(config).run_cycle()
    if isinstance(outcome, Failure):
        sys.exit(1)


@main.command()
@click.option("--json-output", is_flag=True, help="Output as JSON")
@click.pass_obj
def versions(obj: dict, json_output: bool):
    """
    List the published versions.

    Shows the last update error, if any, above the (possibly stale) list.
    """
    data_dir = obj['data_dir']
    catalog = read_catalog(data_dir)
    error = read_error_state(data_dir)

    if json_output:
        output = catalog.to_dict() if catalog else {'versions': [], 'lastUpdated': None}
        output['error'] = error.to_dict() if error else None
        console.print_json(json.dumps(output, indent=2))
        return

    if error:
        print_error_state(error)

    if catalog is None:
        console.print("[dim]No versions published yet[/dim]")
        return

    table = Table(title=f"Versions (updated {catalog.last_updated})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Version", style="cyan")
    table.add_column("Prompts file")

    for index, version in enumerate(catalog.versions, start=1):
        path = prompt_path(data_dir, version)
        table.add_row(str(index), version, path.name if path.exists() else "[red]missing[/red]")

    console.print(table)
    console.print(f"\n[dim]Total: {len(catalog.versions)} versions[/dim]")


@main.command()
@click.argument("from_version")
@click.argument("to_version")
@click.option("--format", "-f", "output_format",
              type=click.Choice(["auto", "unified", "side-by-side", "json"]),
              default="auto", help="Output format; auto picks side-by-side on wide terminals")
@click.option("--context", "-c", default=3, type=int, help="Context lines for unified diff")
@click.pass_obj
def diff(obj: dict, from_version: str, to_version: str, output_format: str, context: int):
    """
    Show how the prompts changed between two versions.

    FROM_VERSION must not be newer than TO_VERSION.
    """
    data_dir = obj['data_dir']

    error = read_error_state(data_dir)
    if error:
        print_error_state(error)
        sys.exit(1)

    try:
        selection = VersionSelection(available_versions(data_dir))
        selection.select_to(to_version)
        if not selection.select_from(from_version):
            raise click.UsageError(
                f"'from' version {from_version} is newer than 'to' version {to_version}"
            )
        old_text = read_prompt(data_dir, selection.from_version)
        new_text = read_prompt(data_dir, selection.to_version)
    except (SelectionError, PromptNotFound) as exc:
        raise click.ClickException(str(exc))

    if output_format == "auto":
        output_format = "side-by-side" if console.width >= SIDE_BY_SIDE_MIN_WIDTH else "unified"

    if output_format == "unified":
        text = format_unified_diff(old_text, new_text, from_version, to_version, context)
        if text:
            console.print(Syntax(text, "diff", theme="monokai"))
        else:
            console.print("[dim]No differences[/dim]")

    elif output_format == "side-by-side":
        lines = format_side_by_side_diff(old_text, new_text, width=console.width)
        table = Table(show_header=True, header_style="bold")
        table.add_column("", width=1)
        table.add_column(from_version, style="red")
        table.add_column(to_version, style="green")
        for marker, old_line, new_line in lines:
            if marker == ' ':
                table.add_row(marker, escape(old_line), escape(new_line))
            elif marker == '<':
                table.add_row("[red]<[/red]", f"[red]{escape(old_line)}[/red]", "")
            elif marker == '>':
                table.add_row("[green]>[/green]", "", f"[green]{escape(new_line)}[/green]")
            else:
                table.add_row("[yellow]|[/yellow]", f"[red]{escape(old_line)}[/red]", f"[green]{escape(new_line)}[/green]")
        console.print(table)

    else:  # json
        result = diff_versions(old_text, new_text, from_version, to_version)
        output = dict(result.summary, has_changes=result.has_changes)
        console.print_json(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
