"""CLI entry point for segment_trends.

Defines the `segtrend` global options and registers command groups.

Usage:
    segtrend [OPTIONS] COMMAND [ARGS]...

Examples:
    segtrend --help
    segtrend config list
    segtrend --profile staging trend rank city --from 2025-01-01 --to 2025-01-07
    segtrend trend grid --line city --column vehicle_category --metric conversion
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Annotated

import typer

import segment_trends
from segment_trends.cli.utils import ExitCode, err_console

app = typer.Typer(
    name="segtrend",
    help="Segment trends CLI - rank, segment, and compare ride-hailing metrics.",
    epilog="""[dim]Views:[/dim]
  [cyan]Trends:[/cyan]  segtrend trend rank, segtrend trend grid
  [cyan]Periods:[/cyan] segtrend trend compare, segtrend trend live

[dim]Setup:[/dim] config add → session switch → trend grid""",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"segtrend version {segment_trends.__version__}")
        raise typer.Exit()


def _handle_interrupt(_signum: int, _frame: object) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    err_console.print("\n[yellow]Interrupted[/yellow]")
    sys.exit(ExitCode.INTERRUPTED)


signal.signal(signal.SIGINT, _handle_interrupt)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@app.callback()
def main(
    ctx: typer.Context,
    profile: Annotated[
        str | None,
        typer.Option(
            "--profile",
            "-p",
            help="Backend profile to use (overrides default).",
            envvar="SEGTREND_PROFILE",
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress progress output.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging on stderr.",
        ),
    ] = False,
    _version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Segment trends CLI - rank, segment, and compare ride-hailing metrics.

    Breaks metrics down by up to three dimensions at once and plots
    rates from summed counters, never averaged percentages.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["quiet"] = quiet
    ctx.obj["verbose"] = verbose
    ctx.obj["workspace"] = None
    ctx.obj["config"] = None
    ctx.obj["session"] = None


# Imported here to avoid circular imports
def _register_commands() -> None:
    """Register all command groups with the main app."""
    from segment_trends.cli.commands.config import config_app
    from segment_trends.cli.commands.session import session_app
    from segment_trends.cli.commands.trend import trend_app

    app.add_typer(config_app, name="config", help="Manage backend profiles.")
    app.add_typer(session_app, name="session", help="Manage merchant/city scope.")
    app.add_typer(trend_app, name="trend", help="Rank, segment and compare metrics.")


_register_commands()


if __name__ == "__main__":
    app()
