"""Backend profile and settings commands.

- list: List configured profiles
- add: Add a profile
- remove: Remove a profile
- default: Set the default profile
- show: Display a profile (token redacted)
- settings: Show engine settings
- set: Persist one engine setting
"""

from __future__ import annotations

import os
import sys
from typing import Annotated

import typer

from segment_trends._internal.config import ConfigManager, ProfileInfo
from segment_trends.cli.options import FormatOption
from segment_trends.cli.utils import (
    ExitCode,
    err_console,
    get_config,
    handle_errors,
    output_result,
)

config_app = typer.Typer(
    name="config",
    help="Manage backend profiles.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


def _profile_dict(profile: ProfileInfo) -> dict[str, object]:
    return {
        "name": profile.name,
        "base_url": profile.base_url,
        "has_token": profile.has_token,
        "is_default": profile.is_default,
    }


@config_app.command("list")
@handle_errors
def list_profiles(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """List all configured profiles.

    Examples:

        segtrend config list
        segtrend config list --format table
    """
    config = get_config(ctx)
    output_result(
        ctx,
        [_profile_dict(p) for p in config.list_profiles()],
        columns=["name", "base_url", "has_token", "is_default"],
        format=format,
    )


@config_app.command("add")
@handle_errors
def add_profile(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile name.")],
    base_url: Annotated[
        str,
        typer.Option(
            "--url", "-u", help="Backend origin, e.g. https://dash.example.com."
        ),
    ],
    default: Annotated[
        bool,
        typer.Option("--default", "-d", help="Set as default profile."),
    ] = False,
    token_stdin: Annotated[
        bool,
        typer.Option("--token-stdin", help="Read the dashboard token from stdin."),
    ] = False,
    no_token: Annotated[
        bool,
        typer.Option("--no-token", help="Store the profile without a token."),
    ] = False,
    format: FormatOption = "json",
) -> None:
    """Add a backend profile.

    The token can be provided via:
    - Interactive prompt (default, hidden input)
    - SEGTREND_TOKEN environment variable
    - --token-stdin to read it from stdin

    Examples:

        segtrend config add prod --url https://dash.example.com
        echo "$TOKEN" | segtrend config add ci -u https://dash.example.com --token-stdin
        segtrend config add local --url http://localhost:3000 --no-token --default
    """
    token: str | None = None
    if no_token:
        token = None
    elif token_stdin:
        if sys.stdin.isatty():
            err_console.print("[red]Error:[/red] --token-stdin requires piped input")
            raise typer.Exit(ExitCode.INVALID_ARGS)
        token = sys.stdin.read().strip()
        if not token:
            err_console.print("[red]Error:[/red] No token provided via stdin")
            raise typer.Exit(ExitCode.INVALID_ARGS)
    elif os.environ.get("SEGTREND_TOKEN"):
        token = os.environ["SEGTREND_TOKEN"]
    else:
        token = typer.prompt("Dashboard token", hide_input=True)

    config = get_config(ctx)
    config.add_profile(name=name, base_url=base_url, token=token)
    if default:
        config.set_default(name)

    output_result(ctx, {"added": name, "is_default": default}, format=format)


@config_app.command("remove")
@handle_errors
def remove_profile(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile name to remove.")],
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt."),
    ] = False,
    format: FormatOption = "json",
) -> None:
    """Remove a profile.

    Examples:

        segtrend config remove staging
        segtrend config remove old --force
    """
    if not force and not typer.confirm(f"Remove profile '{name}'?"):
        err_console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    get_config(ctx).remove_profile(name)
    output_result(ctx, {"removed": name}, format=format)


@config_app.command("default")
@handle_errors
def set_default_profile(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Profile to use by default.")],
    format: FormatOption = "json",
) -> None:
    """Set the default profile.

    Examples:

        segtrend config default prod
    """
    get_config(ctx).set_default(name)
    output_result(ctx, {"default": name}, format=format)


def _find_default_profile(config: ConfigManager) -> ProfileInfo | None:
    return next((p for p in config.list_profiles() if p.is_default), None)


@config_app.command("show")
@handle_errors
def show_profile(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Argument(help="Profile name (default if omitted)."),
    ] = None,
    format: FormatOption = "json",
) -> None:
    """Show a profile. The token is never printed.

    Examples:

        segtrend config show
        segtrend config show staging --format table
    """
    config = get_config(ctx)
    if name is None:
        profile = _find_default_profile(config)
        if profile is None:
            err_console.print("[red]Error:[/red] No default profile configured.")
            raise typer.Exit(ExitCode.NOT_FOUND)
    else:
        profile = config.get_profile(name)

    data = _profile_dict(profile)
    data["token"] = "********" if profile.has_token else None
    output_result(ctx, data, format=format)


@config_app.command("settings")
@handle_errors
def show_settings(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """Show engine settings with defaults applied.

    Examples:

        segtrend config settings
    """
    settings = get_config(ctx).resolve_settings()
    output_result(ctx, settings.model_dump(), format=format)


@config_app.command("set")
@handle_errors
def set_setting(
    ctx: typer.Context,
    key: Annotated[
        str,
        typer.Argument(
            help="Setting: timeout, max_retries, max_concurrent, default_top_n."
        ),
    ],
    value: Annotated[str, typer.Argument(help="New value.")],
    format: FormatOption = "json",
) -> None:
    """Persist one engine setting.

    Examples:

        segtrend config set max_concurrent 4
        segtrend config set timeout 60
    """
    settings = get_config(ctx).set_setting(key, value)
    output_result(ctx, settings.model_dump(), format=format)
