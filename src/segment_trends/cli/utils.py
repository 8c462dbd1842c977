"""CLI utility functions and error handling.

This module provides shared utilities for the CLI:
- ExitCode enum for standardized exit codes
- handle_errors decorator for exception-to-exit-code mapping
- Console instances for stdout/stderr separation
- Lazy workspace/config/session initialization helpers
- run_async for driving the async Workspace from sync commands
- status_spinner context manager for long-running operations
"""

from __future__ import annotations

import asyncio
import functools
import os
import sys
from collections.abc import Awaitable, Callable, Generator
from contextlib import contextmanager
from enum import IntEnum
from typing import TYPE_CHECKING, Any, TypeVar

import typer
from rich.console import Console

from segment_trends.exceptions import (
    AuthenticationError,
    ConfigError,
    InvalidPeriodError,
    ProfileExistsError,
    ProfileNotFoundError,
    QueryError,
    RateLimitError,
    SegmentTrendsError,
    ServerError,
)

if TYPE_CHECKING:
    from segment_trends._internal.config import ConfigManager
    from segment_trends._internal.session import SessionStore
    from segment_trends.workspace import Workspace

# Data output goes to stdout; progress/errors go to stderr
console = Console()
err_console = Console(stderr=True, no_color=bool(os.environ.get("NO_COLOR")))


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands.

    - 0: Success
    - 1-5: Application-specific errors
    - 130: Interrupted by SIGINT (Ctrl+C)
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    INVALID_ARGS = 3
    NOT_FOUND = 4
    RATE_LIMIT = 5
    INTERRUPTED = 130


F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


def handle_errors(func: F) -> F:
    """Decorator to convert library exceptions to CLI exit codes.

    Maps SegmentTrendsError subclasses to exit codes and prints a
    formatted message to stderr.

    Usage:
        @handle_errors
        def my_command(ctx: typer.Context):
            workspace = get_workspace(ctx)
            result = run_async(workspace, workspace.rank("city"))
            output_result(ctx, result)
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except AuthenticationError as e:
            err_console.print(f"[red]Authentication error:[/red] {e.message}")
            err_console.print(
                "[yellow]Hint:[/yellow] Check the profile's token "
                "with 'segtrend config show'."
            )
            raise typer.Exit(ExitCode.AUTH_ERROR) from None
        except ProfileNotFoundError as e:
            err_console.print(f"[red]Profile not found:[/red] {e.profile_name}")
            if e.available_profiles:
                err_console.print(
                    f"Available profiles: {', '.join(e.available_profiles)}"
                )
            raise typer.Exit(ExitCode.NOT_FOUND) from None
        except ProfileExistsError as e:
            err_console.print(f"[red]Profile exists:[/red] {e.profile_name}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except RateLimitError as e:
            err_console.print(f"[yellow]Rate limited:[/yellow] {e.message}")
            if e.retry_after:
                err_console.print(
                    f"[cyan]Wait {e.retry_after} seconds before retrying.[/cyan]"
                )
            if e.request_url:
                endpoint = e.request_url.split("/")[-1].split("?")[0]
                err_console.print(f"[dim]Endpoint: {endpoint}[/dim]")
            raise typer.Exit(ExitCode.RATE_LIMIT) from None
        except QueryError as e:
            err_console.print(f"[red]Query error:[/red] {e.message}")
            if e.request_params:
                for key, value in e.request_params.items():
                    err_console.print(f"  [dim]{key}:[/dim] {value}")
            if e.status_code == 404:
                raise typer.Exit(ExitCode.NOT_FOUND) from None
            raise typer.Exit(ExitCode.INVALID_ARGS) from None
        except ServerError as e:
            err_console.print(f"[red]Server error:[/red] {e.message}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except InvalidPeriodError as e:
            err_console.print(f"[red]Invalid period:[/red] {e.value} ({e.reason})")
            raise typer.Exit(ExitCode.INVALID_ARGS) from None
        except ConfigError as e:
            err_console.print(f"[red]Configuration error:[/red] {e.message}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except SegmentTrendsError as e:
            err_console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from None
        except ValueError as e:
            # Validation errors: unknown metric, bad top-N, bad date
            err_console.print(f"[red]Invalid argument:[/red] {e}")
            raise typer.Exit(ExitCode.INVALID_ARGS) from None

    return wrapper  # type: ignore[return-value]


def get_workspace(ctx: typer.Context) -> Workspace:
    """Get or create the workspace for this invocation.

    Respects the --profile global option. The instance is cached in the
    context for reuse.

    Raises:
        ProfileNotFoundError: If the profile doesn't exist.
        ConfigError: If no credentials can be resolved.
    """
    from segment_trends.workspace import Workspace

    if ctx.obj.get("workspace") is None:
        ctx.obj["workspace"] = Workspace(profile=ctx.obj.get("profile"))
    workspace: Workspace = ctx.obj["workspace"]
    return workspace


def get_config(ctx: typer.Context) -> ConfigManager:
    """Get or create the ConfigManager for this invocation."""
    from segment_trends._internal.config import ConfigManager

    if ctx.obj.get("config") is None:
        ctx.obj["config"] = ConfigManager()
    config: ConfigManager = ctx.obj["config"]
    return config


def get_session(ctx: typer.Context) -> SessionStore:
    """Get or create the loaded SessionStore for this invocation."""
    from segment_trends._internal.session import SessionStore

    if ctx.obj.get("session") is None:
        store = SessionStore()
        store.load()
        ctx.obj["session"] = store
    session: SessionStore = ctx.obj["session"]
    return session


def run_async(workspace: Workspace, operation: Awaitable[T]) -> T:
    """Run one workspace coroutine to completion, then close its client.

    Each CLI command is a single event loop; the HTTP client is bound to
    it and must be closed before the loop ends.
    """

    async def runner() -> T:
        try:
            return await operation
        finally:
            await workspace.aclose()

    return asyncio.run(runner())


def output_result(
    ctx: typer.Context,
    data: dict[str, Any] | list[Any],
    columns: list[str] | None = None,
    *,
    format: str | None = None,
) -> None:
    """Output data in the requested format.

    Args:
        ctx: Typer context with global options in obj dict.
        data: Data to output (dict or list).
        columns: Column names for table/csv format (auto-detected if None).
        format: Output format. If None, falls back to ctx.obj["format"] or "json".
    """
    from segment_trends.cli.formatters import (
        format_csv,
        format_json,
        format_jsonl,
        format_plain,
        format_table,
    )

    fmt = format if format is not None else ctx.obj.get("format", "json")

    if fmt == "jsonl":
        console.print(format_jsonl(data), highlight=False)
    elif fmt == "table":
        console.print(format_table(data, columns))
    elif fmt == "csv":
        console.print(format_csv(data, columns), highlight=False, end="")
    elif fmt == "plain":
        console.print(format_plain(data), highlight=False)
    else:
        console.print(format_json(data), highlight=False)


@contextmanager
def status_spinner(ctx: typer.Context, message: str) -> Generator[None, None, None]:
    """Show a spinner on stderr while the wrapped block runs.

    Suppressed by --quiet and in non-TTY environments (pipes, CI).

    Example:
        with status_spinner(ctx, "Ranking cities..."):
            values = run_async(workspace, workspace.rank("city"))
    """
    quiet = ctx.obj.get("quiet", False) if ctx.obj else False

    if quiet or not sys.stderr.isatty():
        yield
    else:
        with err_console.status(message):
            yield
