"""Session scope commands.

- show: Display the current merchant/city scope
- switch: Change the scope
- clear: Forget the scope (logout)
"""

from __future__ import annotations

from typing import Annotated

import typer

from segment_trends.cli.options import FormatOption
from segment_trends.cli.utils import get_session, handle_errors, output_result

session_app = typer.Typer(
    name="session",
    help="Manage merchant/city scope.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@session_app.command("show")
@handle_errors
def show_session(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """Show the current session scope.

    Non-admin sessions restrict every query to their merchant and city
    unless a command sets those filters explicitly.

    Examples:

        segtrend session show
    """
    store = get_session(ctx)
    context = store.current
    data = context.to_dict() if context is not None else {}
    output_result(ctx, {"path": str(store.path), **data}, format=format)


@session_app.command("switch")
@handle_errors
def switch_session(
    ctx: typer.Context,
    merchant: Annotated[
        str | None,
        typer.Option("--merchant", "-m", help="Merchant id."),
    ] = None,
    merchant_short_id: Annotated[
        str | None,
        typer.Option("--merchant-short-id", help="Merchant short id."),
    ] = None,
    city: Annotated[
        str | None,
        typer.Option("--city", "-c", help="City name."),
    ] = None,
    city_id: Annotated[
        str | None,
        typer.Option("--city-id", help="City id."),
    ] = None,
    admin: Annotated[
        bool | None,
        typer.Option("--admin/--no-admin", help="Lift the merchant/city restriction."),
    ] = None,
    format: FormatOption = "json",
) -> None:
    """Switch merchant and/or city. Options not given keep their value.

    Examples:

        segtrend session switch --merchant m-1 --city Bangalore
        segtrend session switch --admin
    """
    context = get_session(ctx).switch(
        merchant_id=merchant,
        merchant_short_id=merchant_short_id,
        city_id=city_id,
        city_name=city,
        is_admin=admin,
    )
    output_result(ctx, context.to_dict(), format=format)


@session_app.command("clear")
@handle_errors
def clear_session(
    ctx: typer.Context,
    format: FormatOption = "json",
) -> None:
    """Forget the session scope.

    Examples:

        segtrend session clear
    """
    get_session(ctx).clear()
    output_result(ctx, {"cleared": True}, format=format)
