from __future__ import annotations

from dataclasses import replace

import click
import uvicorn

from codship.domain.exceptions import DomainException
from codship.infrastructure.api.app import create_app
from codship.infrastructure.cli.context import CliContext
from codship.infrastructure.cli.order_commands import (
    order_return,
    order_ship,
    order_show,
    order_status,
)
from codship.infrastructure.cli.tenant_commands import tenant_list
from codship.infrastructure.cli.webhook_commands import webhook_replay
from codship.infrastructure.config import Settings
from codship.infrastructure.logging_setup import configure_logging


@click.group()
@click.option(
    "--store",
    "central_store",
    default=None,
    help="Central store location (overrides CODSHIP_CENTRAL_STORE).",
)
@click.pass_context
def cli(ctx: click.Context, central_store: str | None) -> None:
    """codship: COD order dispatch and courier reconciliation"""
    try:
        settings = Settings.from_env()
    except DomainException as exc:
        raise click.ClickException(str(exc))
    if central_store:
        settings = replace(settings, central_store=central_store)
    configure_logging(settings.log_level, settings.log_json)
    ctx.obj = CliContext(settings)


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.pass_obj
def serve(obj: CliContext, host: str, port: int) -> None:
    """Run the HTTP API with uvicorn."""
    try:
        app = create_app(obj.services())
    except DomainException as exc:
        raise click.ClickException(str(exc))
    uvicorn.run(app, host=host, port=port, log_config=None)


@cli.group()
def order() -> None:
    """Inspect and move orders."""


@cli.group()
def tenant() -> None:
    """Inspect tenants."""


@cli.group()
def webhook() -> None:
    """Courier webhook tools."""


# Register subcommands
order.add_command(order_show)
order.add_command(order_status)
order.add_command(order_ship)
order.add_command(order_return)
tenant.add_command(tenant_list)
webhook.add_command(webhook_replay)
