"""CLI commands for courier webhooks."""

from __future__ import annotations

import click

from codship.domain.exceptions import DomainException
from codship.infrastructure.cli.context import CliContext, pass_cli


@click.command("replay")
@click.argument("payload", type=click.File("rb"))
@click.option("--content-type", default=None, help="Content-Type the courier sent.")
@pass_cli
def webhook_replay(obj: CliContext, payload, content_type: str | None) -> None:
    """Re-run a captured webhook body (use '-' for stdin)."""
    body = payload.read()
    try:
        result = obj.services().webhook.reconcile(body, content_type)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Waybill:  {result.waybill}")
    click.echo(f"Status:   {result.raw_status or '-'} -> {result.mapped_status.value}")
    click.echo(f"Outcome:  {result.outcome.value}")
    if result.found:
        click.echo(f"Order:    {result.order_id} (tenant {result.tenant_id})")
