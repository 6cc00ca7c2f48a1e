"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from codship.application.dto import ShipmentOverrides
from codship.domain.exceptions import DomainException
from codship.domain.model.order import Order
from codship.infrastructure.cli.context import CliContext, pass_cli

OPERATOR_ACTOR = "CLI Operator"


def _display_order(order: Order) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order {order.id}  (status={order.status.value})")
    click.echo(f"Customer: {order.customer_name}  {order.customer_phone}")
    click.echo(f"Address:  {order.customer_address}, {order.customer_city}")
    if order.tracking_number:
        click.echo(f"Waybill:  {order.tracking_number}")
    if order.courier_status:
        click.echo(f"Courier:  {order.courier_status}")
    click.echo(f"Created:  {order.created_at.strftime('%Y-%m-%d %H:%M UTC')}")
    click.echo()

    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>14} {'Total':>14}")
    click.echo(f"  {'-'*60}")
    for item in order.items:
        click.echo(
            f"  {item.name or item.product_id:<24} {item.quantity.value:>5} "
            f"{str(item.unit_price):>14} {str(item.line_total):>14}"
        )
    click.echo(f"  {'-'*60}")
    click.echo(f"  {'COD Amount':<30} {str(order.total_amount):>30}")

    if order.logs:
        click.echo()
        click.echo("History:")
        for log in order.logs:
            click.echo(f"  {log.timestamp.strftime('%Y-%m-%d %H:%M')}  [{log.user}] {log.message}")


@click.command("show")
@click.option("--tenant", "tenant_id", required=True, help="Tenant ID.")
@click.option("--id", "order_id", required=True, help="Order ID to display.")
@pass_cli
def order_show(obj: CliContext, tenant_id: str, order_id: str) -> None:
    """Show details of an existing order."""
    try:
        order = obj.services().show_order.handle(tenant_id, order_id, actor=OPERATOR_ACTOR)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(order)


@click.command("status")
@click.option("--tenant", "tenant_id", required=True, help="Tenant ID.")
@click.option("--id", "order_id", required=True, help="Order ID.")
@click.option("--to", "status", required=True, help="Target status, e.g. CONFIRMED.")
@click.option("--actor", default=OPERATOR_ACTOR, show_default=True, help="Name recorded in the log.")
@pass_cli
def order_status(obj: CliContext, tenant_id: str, order_id: str, status: str, actor: str) -> None:
    """Move an order to another status."""
    try:
        order = obj.services().change_status.handle(tenant_id, order_id, status, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order.id} is now {order.status.value}.")


@click.command("ship")
@click.option("--tenant", "tenant_id", required=True, help="Tenant ID.")
@click.option("--id", "order_id", required=True, help="Order ID to hand to the courier.")
@click.option("--waybill", default=None, help="Pre-printed waybill (existing-waybill mode).")
@click.option("--weight", default=None, help="Parcel weight in kg.")
@click.option("--description", default=None, help="Parcel description.")
@pass_cli
def order_ship(
    obj: CliContext,
    tenant_id: str,
    order_id: str,
    waybill: str | None,
    weight: str | None,
    description: str | None,
) -> None:
    """Dispatch an order to the courier."""
    overrides = ShipmentOverrides(
        tracking_number=waybill,
        parcel_weight=weight,
        parcel_description=description,
    )
    try:
        order = obj.services().ship_order.handle(tenant_id, order_id, overrides)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order.id} shipped, waybill {order.tracking_number}.")


@click.command("return")
@click.option("--tenant", "tenant_id", required=True, help="Tenant ID.")
@click.option("--ref", "reference", required=True, help="Order ID or waybill.")
@pass_cli
def order_return(obj: CliContext, tenant_id: str, reference: str) -> None:
    """Receive a returned parcel back into stock."""
    try:
        order = obj.services().process_return.handle(tenant_id, reference)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order.id} return completed, items restocked.")
