"""CLI commands for tenants."""

from __future__ import annotations

import click

from codship.domain.exceptions import DomainException
from codship.infrastructure.cli.context import CliContext, pass_cli


@click.command("list")
@click.option("--all", "show_all", is_flag=True, default=False, help="Include inactive tenants.")
@pass_cli
def tenant_list(obj: CliContext, show_all: bool) -> None:
    """List tenants and where their data lives."""
    try:
        registry = obj.services().registry
        tenants = (
            registry.central.tenants().list_all()
            if show_all
            else registry.list_active_tenants()
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo(f"{'ID':<16} {'Name':<24} {'Active':<7} {'Courier':<17} Store")
    click.echo("-" * 80)
    for t in tenants:
        store = t.store_uri if t.has_own_store else "(central)"
        click.echo(
            f"{t.id:<16} {t.name:<24} {'yes' if t.is_active else 'no':<7} "
            f"{t.courier_settings.mode.value:<17} {store}"
        )
