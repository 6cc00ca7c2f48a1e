"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from codship.application.change_order_status import ChangeOrderStatusHandler
from codship.application.customer_history import CustomerHistoryHandler
from codship.application.delete_orders import DeleteOrdersHandler
from codship.application.list_orders import ListOrdersHandler
from codship.application.process_return import ProcessReturnHandler
from codship.application.reconcile_webhook import WebhookReconciler
from codship.application.ship_order import ShipOrderHandler
from codship.application.show_order import ShowOrderHandler
from codship.application.tenant_registry import StateMachinePolicy, TenantRegistry
from codship.application.upsert_orders import UpsertOrdersHandler
from codship.domain.service.courier_gateway import CourierGateway
from codship.infrastructure.config import Settings
from codship.infrastructure.courier.dispatch_client import CourierDispatchClient
from codship.infrastructure.persistence.connection_pool import ConnectionPool
from codship.infrastructure.persistence.json_document_store import open_json_store

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Services:
    """Every use-case handler, bound to one registry and one courier."""

    registry: TenantRegistry
    show_order: ShowOrderHandler
    list_orders: ListOrdersHandler
    upsert_orders: UpsertOrdersHandler
    delete_orders: DeleteOrdersHandler
    change_status: ChangeOrderStatusHandler
    ship_order: ShipOrderHandler
    process_return: ProcessReturnHandler
    customer_history: CustomerHistoryHandler
    webhook: WebhookReconciler

    @staticmethod
    def wire(registry: TenantRegistry, courier: CourierGateway) -> Services:
        return Services(
            registry=registry,
            show_order=ShowOrderHandler(registry),
            list_orders=ListOrdersHandler(registry),
            upsert_orders=UpsertOrdersHandler(registry),
            delete_orders=DeleteOrdersHandler(registry),
            change_status=ChangeOrderStatusHandler(registry, courier),
            ship_order=ShipOrderHandler(registry, courier),
            process_return=ProcessReturnHandler(registry),
            customer_history=CustomerHistoryHandler(registry),
            webhook=WebhookReconciler(registry),
        )


def store_pool(config: Settings) -> ConnectionPool:
    return ConnectionPool(open_json_store, max_size=config.max_store_connections)


def tenant_registry(config: Settings, pool: ConnectionPool | None = None) -> TenantRegistry:
    if pool is None:
        pool = store_pool(config)
    policy = StateMachinePolicy(
        allow_oversell=config.allow_oversell,
        return_value_ratio=config.return_value_ratio,
    )
    return TenantRegistry(pool.open(config.central_store), pool, policy)


def courier_client(config: Settings) -> CourierDispatchClient:
    return CourierDispatchClient(
        new_parcel_url=config.courier_new_parcel_url,
        existing_waybill_url=config.courier_existing_waybill_url,
        connect_timeout=config.courier_connect_timeout,
        read_timeout=config.courier_read_timeout,
    )


def build_services(config: Settings | None = None) -> Services:
    config = config or Settings.from_env()
    registry = tenant_registry(config)
    logger.info(
        "Services wired",
        central_store=registry.central.location,
        allow_oversell=config.allow_oversell,
    )
    return Services.wire(registry, courier_client(config))
