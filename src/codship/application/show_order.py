"""Application service: Show Order use case (query).

Opening a fresh lead marks it as seen: a PENDING order that has not been
handed to the courier moves to OPEN_LEAD on first read.
"""

from __future__ import annotations

from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import OrderNotFound
from codship.domain.model.order import Order, OrderStatus

SYSTEM_ACTOR = "System"


class ShowOrderHandler:

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    def handle(self, tenant_id: str, order_id: str, actor: str = SYSTEM_ACTOR) -> Order:
        ctx = self._registry.context(tenant_id)
        order = ctx.orders().get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        if order.status is OrderStatus.PENDING and not order.tracking_number:
            ctx.state_machine().transition(
                order, OrderStatus.OPEN_LEAD, actor=actor, message="Lead opened"
            )
        return order
