"""Application service: Change Order Status use case.

Operator-driven moves through the lead pipeline (confirm, hold, no answer,
reject) and manual courier corrections.  Dispatch has its own handler
because it needs the courier gateway.
"""

from __future__ import annotations

from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import OrderNotFound, ValidationError
from codship.domain.model.order import Order, OrderStatus
from codship.domain.service.courier_gateway import CourierGateway


class ChangeOrderStatusHandler:

    def __init__(
        self,
        registry: TenantRegistry,
        courier: CourierGateway | None = None,
    ) -> None:
        self._registry = registry
        self._courier = courier

    def handle(
        self,
        tenant_id: str,
        order_id: str,
        status: OrderStatus | str,
        actor: str,
    ) -> Order:
        target = _parse_status(status)
        if not actor or not actor.strip():
            raise ValidationError("Actor is required")

        ctx = self._registry.context(tenant_id)
        order = ctx.orders().get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return ctx.state_machine(self._courier).transition(order, target, actor.strip())


def _parse_status(status: OrderStatus | str) -> OrderStatus:
    if isinstance(status, OrderStatus):
        return status
    try:
        return OrderStatus(str(status).strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unknown order status: {status!r}") from exc
