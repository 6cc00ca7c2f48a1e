"""Application service: Process Return use case.

A returned parcel is scanned at the warehouse by order id or waybill; its
items go back on the shelf as return batches.
"""

from __future__ import annotations

from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import OrderNotFound, ValidationError
from codship.domain.model.order import Order, OrderStatus

RETURNS_ACTOR = "Returns Desk"


class ProcessReturnHandler:

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    def handle(self, tenant_id: str, tracking_or_id: str, actor: str = RETURNS_ACTOR) -> Order:
        reference = (tracking_or_id or "").strip()
        if not reference:
            raise ValidationError("An order id or tracking number is required")

        ctx = self._registry.context(tenant_id)
        orders = ctx.orders()
        order = orders.get_by_id(reference) or orders.find_by_tracking_number(reference)
        if order is None:
            raise OrderNotFound(reference)

        return ctx.state_machine().transition(order, OrderStatus.RETURN_COMPLETED, actor)
