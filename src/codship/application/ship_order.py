"""Application service: Ship Order use case.

The operator may correct contact and parcel details (or supply the waybill
of a pre-printed label) in the same step that hands the parcel to the
courier.  Corrections are saved together with the SHIPPED status, so a
rejected handshake leaves the stored order exactly as it was.

A SHIPPED status reached through this use case always comes from a
courier handshake: a fresh PENDING lead is opened first, and an order
whose path to SHIPPED would skip the courier is refused.
"""

from __future__ import annotations

from codship.application.dto import ShipmentOverrides
from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import InvalidTransition, OrderNotFound
from codship.domain.model.order import Order, OrderStatus
from codship.domain.service.courier_gateway import CourierGateway
from codship.domain.service.order_state_machine import SideEffect

DISPATCH_ACTOR = "Dispatch Client"


class ShipOrderHandler:

    def __init__(self, registry: TenantRegistry, courier: CourierGateway) -> None:
        self._registry = registry
        self._courier = courier

    def handle(
        self,
        tenant_id: str,
        order_id: str,
        overrides: ShipmentOverrides | None = None,
        actor: str = DISPATCH_ACTOR,
    ) -> Order:
        ctx = self._registry.context(tenant_id)
        order = ctx.orders().get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        if order.status is OrderStatus.SHIPPED:
            return order

        machine = ctx.state_machine(self._courier)
        if order.status is OrderStatus.PENDING and not order.tracking_number:
            machine.transition(order, OrderStatus.OPEN_LEAD, actor=actor, message="Lead opened")

        edge = machine.edge_for(order, OrderStatus.SHIPPED)
        if SideEffect.DISPATCH not in edge.effects:
            raise InvalidTransition(
                order.status.value,
                OrderStatus.SHIPPED.value,
                "order is already with the courier",
            )

        for name, value in (overrides or ShipmentOverrides()).field_values().items():
            if name == "tracking_number":
                value = value.strip() or None
            setattr(order, name, value)

        return machine.transition(order, OrderStatus.SHIPPED, actor)
