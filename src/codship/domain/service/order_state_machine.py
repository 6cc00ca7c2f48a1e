"""Domain service: Order State Machine.

The authoritative table of legal order transitions.  Every edge declares
the side effects it triggers, so "has stock already been deducted?" is
answered by which edge is taken rather than by comparing statuses ad hoc:
lead states reach CONFIRMED/SHIPPED through deducting edges, while
CONFIRMED -> SHIPPED does not deduct again.

Effects run in a fixed order: DISPATCH, DEDUCT_STOCK, RESTOCK, then the
timestamp stamps.  The order is only mutated and saved after every effect
succeeded, so a courier rejection leaves the stored order and stock
untouched.  In strict mode stock is checked before the courier is called.
A deduction that fails after a successful handshake is logged with the
waybill before it propagates.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable

import structlog

from codship.domain.exceptions import (
    DomainException,
    InsufficientStock,
    InvalidTransition,
    ProductNotFound,
    ValidationError,
)
from codship.domain.model.order import Order, OrderLog, OrderStatus, utcnow
from codship.domain.model.tenant import CourierSettings
from codship.domain.repository.order_repository import OrderRepository
from codship.domain.service.courier_gateway import CourierGateway, DispatchResult
from codship.domain.service.inventory_ledger import InventoryLedger

logger = structlog.get_logger(__name__)

DEFAULT_RETURN_VALUE_RATIO = Decimal("0.80")


class SideEffect(Enum):
    DISPATCH = "DISPATCH"
    DEDUCT_STOCK = "DEDUCT_STOCK"
    RESTOCK = "RESTOCK"
    STAMP_CONFIRMED = "STAMP_CONFIRMED"
    STAMP_DELIVERED = "STAMP_DELIVERED"
    STAMP_RETURN_COMPLETED = "STAMP_RETURN_COMPLETED"


@dataclass(frozen=True)
class Edge:
    """One legal transition.

    ``requires_tracking``: True means the order must already carry a
    tracking number, False means it must not, None means either.
    """

    source: OrderStatus
    target: OrderStatus
    effects: tuple[SideEffect, ...] = ()
    requires_tracking: bool | None = None


S = OrderStatus

LEAD_STATES = (S.OPEN_LEAD, S.NO_ANSWER, S.HOLD)
IN_TRANSIT_STATES = (
    S.SHIPPED,
    S.TRANSFER,
    S.DELIVERY,
    S.RESIDUAL,
    S.REARRANGE,
    S.RETURNED,
    S.RETURN_TRANSFER,
    S.RETURN_AS_ON_SYSTEM,
    S.RETURN_HANDOVER,
)
COURIER_REPORTED_STATES = IN_TRANSIT_STATES + (S.DELIVERED, S.PENDING)
TERMINAL_STATES = (S.DELIVERED, S.RETURN_COMPLETED, S.REJECTED)


def _build_edges() -> dict[tuple[OrderStatus, OrderStatus], Edge]:
    edges = [Edge(S.PENDING, S.OPEN_LEAD, requires_tracking=False)]

    for source in LEAD_STATES:
        for target in (S.OPEN_LEAD, S.NO_ANSWER, S.REJECTED, S.HOLD):
            if target is not source:
                edges.append(Edge(source, target))
        edges.append(
            Edge(source, S.CONFIRMED, (SideEffect.DEDUCT_STOCK, SideEffect.STAMP_CONFIRMED))
        )
        edges.append(Edge(source, S.SHIPPED, (SideEffect.DISPATCH, SideEffect.DEDUCT_STOCK)))

    edges.append(Edge(S.CONFIRMED, S.SHIPPED, (SideEffect.DISPATCH,)))

    # Courier-driven movement; PENDING here is the courier's "waiting" state.
    for source in IN_TRANSIT_STATES + (S.PENDING,):
        for target in COURIER_REPORTED_STATES:
            if target is source:
                continue
            effects = (SideEffect.STAMP_DELIVERED,) if target is S.DELIVERED else ()
            guard = True if source is S.PENDING else None
            edges.append(Edge(source, target, effects, requires_tracking=guard))

    for source in IN_TRANSIT_STATES:
        edges.append(
            Edge(
                source,
                S.RETURN_COMPLETED,
                (SideEffect.RESTOCK, SideEffect.STAMP_RETURN_COMPLETED),
            )
        )

    return {(edge.source, edge.target): edge for edge in edges}


TRANSITIONS = _build_edges()


class OrderStateMachine:
    """Applies transitions to the orders of one tenant."""

    def __init__(
        self,
        orders: OrderRepository,
        ledger: InventoryLedger,
        courier: CourierGateway | None = None,
        courier_settings: CourierSettings | None = None,
        allow_oversell: bool = True,
        return_value_ratio: Decimal = DEFAULT_RETURN_VALUE_RATIO,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._orders = orders
        self._ledger = ledger
        self._courier = courier
        self._courier_settings = courier_settings or CourierSettings()
        self._allow_oversell = allow_oversell
        self._return_value_ratio = Decimal(return_value_ratio)
        self._clock = clock

    @property
    def tenant_id(self) -> str:
        return self._orders.tenant_id

    # --- Table lookups --------------------------------------------------------

    @staticmethod
    def edge_for(order: Order, target: OrderStatus) -> Edge:
        edge = TRANSITIONS.get((order.status, target))
        if edge is None:
            raise InvalidTransition(order.status.value, target.value)
        has_tracking = bool(order.tracking_number)
        if edge.requires_tracking is True and not has_tracking:
            raise InvalidTransition(
                order.status.value, target.value, "order has no tracking number"
            )
        if edge.requires_tracking is False and has_tracking:
            raise InvalidTransition(
                order.status.value, target.value, "order is already with the courier"
            )
        return edge

    # --- Transition -----------------------------------------------------------

    def transition(
        self,
        order: Order,
        target: OrderStatus,
        actor: str,
        message: str | None = None,
    ) -> Order:
        """Move *order* to *target* on behalf of *actor*.

        Re-applying the status the order already holds succeeds without
        any log entry, side effect or write.
        """
        if order.tenant_id != self.tenant_id:
            raise ValidationError(
                f"Order {order.id} belongs to tenant '{order.tenant_id}', "
                f"not '{self.tenant_id}'"
            )
        if order.status is target:
            logger.debug(
                "Transition skipped, status unchanged",
                order_id=order.id,
                status=target.value,
            )
            return order

        edge = self.edge_for(order, target)
        effects = edge.effects

        if SideEffect.DEDUCT_STOCK in effects and not self._allow_oversell:
            self._ledger.check_lines(self.tenant_id, self._lines(order))

        dispatch: DispatchResult | None = None
        if SideEffect.DISPATCH in effects:
            dispatch = self._dispatch(order)
        if SideEffect.DEDUCT_STOCK in effects:
            try:
                self._deduct_stock(order)
            except DomainException:
                if dispatch is not None:
                    logger.error(
                        "Stock deduction failed after courier handshake",
                        tenant_id=self.tenant_id,
                        order_id=order.id,
                        waybill=dispatch.tracking_number,
                    )
                raise
        if SideEffect.RESTOCK in effects:
            self._restock(order)

        now = self._clock()
        previous = order.status
        order.status = target
        if dispatch is not None:
            order.tracking_number = dispatch.tracking_number
            order.shipped_at = now
        if SideEffect.STAMP_CONFIRMED in effects:
            order.confirmed_at = now
        if SideEffect.STAMP_DELIVERED in effects:
            order.delivered_at = now
        if SideEffect.STAMP_RETURN_COMPLETED in effects:
            order.return_completed_at = now

        order.append_log(
            OrderLog.new(message or self._describe(previous, target, dispatch), actor, now)
        )
        self._orders.save(order)

        logger.info(
            "Order transitioned",
            tenant_id=self.tenant_id,
            order_id=order.id,
            from_status=previous.value,
            to_status=target.value,
            actor=actor,
            effects=[effect.value for effect in effects],
        )
        return order

    # --- Side effects ---------------------------------------------------------

    def _dispatch(self, order: Order) -> DispatchResult:
        if self._courier is None:
            raise ValidationError("No courier gateway is configured")
        return self._courier.dispatch(order, self._courier_settings)

    def _deduct_stock(self, order: Order) -> None:
        for product_id, quantity in self._lines(order):
            try:
                self._ledger.deduct_fifo(self.tenant_id, product_id, quantity)
            except InsufficientStock as exc:
                if not self._allow_oversell:
                    raise
                logger.warning(
                    "Insufficient stock, overselling",
                    tenant_id=self.tenant_id,
                    order_id=order.id,
                    product_id=product_id,
                    requested=exc.requested,
                    available=exc.available,
                )
                if exc.available > 0:
                    self._ledger.deduct_fifo(self.tenant_id, product_id, exc.available)
            except ProductNotFound:
                if not self._allow_oversell:
                    raise
                logger.warning(
                    "Stock deduction skipped, product missing",
                    tenant_id=self.tenant_id,
                    order_id=order.id,
                    product_id=product_id,
                )

    def _restock(self, order: Order) -> None:
        for item in order.items:
            unit_value = item.unit_price.scaled(self._return_value_ratio)
            try:
                self._ledger.restock(
                    self.tenant_id, item.product_id, item.quantity.value, unit_value
                )
            except ProductNotFound:
                logger.warning(
                    "Restock skipped, product missing",
                    tenant_id=self.tenant_id,
                    order_id=order.id,
                    product_id=item.product_id,
                )

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _lines(order: Order) -> list[tuple[str, int]]:
        return [(item.product_id, item.quantity.value) for item in order.items]

    @staticmethod
    def _describe(
        previous: OrderStatus, target: OrderStatus, dispatch: DispatchResult | None
    ) -> str:
        if dispatch is not None:
            text = f"Courier handshake accepted, waybill {dispatch.tracking_number}"
            if dispatch.message:
                text = f"{text} ({dispatch.message})"
            return text
        return f"Status changed from {previous.value} to {target.value}"
