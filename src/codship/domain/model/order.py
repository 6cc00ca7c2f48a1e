"""Order aggregate: the central mutable entity of the engine.

The Order owns its line items and its audit log.  Status, timestamps and
the tracking number are only ever changed by the OrderStateMachine; the
aggregate itself just offers the primitives the machine needs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from codship.domain.exceptions import ValidationError
from codship.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PENDING = "PENDING"
    OPEN_LEAD = "OPEN_LEAD"
    NO_ANSWER = "NO_ANSWER"
    REJECTED = "REJECTED"
    HOLD = "HOLD"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    TRANSFER = "TRANSFER"
    DELIVERY = "DELIVERY"
    RESIDUAL = "RESIDUAL"
    REARRANGE = "REARRANGE"
    RETURNED = "RETURNED"
    RETURN_TRANSFER = "RETURN_TRANSFER"
    RETURN_AS_ON_SYSTEM = "RETURN_AS_ON_SYSTEM"
    RETURN_HANDOVER = "RETURN_HANDOVER"
    DELIVERED = "DELIVERED"
    RETURN_COMPLETED = "RETURN_COMPLETED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderLog:
    """One immutable audit entry; ``user`` may be a synthetic actor."""

    id: str
    message: str
    timestamp: datetime
    user: str

    @staticmethod
    def new(message: str, user: str, timestamp: datetime | None = None) -> OrderLog:
        return OrderLog(
            id=f"l-{uuid.uuid4().hex[:12]}",
            message=message,
            timestamp=timestamp or utcnow(),
            user=user,
        )


@dataclass
class OrderLineItem:
    """Price snapshot of a product at the time the lead was taken."""

    product_id: str
    name: str
    unit_price: Money
    quantity: Quantity

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class Order:
    """Aggregate root for COD orders.

    Use ``Order.create()`` for new leads; it validates the intake fields.
    The ``__init__`` stays permissive so repositories can reconstitute
    stored orders without re-validating.
    """

    id: str
    tenant_id: str
    customer_name: str
    items: list[OrderLineItem]
    total_amount: Money
    customer_phone: str = ""
    customer_phone2: str = ""
    customer_address: str = ""
    customer_city: str = ""
    parcel_weight: str = ""
    parcel_description: str = ""
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    confirmed_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    return_completed_at: datetime | None = None
    tracking_number: str | None = None
    courier_status: str | None = None
    logs: list[OrderLog] = field(default_factory=list)

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        order_id: str,
        tenant_id: str,
        customer_name: str,
        items: list[OrderLineItem],
        customer_phone: str = "",
        customer_address: str = "",
        customer_city: str = "",
    ) -> Order:
        """Create a new lead in PENDING, enforcing intake invariants."""
        if not order_id or not order_id.strip():
            raise ValidationError("Order id is required")
        if not customer_name or not customer_name.strip():
            raise ValidationError("Customer name is required")
        if not items:
            raise ValidationError("Order must contain at least one item")

        return Order(
            id=order_id.strip(),
            tenant_id=tenant_id,
            customer_name=customer_name.strip(),
            items=list(items),
            total_amount=Order.sum_items(items),
            customer_phone=customer_phone,
            customer_address=customer_address,
            customer_city=customer_city,
        )

    # --- Audit log --------------------------------------------------------------

    def append_log(self, entry: OrderLog) -> None:
        """Append-only; entries are never removed or reordered."""
        if self.logs and entry.timestamp < self.logs[-1].timestamp:
            entry = OrderLog(entry.id, entry.message, self.logs[-1].timestamp, entry.user)
        self.logs.append(entry)

    # --- Computed properties --------------------------------------------------

    @staticmethod
    def sum_items(items: list[OrderLineItem]) -> Money:
        result = Money.zero()
        for item in items:
            result = result + item.line_total
        return result

    @property
    def phone_digits(self) -> str:
        return "".join(ch for ch in self.customer_phone if ch.isdigit())
