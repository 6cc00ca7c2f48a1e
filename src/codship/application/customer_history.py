"""Application service: Customer History use case (query).

Repeat-customer and fraud signal.  Phone numbers are written in many
shapes (+94, leading 0, spaces), so customers are matched on the last
eight digits only.
"""

from __future__ import annotations

from codship.application.dto import CustomerHistory
from codship.application.tenant_registry import TenantRegistry
from codship.domain.model.order import OrderStatus

PHONE_MATCH_DIGITS = 8

RETURN_LIKE_STATUSES = frozenset(
    {OrderStatus.RETURNED, OrderStatus.REJECTED, OrderStatus.RETURN_COMPLETED}
)


class CustomerHistoryHandler:

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    def handle(self, tenant_id: str, phone: str) -> CustomerHistory:
        digits = "".join(ch for ch in phone or "" if ch.isdigit())
        if not digits:
            return CustomerHistory()
        key = digits[-PHONE_MATCH_DIGITS:]

        orders = self._registry.context(tenant_id).orders().list_all()
        matched = [o for o in orders if o.phone_digits.endswith(key)]
        return CustomerHistory(
            count=len(matched),
            returns=sum(1 for o in matched if o.status in RETURN_LIKE_STATUSES),
        )
