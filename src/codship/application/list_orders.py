"""Application service: List Orders use case (query)."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

from codship.application.dto import (
    ALL_STATUSES,
    LOGISTICS_ALL,
    TODAY_SHIPPED,
    OrderPage,
    OrderQuery,
)
from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import ValidationError
from codship.domain.model.order import Order, OrderStatus, utcnow

MAX_PAGE_SIZE = 500

# Orders that have left the lead pipeline and are the courier's concern.
LOGISTICS_STATUSES = frozenset(
    {
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERY,
        OrderStatus.DELIVERED,
        OrderStatus.TRANSFER,
        OrderStatus.RETURNED,
        OrderStatus.RETURN_TRANSFER,
        OrderStatus.RETURN_HANDOVER,
        OrderStatus.RETURN_COMPLETED,
        OrderStatus.RETURN_AS_ON_SYSTEM,
        OrderStatus.RESIDUAL,
        OrderStatus.REARRANGE,
    }
)

OrderFilter = Callable[[Order], bool]


class ListOrdersHandler:

    def __init__(
        self,
        registry: TenantRegistry,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._clock = clock

    def handle(self, tenant_id: str, query: OrderQuery | None = None) -> OrderPage:
        query = query or OrderQuery()
        if query.page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        orders = self._registry.context(tenant_id).orders().list_all()
        filters = self._filters(query)
        matched = [o for o in orders if all(f(o) for f in filters)]
        matched.sort(key=lambda o: o.created_at, reverse=True)

        start = (query.page - 1) * query.limit
        return OrderPage(
            data=matched[start:start + query.limit],
            total=len(matched),
            page=query.page,
            limit=query.limit,
        )

    # --- Filters --------------------------------------------------------------

    def _filters(self, query: OrderQuery) -> list[OrderFilter]:
        filters: list[OrderFilter] = []

        status = (query.status or ALL_STATUSES).strip().upper()
        if status == TODAY_SHIPPED:
            midnight = datetime.combine(self._clock().date(), time.min, tzinfo=timezone.utc)
            filters.append(lambda o: o.shipped_at is not None and o.shipped_at >= midnight)
        elif status == LOGISTICS_ALL:
            filters.append(lambda o: o.status in LOGISTICS_STATUSES)
        elif status != ALL_STATUSES:
            try:
                wanted = OrderStatus(status)
            except ValueError as exc:
                raise ValidationError(f"Unknown status filter: {query.status!r}") from exc
            filters.append(lambda o: o.status is wanted)

        if query.product_id:
            filters.append(
                lambda o: any(item.product_id == query.product_id for item in o.items)
            )

        if query.start_date is not None:
            since = _day_start(query.start_date)
            filters.append(lambda o: o.created_at >= since)
        if query.end_date is not None:
            until = _day_start(query.end_date) + timedelta(days=1)
            filters.append(lambda o: o.created_at < until)

        needle = query.search.strip().lower()
        if needle:
            filters.append(lambda o: _matches_search(o, needle))

        return filters


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _matches_search(order: Order, needle: str) -> bool:
    haystack = (
        order.id,
        order.customer_name,
        order.customer_phone,
        order.tracking_number or "",
    )
    return any(needle in value.lower() for value in haystack)
