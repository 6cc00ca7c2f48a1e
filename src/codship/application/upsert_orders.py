"""Application service: Upsert Orders use case.

Lead intake and CSV imports push whole order records.  New orders are
stored as given; for orders that already exist only the editable fields
are replaced, so status, stamps, tracking number and the audit log can
only change through the state machine.
"""

from __future__ import annotations

from dataclasses import replace

import structlog

from codship.application.tenant_registry import TenantRegistry
from codship.domain.model.order import Order

logger = structlog.get_logger(__name__)

LIFECYCLE_FIELDS = (
    "status",
    "created_at",
    "confirmed_at",
    "shipped_at",
    "delivered_at",
    "return_completed_at",
    "tracking_number",
    "courier_status",
    "logs",
)


class UpsertOrdersHandler:

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    def handle(self, tenant_id: str, orders: list[Order]) -> int:
        repo = self._registry.context(tenant_id).orders()

        merged: dict[str, Order] = {}
        created = 0
        for incoming in orders:
            incoming = replace(incoming, tenant_id=repo.tenant_id)
            existing = merged.get(incoming.id) or repo.get_by_id(incoming.id)
            if existing is None:
                created += 1
                merged[incoming.id] = incoming
                continue
            kept = {name: getattr(existing, name) for name in LIFECYCLE_FIELDS}
            merged[incoming.id] = replace(incoming, **kept)

        repo.save_many(list(merged.values()))
        logger.info(
            "Orders upserted",
            tenant_id=repo.tenant_id,
            total=len(merged),
            created=created,
        )
        return len(merged)
