"""Application service: Reconcile Courier Webhook use case.

The courier's callbacks carry no tenant identifier, so the order is located
by scanning every active tenant's store for the waybill.  A waybill this
system never issued is acknowledged anyway so the courier stops retrying.
A tenant whose store fails to open or to read is skipped for that scan.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

import structlog

from codship.application.tenant_registry import TenantContext, TenantRegistry
from codship.application.webhook_payload import CourierUpdate, WebhookRequest, extract_update
from codship.domain.exceptions import DomainException, InvalidTransition
from codship.domain.model.order import Order, OrderStatus
from codship.domain.service.courier_status import classify_courier_status

logger = structlog.get_logger(__name__)

COURIER_ACTOR = "Courier System"


class ReconciliationOutcome(Enum):
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"
    NOT_FOUND = "NOT_FOUND"
    IGNORED = "IGNORED"


@dataclass(frozen=True)
class ReconciliationResult:
    waybill: str
    raw_status: str
    mapped_status: OrderStatus
    outcome: ReconciliationOutcome
    tenant_id: str | None = None
    order_id: str | None = None

    @property
    def found(self) -> bool:
        return self.outcome is not ReconciliationOutcome.NOT_FOUND


class WebhookReconciler:

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    def reconcile(
        self,
        raw_body: str | bytes | None,
        content_type: str | None = None,
        query_params: Mapping[str, str] | None = None,
    ) -> ReconciliationResult:
        # MissingWaybillReference propagates before any store is touched.
        update = extract_update(WebhookRequest.of(raw_body, content_type, query_params))
        mapped = classify_courier_status(update.raw_status)
        logger.info(
            "Courier webhook received",
            waybill=update.waybill,
            raw_status=update.raw_status,
            mapped_status=mapped.value,
        )

        located = self._locate(update.waybill)
        if located is None:
            logger.info("Waybill not in registry", waybill=update.waybill)
            return ReconciliationResult(
                update.waybill, update.raw_status, mapped, ReconciliationOutcome.NOT_FOUND
            )

        ctx, order = located
        return self._apply(ctx, order, update, mapped)

    def _locate(self, waybill: str) -> tuple[TenantContext, Order] | None:
        for tenant in self._registry.list_active_tenants():
            try:
                ctx = self._registry.context_for(tenant)
                order = ctx.orders().find_by_tracking_number(waybill)
            except DomainException as exc:
                logger.warning(
                    "Tenant store skipped during webhook scan",
                    tenant_id=tenant.id,
                    error=str(exc),
                )
                continue
            if order is not None:
                return ctx, order
        return None

    def _apply(
        self,
        ctx: TenantContext,
        order: Order,
        update: CourierUpdate,
        mapped: OrderStatus,
    ) -> ReconciliationResult:
        def result(outcome: ReconciliationOutcome) -> ReconciliationResult:
            return ReconciliationResult(
                update.waybill, update.raw_status, mapped, outcome, ctx.tenant_id, order.id
            )

        if order.status is mapped:
            logger.debug("Webhook replay ignored", order_id=order.id, status=mapped.value)
            return result(ReconciliationOutcome.UNCHANGED)

        machine = ctx.state_machine()
        try:
            machine.edge_for(order, mapped)
        except InvalidTransition as exc:
            logger.warning(
                "Courier update rejected by state machine",
                tenant_id=ctx.tenant_id,
                order_id=order.id,
                error=str(exc),
            )
            return result(ReconciliationOutcome.IGNORED)

        order.courier_status = update.raw_status
        machine.transition(
            order,
            mapped,
            actor=COURIER_ACTOR,
            message=f"Courier update: {update.raw_status} [time: {update.reported_at}]",
        )
        return result(ReconciliationOutcome.UPDATED)
