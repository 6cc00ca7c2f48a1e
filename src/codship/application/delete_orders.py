"""Application service: Delete Orders use case (administrative)."""

from __future__ import annotations

import structlog

from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import ValidationError

logger = structlog.get_logger(__name__)


class DeleteOrdersHandler:

    def __init__(self, registry: TenantRegistry) -> None:
        self._registry = registry

    def handle(
        self,
        tenant_id: str,
        order_ids: list[str] | None = None,
        purge: bool = False,
    ) -> int:
        repo = self._registry.context(tenant_id).orders()
        if purge:
            count = repo.purge()
            logger.warning("Tenant orders purged", tenant_id=tenant_id, count=count)
            return count

        ids = [i.strip() for i in order_ids or [] if i and i.strip()]
        if not ids:
            raise ValidationError("Missing target: give order ids or purge")
        count = repo.delete_many(ids)
        logger.info("Orders deleted", tenant_id=tenant_id, requested=len(ids), count=count)
        return count
