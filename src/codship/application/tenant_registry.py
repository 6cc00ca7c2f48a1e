"""Tenant routing: which store does a request belong to?

Tenant records live in the central store.  A tenant with its own
``store_uri`` is served from a pooled handle on that store; every other
tenant shares the central store, isolated by tenant-scoped repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import structlog

from codship.domain.exceptions import TenantNotFound
from codship.domain.model.tenant import Tenant
from codship.domain.repository.order_repository import OrderRepository
from codship.domain.repository.product_repository import ProductRepository
from codship.domain.repository.store_handle import StoreHandle
from codship.domain.service.courier_gateway import CourierGateway
from codship.domain.service.inventory_ledger import InventoryLedger
from codship.domain.service.order_state_machine import (
    DEFAULT_RETURN_VALUE_RATIO,
    OrderStateMachine,
)

logger = structlog.get_logger(__name__)


class StorePool(Protocol):
    def open(self, uri: str) -> StoreHandle: ...


@dataclass(frozen=True)
class StateMachinePolicy:
    allow_oversell: bool = True
    return_value_ratio: Decimal = DEFAULT_RETURN_VALUE_RATIO


@dataclass(frozen=True)
class TenantContext:
    """Everything a tenant-scoped action needs, bound to one store."""

    tenant: Tenant
    store: StoreHandle
    policy: StateMachinePolicy = StateMachinePolicy()

    @property
    def tenant_id(self) -> str:
        return self.tenant.id

    def orders(self) -> OrderRepository:
        return self.store.orders(self.tenant.id)

    def products(self) -> ProductRepository:
        return self.store.products(self.tenant.id)

    def ledger(self) -> InventoryLedger:
        return InventoryLedger(self._products_for)

    def state_machine(self, courier: CourierGateway | None = None) -> OrderStateMachine:
        return OrderStateMachine(
            orders=self.orders(),
            ledger=self.ledger(),
            courier=courier,
            courier_settings=self.tenant.courier_settings,
            allow_oversell=self.policy.allow_oversell,
            return_value_ratio=self.policy.return_value_ratio,
        )

    def _products_for(self, tenant_id: str) -> ProductRepository:
        # A context never reaches into another tenant's catalog.
        if tenant_id != self.tenant.id:
            raise TenantNotFound(tenant_id)
        return self.store.products(tenant_id)


class TenantRegistry:

    def __init__(
        self,
        central: StoreHandle,
        pool: StorePool,
        policy: StateMachinePolicy | None = None,
    ) -> None:
        self._central = central
        self._pool = pool
        self._policy = policy or StateMachinePolicy()

    @property
    def central(self) -> StoreHandle:
        return self._central

    def get_tenant(self, tenant_id: str) -> Tenant:
        if not tenant_id:
            raise TenantNotFound(str(tenant_id))
        tenant = self._central.tenants().get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFound(tenant_id)
        return tenant

    def resolve(self, tenant_id: str) -> StoreHandle:
        return self._store_for(self.get_tenant(tenant_id))

    def context(self, tenant_id: str) -> TenantContext:
        tenant = self.get_tenant(tenant_id)
        return self.context_for(tenant)

    def context_for(self, tenant: Tenant) -> TenantContext:
        return TenantContext(tenant=tenant, store=self._store_for(tenant), policy=self._policy)

    def list_active_tenants(self) -> list[Tenant]:
        return [t for t in self._central.tenants().list_all() if t.is_active]

    def _store_for(self, tenant: Tenant) -> StoreHandle:
        if not tenant.has_own_store:
            return self._central
        store = self._pool.open(tenant.store_uri.strip())
        logger.debug("Tenant store resolved", tenant_id=tenant.id, location=store.location)
        return store
