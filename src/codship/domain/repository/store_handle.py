"""Handle on one backing store.

A store holds the ``orders`` and ``products`` collections of one or more
tenants; the central store additionally holds ``tenants``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from codship.domain.repository.order_repository import OrderRepository
from codship.domain.repository.product_repository import ProductRepository
from codship.domain.repository.tenant_repository import TenantRepository


class StoreHandle(ABC):

    @property
    @abstractmethod
    def location(self) -> str:
        """The URI or path the handle was opened from."""

    @abstractmethod
    def orders(self, tenant_id: str) -> OrderRepository:
        """Orders of *tenant_id* held in this store."""

    @abstractmethod
    def products(self, tenant_id: str) -> ProductRepository:
        """Products of *tenant_id* held in this store."""

    @abstractmethod
    def tenants(self) -> TenantRepository:
        """Tenant records (meaningful for the central store)."""

    def close(self) -> None:
        """Release any resources held by the handle."""
