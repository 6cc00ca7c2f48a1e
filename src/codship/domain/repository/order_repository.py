"""Abstract repository for the Order aggregate.

Every instance is bound to one tenant: it only ever sees orders whose
``tenant_id`` matches, even when several tenants share a physical store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from codship.domain.model.order import Order


class OrderRepository(ABC):

    @property
    @abstractmethod
    def tenant_id(self) -> str:
        """The tenant this repository is scoped to."""

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def find_by_tracking_number(self, reference: str) -> Order | None:
        """Case-insensitive exact match on the tracking number."""

    @abstractmethod
    def list_all(self) -> list[Order]:
        """Return every order of the tenant."""

    @abstractmethod
    def save(self, order: Order) -> None:
        """Persist a new or updated order."""

    @abstractmethod
    def save_many(self, orders: list[Order]) -> None:
        """Persist several orders in one write."""

    @abstractmethod
    def delete_many(self, order_ids: list[str]) -> int:
        """Delete the given orders, returning how many existed."""

    @abstractmethod
    def purge(self) -> int:
        """Delete every order of the tenant, returning the count."""
