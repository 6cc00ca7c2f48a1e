"""Abstract repository for tenant records (central store only)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from codship.domain.model.tenant import Tenant


class TenantRepository(ABC):

    @abstractmethod
    def get_by_id(self, tenant_id: str) -> Tenant | None:
        """Return a tenant by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[Tenant]:
        """Return every tenant in registry order."""

    @abstractmethod
    def save(self, tenant: Tenant) -> None:
        """Persist a new or updated tenant."""
