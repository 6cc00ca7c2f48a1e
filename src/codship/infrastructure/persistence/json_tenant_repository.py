"""JSON-file-backed implementation of TenantRepository."""

from __future__ import annotations

from codship.domain.model.tenant import Tenant
from codship.domain.repository.tenant_repository import TenantRepository
from codship.infrastructure.persistence.json_collection import JsonCollection
from codship.infrastructure.persistence.serialization import tenant_from_dict, tenant_to_dict


class JsonTenantRepository(TenantRepository):

    def __init__(self, collection: JsonCollection) -> None:
        self._collection = collection

    def get_by_id(self, tenant_id: str) -> Tenant | None:
        for raw in self._collection.load():
            if raw["id"] == tenant_id:
                return tenant_from_dict(raw)
        return None

    def list_all(self) -> list[Tenant]:
        return [tenant_from_dict(raw) for raw in self._collection.load()]

    def save(self, tenant: Tenant) -> None:
        with self._collection.lock:
            records = self._collection.load()
            for i, raw in enumerate(records):
                if raw["id"] == tenant.id:
                    records[i] = tenant_to_dict(tenant)
                    break
            else:
                records.append(tenant_to_dict(tenant))
            self._collection.persist(records)
