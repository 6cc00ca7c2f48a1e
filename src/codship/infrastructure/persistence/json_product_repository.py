"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

from codship.domain.model.product import Product
from codship.domain.repository.product_repository import ProductRepository
from codship.infrastructure.persistence.json_collection import JsonCollection
from codship.infrastructure.persistence.serialization import (
    product_from_dict,
    product_to_dict,
)


class JsonProductRepository(ProductRepository):

    def __init__(self, collection: JsonCollection, tenant_id: str) -> None:
        self._collection = collection
        self._tenant_id = tenant_id

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        for raw in self._load_raw():
            if raw["id"] == product_id:
                return product_from_dict(raw, self._tenant_id)
        return None

    def list_all(self) -> list[Product]:
        return [product_from_dict(raw, self._tenant_id) for raw in self._load_raw()]

    def save(self, product: Product) -> None:
        product.tenant_id = self._tenant_id
        with self._collection.lock:
            records = self._collection.load()
            replaced = False
            for i, raw in enumerate(records):
                if raw["id"] == product.id and raw.get("tenant_id") == self._tenant_id:
                    records[i] = product_to_dict(product)
                    replaced = True
                    break
            if not replaced:
                records.append(product_to_dict(product))
            self._collection.persist(records)

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return [
            raw for raw in self._collection.load()
            if raw.get("tenant_id") == self._tenant_id
        ]
