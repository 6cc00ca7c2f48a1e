"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

from codship.domain.model.order import Order
from codship.domain.repository.order_repository import OrderRepository
from codship.infrastructure.persistence.json_collection import JsonCollection
from codship.infrastructure.persistence.serialization import order_from_dict, order_to_dict


class JsonOrderRepository(OrderRepository):

    def __init__(self, collection: JsonCollection, tenant_id: str) -> None:
        self._collection = collection
        self._tenant_id = tenant_id

    # --- OrderRepository interface --------------------------------------------

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    def get_by_id(self, order_id: str) -> Order | None:
        for raw in self._load_raw():
            if raw["id"] == order_id:
                return order_from_dict(raw, self._tenant_id)
        return None

    def find_by_tracking_number(self, reference: str) -> Order | None:
        wanted = reference.strip().lower()
        if not wanted:
            return None
        for raw in self._load_raw():
            tracking = raw.get("tracking_number")
            if tracking and str(tracking).strip().lower() == wanted:
                return order_from_dict(raw, self._tenant_id)
        return None

    def list_all(self) -> list[Order]:
        return [order_from_dict(raw, self._tenant_id) for raw in self._load_raw()]

    def save(self, order: Order) -> None:
        self.save_many([order])

    def save_many(self, orders: list[Order]) -> None:
        with self._collection.lock:
            records = self._collection.load()
            index = {
                raw["id"]: i
                for i, raw in enumerate(records)
                if raw.get("tenant_id") == self._tenant_id
            }
            for order in orders:
                order.tenant_id = self._tenant_id
                raw = order_to_dict(order)
                # Upsert: replace if exists, otherwise append
                if order.id in index:
                    records[index[order.id]] = raw
                else:
                    index[order.id] = len(records)
                    records.append(raw)
            self._collection.persist(records)

    def delete_many(self, order_ids: list[str]) -> int:
        doomed = set(order_ids)
        return self._remove(lambda raw: raw["id"] in doomed)

    def purge(self) -> int:
        return self._remove(lambda raw: True)

    # --- File helpers ---------------------------------------------------------

    def _load_raw(self) -> list[dict]:
        return [
            raw for raw in self._collection.load()
            if raw.get("tenant_id") == self._tenant_id
        ]

    def _remove(self, predicate) -> int:
        with self._collection.lock:
            records = self._collection.load()
            kept = [
                raw for raw in records
                if raw.get("tenant_id") != self._tenant_id or not predicate(raw)
            ]
            removed = len(records) - len(kept)
            if removed:
                self._collection.persist(kept)
            return removed
