"""Directory-backed document store: one JSON file per collection.

Store locations are plain paths or ``file://`` / ``json://`` URIs.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote, urlparse

from codship.domain.exceptions import StoreUnavailable
from codship.domain.repository.order_repository import OrderRepository
from codship.domain.repository.product_repository import ProductRepository
from codship.domain.repository.store_handle import StoreHandle
from codship.domain.repository.tenant_repository import TenantRepository
from codship.infrastructure.persistence.json_collection import JsonCollection
from codship.infrastructure.persistence.json_order_repository import JsonOrderRepository
from codship.infrastructure.persistence.json_product_repository import (
    JsonProductRepository,
)
from codship.infrastructure.persistence.json_tenant_repository import (
    JsonTenantRepository,
)

SUPPORTED_SCHEMES = ("", "file", "json")


def store_path(uri: str) -> Path:
    """Translate a store location into a directory path."""
    location = uri.strip()
    if not location:
        raise StoreUnavailable(uri, "empty store location")
    parsed = urlparse(location)
    # Windows drive letters parse as a one-letter scheme
    if len(parsed.scheme) == 1:
        return Path(location)
    if parsed.scheme not in SUPPORTED_SCHEMES:
        raise StoreUnavailable(uri, f"unsupported store scheme '{parsed.scheme}'")
    if parsed.scheme:
        return Path(unquote(parsed.netloc + parsed.path))
    return Path(location)


class JsonDocumentStore(StoreHandle):

    def __init__(self, root: Path, location: str | None = None) -> None:
        self._root = root
        self._location = location or str(root)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreUnavailable(self._location, str(exc)) from exc
        if not root.is_dir():
            raise StoreUnavailable(self._location, "not a directory")
        self._orders = JsonCollection(root / "orders.json")
        self._products = JsonCollection(root / "products.json")
        self._tenants = JsonCollection(root / "tenants.json")

    @property
    def location(self) -> str:
        return self._location

    def orders(self, tenant_id: str) -> OrderRepository:
        return JsonOrderRepository(self._orders, tenant_id)

    def products(self, tenant_id: str) -> ProductRepository:
        return JsonProductRepository(self._products, tenant_id)

    def tenants(self) -> TenantRepository:
        return JsonTenantRepository(self._tenants)


def open_json_store(uri: str) -> JsonDocumentStore:
    """Connector used by the ConnectionPool."""
    return JsonDocumentStore(store_path(uri), location=uri)
