"""Domain service: Inventory Ledger.

Per-product batch stock accounting.  Deductions consume batches oldest
first; returns come back as new batches flagged ``is_return``.

Multi-line deductions can be made all-or-nothing with ``check_lines``:
validate every line first, then mutate, so a short product never leaves
the other lines already deducted.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Callable

import structlog

from codship.domain.exceptions import InsufficientStock, ProductNotFound
from codship.domain.model.product import Product, StockBatch
from codship.domain.model.value_objects import Money
from codship.domain.repository.product_repository import ProductRepository

logger = structlog.get_logger(__name__)

ProductRepositoryFactory = Callable[[str], ProductRepository]


class InventoryLedger:

    def __init__(self, product_repos: ProductRepositoryFactory) -> None:
        self._product_repos = product_repos

    def available(self, tenant_id: str, product_id: str) -> int:
        _, product = self._load(tenant_id, product_id)
        return product.stock

    def deduct_fifo(self, tenant_id: str, product_id: str, quantity: int) -> None:
        """Consume *quantity* units, oldest batch first.

        Raises InsufficientStock (without mutating anything) when the
        batches hold fewer units than requested.
        """
        repo, product = self._load(tenant_id, product_id)
        product.consume_fifo(quantity)
        repo.save(product)
        logger.info(
            "Stock deducted",
            tenant_id=tenant_id,
            product_id=product_id,
            quantity=quantity,
            remaining=product.stock,
        )

    def restock(
        self, tenant_id: str, product_id: str, quantity: int, unit_value: Money
    ) -> StockBatch:
        """Append a return batch valued at *unit_value* per unit."""
        repo, product = self._load(tenant_id, product_id)
        batch = product.add_return_batch(quantity, unit_value)
        repo.save(product)
        logger.info(
            "Return restocked",
            tenant_id=tenant_id,
            product_id=product_id,
            quantity=quantity,
            batch_id=batch.id,
        )
        return batch

    def check_lines(self, tenant_id: str, lines: list[tuple[str, int]]) -> None:
        """Phase 1 of an all-or-nothing deduction.

        Quantities of repeated products are summed before comparing
        against stock.
        """
        wanted: OrderedDict[str, int] = OrderedDict()
        for product_id, quantity in lines:
            wanted[product_id] = wanted.get(product_id, 0) + quantity

        for product_id, quantity in wanted.items():
            _, product = self._load(tenant_id, product_id)
            if quantity > product.stock:
                raise InsufficientStock(product_id, quantity, product.stock)

    # --- Internal helpers -----------------------------------------------------

    def _load(self, tenant_id: str, product_id: str) -> tuple[ProductRepository, Product]:
        repo = self._product_repos(tenant_id)
        product = repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return repo, product
