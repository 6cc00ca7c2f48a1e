"""Product aggregate with its FIFO stock batches.

Stock is never a single counter: every intake (and every return restock)
is a separate batch with its own buying price, consumed oldest-first so
cost-of-goods reporting stays accurate.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from codship.domain.exceptions import InsufficientStock, ValidationError
from codship.domain.model.order import utcnow
from codship.domain.model.value_objects import Money


@dataclass
class StockBatch:
    """A discrete stock-intake lot.

    Invariants:
    - ``0 <= quantity <= original_quantity``
    """

    id: str
    quantity: int
    original_quantity: int
    buying_price: Money
    created_at: datetime
    is_return: bool = False

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValidationError(f"Batch {self.id} quantity cannot be negative")
        if self.quantity > self.original_quantity:
            raise ValidationError(
                f"Batch {self.id} quantity {self.quantity} exceeds "
                f"original quantity {self.original_quantity}"
            )

    def take(self, wanted: int) -> int:
        """Consume up to *wanted* units, returning how many were taken."""
        taken = min(self.quantity, wanted)
        self.quantity -= taken
        return taken


@dataclass
class Product:
    id: str
    tenant_id: str
    sku: str
    name: str
    price: Money
    batches: list[StockBatch] = field(default_factory=list)

    @property
    def stock(self) -> int:
        return sum(batch.quantity for batch in self.batches)

    def fifo_batches(self) -> list[StockBatch]:
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(self.batches, key=lambda b: b.created_at)

    def consume_fifo(self, quantity: int) -> None:
        """Deduct *quantity* units, oldest batch first.

        Zeroed batches are kept so ``original_quantity`` stays available
        for history. Raises InsufficientStock before touching any batch.
        """
        if quantity <= 0:
            raise ValidationError("Deduction quantity must be positive")
        if quantity > self.stock:
            raise InsufficientStock(self.id, quantity, self.stock)

        ordered = self.fifo_batches()
        remaining = quantity
        for batch in ordered:
            if remaining == 0:
                break
            remaining -= batch.take(remaining)
        self.batches = ordered

    def add_return_batch(
        self, quantity: int, unit_value: Money, created_at: datetime | None = None
    ) -> StockBatch:
        if quantity <= 0:
            raise ValidationError("Restock quantity must be positive")
        batch = StockBatch(
            id=f"b-{uuid.uuid4().hex[:12]}",
            quantity=quantity,
            original_quantity=quantity,
            buying_price=unit_value,
            created_at=created_at or utcnow(),
            is_return=True,
        )
        self.batches.append(batch)
        return batch
