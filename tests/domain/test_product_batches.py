"""Unit tests for Product stock batches and FIFO consumption."""

from datetime import timedelta

import pytest

from codship.domain.exceptions import InsufficientStock, ValidationError
from codship.domain.model.product import StockBatch
from codship.domain.model.value_objects import Money
from tests.fakes import T0, make_product


class TestStockBatch:

    def test_quantity_above_original_rejected(self):
        with pytest.raises(ValidationError, match="exceeds"):
            StockBatch("b", 5, 4, Money.of("1"), T0)

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            StockBatch("b", -1, 4, Money.of("1"), T0)

    def test_take_is_capped(self):
        batch = StockBatch("b", 3, 3, Money.of("1"), T0)
        assert batch.take(5) == 3
        assert batch.quantity == 0


class TestConsumeFifo:

    def test_splits_across_batches_oldest_first(self):
        product = make_product(batches=[(3, "900"), (5, "950")])
        product.consume_fifo(4)
        assert [b.quantity for b in product.batches] == [0, 4]

    def test_zeroed_batches_are_kept(self):
        product = make_product(batches=[(2, "900"), (2, "950")])
        product.consume_fifo(2)
        assert len(product.batches) == 2
        assert product.batches[0].original_quantity == 2

    def test_orders_by_creation_not_list_position(self):
        product = make_product(batches=[(5, "900"), (5, "950")])
        # Newest batch listed first
        product.batches.reverse()
        product.consume_fifo(1)
        oldest = min(product.batches, key=lambda b: b.created_at)
        assert oldest.quantity == 4

    def test_insufficient_stock_leaves_batches_untouched(self):
        product = make_product(batches=[(1, "900"), (2, "950")])
        with pytest.raises(InsufficientStock) as exc_info:
            product.consume_fifo(4)
        assert exc_info.value.requested == 4
        assert exc_info.value.available == 3
        assert [b.quantity for b in product.batches] == [1, 2]

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            make_product().consume_fifo(0)


class TestReturnBatch:

    def test_return_batch_is_flagged_and_full(self):
        product = make_product(batches=[(1, "900")])
        batch = product.add_return_batch(2, Money.of("1200.00"), T0 + timedelta(days=30))
        assert batch.is_return
        assert batch.quantity == batch.original_quantity == 2
        assert batch.buying_price == Money.of("1200.00")
        assert product.stock == 3

    def test_return_batch_consumed_after_older_stock(self):
        product = make_product(batches=[(1, "900")])
        product.add_return_batch(1, Money.of("1200.00"), T0 + timedelta(days=30))
        product.consume_fifo(1)
        assert product.batches[0].quantity == 0
        assert product.batches[1].quantity == 1
