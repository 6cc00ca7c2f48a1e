"""Unit tests for the OrderStateMachine domain service."""

from datetime import timedelta
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from codship.domain.exceptions import (
    CourierRejected,
    InsufficientStock,
    InvalidTransition,
    StoreUnavailable,
    ValidationError,
)
from codship.domain.model.order import OrderStatus
from codship.domain.model.value_objects import Money
from codship.domain.service.inventory_ledger import InventoryLedger
from codship.domain.service.order_state_machine import TRANSITIONS, OrderStateMachine
from tests.fakes import (
    T0,
    FakeCourierGateway,
    FakeOrderRepository,
    FakeProductRepository,
    make_item,
    make_order,
    make_product,
    make_tenant,
)

NOW = T0 + timedelta(days=2)


class UnwritableProductRepository(FakeProductRepository):

    def save(self, product):
        raise StoreUnavailable("mem://t1", "disk full")


def _setup(order, product=None, courier=None, allow_oversell=True):
    orders = FakeOrderRepository("t1", [order])
    products = FakeProductRepository("t1", [product or make_product()])
    machine = OrderStateMachine(
        orders=orders,
        ledger=InventoryLedger(lambda tenant_id: products),
        courier=courier or FakeCourierGateway(),
        courier_settings=make_tenant().courier_settings,
        allow_oversell=allow_oversell,
        clock=lambda: NOW,
    )
    return machine, orders, products


class TestLeadPipeline:

    def test_confirm_deducts_and_stamps(self):
        machine, orders, products = _setup(make_order(items=[make_item(quantity=2)]))
        order = orders.get_by_id("ORD-1001")

        machine.transition(order, OrderStatus.CONFIRMED, "agent")

        stored = orders.get_by_id("ORD-1001")
        assert stored.status == OrderStatus.CONFIRMED
        assert stored.confirmed_at == NOW
        assert products.get_by_id("p-1").stock == 8
        assert [(log.message, log.user) for log in stored.logs] == [
            ("Status changed from OPEN_LEAD to CONFIRMED", "agent")
        ]

    def test_lead_states_move_freely(self):
        machine, orders, products = _setup(make_order())
        order = orders.get_by_id("ORD-1001")
        machine.transition(order, OrderStatus.NO_ANSWER, "agent")
        machine.transition(order, OrderStatus.HOLD, "agent")
        machine.transition(order, OrderStatus.OPEN_LEAD, "agent")
        assert orders.get_by_id("ORD-1001").status == OrderStatus.OPEN_LEAD
        assert products.get_by_id("p-1").stock == 10

    def test_pending_opens_only_without_tracking(self):
        order = make_order(status=OrderStatus.PENDING, tracking_number="WB1")
        machine, _, _ = _setup(order)
        with pytest.raises(InvalidTransition, match="already with the courier"):
            machine.transition(order, OrderStatus.OPEN_LEAD, "agent")

    def test_order_of_other_tenant_rejected(self):
        machine, _, _ = _setup(make_order())
        with pytest.raises(ValidationError, match="belongs to tenant"):
            machine.transition(make_order(tenant_id="t2"), OrderStatus.HOLD, "agent")


class TestDispatch:

    def test_confirmed_to_shipped_does_not_deduct_again(self):
        courier = FakeCourierGateway(waybill="WB777")
        machine, orders, products = _setup(make_order(), courier=courier)
        order = orders.get_by_id("ORD-1001")

        machine.transition(order, OrderStatus.CONFIRMED, "agent")
        machine.transition(order, OrderStatus.SHIPPED, "dispatcher")

        stored = orders.get_by_id("ORD-1001")
        assert stored.status == OrderStatus.SHIPPED
        assert stored.tracking_number == "WB777"
        assert stored.shipped_at == NOW
        assert products.get_by_id("p-1").stock == 9
        assert len(courier.calls) == 1

    def test_lead_to_shipped_dispatches_and_deducts(self):
        machine, orders, products = _setup(make_order())
        machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.SHIPPED, "dispatcher")
        assert orders.get_by_id("ORD-1001").tracking_number == "WB1000"
        assert products.get_by_id("p-1").stock == 9

    def test_courier_rejection_leaves_order_untouched(self):
        courier = FakeCourierGateway(error=CourierRejected(208, "Invalid Address"))
        machine, orders, products = _setup(make_order(status=OrderStatus.CONFIRMED), courier=courier)
        order = orders.get_by_id("ORD-1001")
        writes_before = orders.writes

        with pytest.raises(CourierRejected, match="Invalid Address"):
            machine.transition(order, OrderStatus.SHIPPED, "dispatcher")

        stored = orders.get_by_id("ORD-1001")
        assert stored.status == OrderStatus.CONFIRMED
        assert stored.tracking_number is None
        assert stored.logs == []
        assert orders.writes == writes_before

    def test_rejection_from_lead_does_not_touch_stock(self):
        courier = FakeCourierGateway(error=CourierRejected(214, "Courier Maintenance Mode"))
        machine, orders, products = _setup(make_order(), courier=courier)
        with pytest.raises(CourierRejected):
            machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.SHIPPED, "dispatcher")
        assert products.writes == 0


class TestIdempotence:

    def test_same_status_is_a_silent_no_op(self):
        machine, orders, products = _setup(make_order(status=OrderStatus.CONFIRMED))
        order = orders.get_by_id("ORD-1001")
        writes_before = orders.writes

        result = machine.transition(order, OrderStatus.CONFIRMED, "agent")

        assert result.status == OrderStatus.CONFIRMED
        assert orders.writes == writes_before
        assert orders.get_by_id("ORD-1001").logs == []
        assert products.writes == 0


class TestStock:

    def test_oversell_allowed_by_default(self):
        product = make_product(batches=[(1, "900")])
        machine, orders, products = _setup(make_order(items=[make_item(quantity=3)]), product)

        machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.CONFIRMED, "agent")

        assert orders.get_by_id("ORD-1001").status == OrderStatus.CONFIRMED
        assert products.get_by_id("p-1").stock == 0

    def test_strict_mode_blocks_before_dispatch(self):
        courier = FakeCourierGateway()
        product = make_product(batches=[(1, "900")])
        machine, orders, products = _setup(
            make_order(items=[make_item(quantity=3)]), product, courier, allow_oversell=False
        )

        with pytest.raises(InsufficientStock):
            machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.SHIPPED, "dispatcher")

        assert courier.calls == []
        assert orders.get_by_id("ORD-1001").status == OrderStatus.OPEN_LEAD
        assert products.get_by_id("p-1").stock == 1

    def test_missing_product_is_skipped_when_lenient(self):
        order = make_order(items=[make_item("p-gone")])
        machine, orders, _ = _setup(order)
        machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.CONFIRMED, "agent")
        assert orders.get_by_id("ORD-1001").status == OrderStatus.CONFIRMED

    def test_deduction_failure_after_handshake_logs_waybill(self):
        courier = FakeCourierGateway(waybill="WB77")
        orders = FakeOrderRepository("t1", [make_order()])
        products = UnwritableProductRepository("t1", [make_product()])
        machine = OrderStateMachine(
            orders=orders,
            ledger=InventoryLedger(lambda tenant_id: products),
            courier=courier,
            courier_settings=make_tenant().courier_settings,
            clock=lambda: NOW,
        )

        with capture_logs() as logs, pytest.raises(StoreUnavailable):
            machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.SHIPPED, "dispatcher")

        assert len(courier.calls) == 1
        assert orders.get_by_id("ORD-1001").status == OrderStatus.OPEN_LEAD
        failures = [
            e for e in logs if e["event"] == "Stock deduction failed after courier handshake"
        ]
        assert failures[0]["waybill"] == "WB77"
        assert failures[0]["log_level"] == "error"


class TestCourierDrivenMoves:

    def test_delivered_stamps_timestamp(self):
        order = make_order(status=OrderStatus.SHIPPED, tracking_number="WB1")
        machine, orders, _ = _setup(order)
        machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.DELIVERED, "Courier System")
        assert orders.get_by_id("ORD-1001").delivered_at == NOW

    def test_message_override(self):
        order = make_order(status=OrderStatus.SHIPPED, tracking_number="WB1")
        machine, orders, _ = _setup(order)
        machine.transition(
            orders.get_by_id("ORD-1001"), OrderStatus.TRANSFER, "Courier System", message="hub"
        )
        assert [log.message for log in orders.get_by_id("ORD-1001").logs] == ["hub"]

    def test_courier_waiting_needs_tracking(self):
        assert TRANSITIONS[(OrderStatus.PENDING, OrderStatus.SHIPPED)].requires_tracking is True

    def test_delivered_is_terminal(self):
        order = make_order(status=OrderStatus.DELIVERED, tracking_number="WB1")
        machine, _, _ = _setup(order)
        with pytest.raises(InvalidTransition):
            machine.transition(order, OrderStatus.RETURNED, "Courier System")


class TestReturnCompleted:

    def test_restocks_at_return_value(self):
        order = make_order(
            status=OrderStatus.RETURNED,
            tracking_number="WB1",
            items=[make_item(price="1500.00", quantity=2)],
        )
        machine, orders, products = _setup(order)

        machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.RETURN_COMPLETED, "desk")

        batch = products.get_by_id("p-1").batches[-1]
        assert batch.is_return
        assert batch.quantity == 2
        assert batch.buying_price == Money(Decimal("1200.00"))
        assert orders.get_by_id("ORD-1001").return_completed_at == NOW

    def test_not_allowed_from_lead(self):
        machine, orders, _ = _setup(make_order())
        with pytest.raises(InvalidTransition):
            machine.transition(orders.get_by_id("ORD-1001"), OrderStatus.RETURN_COMPLETED, "desk")
