"""HTTP tests for the FastAPI application (in-memory stores, fake courier)."""

import pytest
from fastapi.testclient import TestClient

from codship.application.tenant_registry import TenantRegistry
from codship.domain.exceptions import CourierRejected, CourierUnreachable
from codship.domain.model.order import OrderStatus
from codship.infrastructure.api.app import create_app
from codship.infrastructure.bootstrap import Services
from tests.fakes import (
    FakeCourierGateway,
    FakePool,
    FakeStore,
    make_order,
    make_product,
    make_tenant,
)


@pytest.fixture
def central():
    store = FakeStore(
        "mem://central",
        [make_tenant("t1"), make_tenant("t2", store_uri="mem://gone")],
    )
    store.seed(
        "t1",
        [
            make_order("ORD-1", status=OrderStatus.CONFIRMED),
            make_order("ORD-2", status=OrderStatus.SHIPPED, tracking_number="WB200"),
            make_order("ORD-3", status=OrderStatus.DELIVERED, tracking_number="WB300"),
        ],
        [make_product()],
    )
    return store


def _client(central, courier=None):
    registry = TenantRegistry(central, FakePool())
    services = Services.wire(registry, courier or FakeCourierGateway(waybill="WB900"))
    return TestClient(create_app(services))


class TestOrders:

    def test_health(self, central):
        response = _client(central).get("/health")
        assert response.json() == {"status": "ok", "central_store": "mem://central"}

    def test_list(self, central):
        response = _client(central).get("/orders", params={"tenantId": "t1", "limit": 2})
        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 3
        assert body["limit"] == 2
        assert len(body["data"]) == 2

    def test_get_one(self, central):
        response = _client(central).get("/orders", params={"tenantId": "t1", "id": "ORD-2"})
        assert response.json()["tracking_number"] == "WB200"

    def test_unknown_order_is_404(self, central):
        response = _client(central).get("/orders", params={"tenantId": "t1", "id": "ORD-9"})
        assert response.status_code == 404
        assert response.json()["error_type"] == "OrderNotFound"

    def test_unknown_tenant_is_404(self, central):
        response = _client(central).get("/orders", params={"tenantId": "nobody"})
        assert response.status_code == 404
        assert response.json()["error_type"] == "TenantNotFound"

    def test_unreachable_tenant_store_is_503(self, central):
        response = _client(central).get("/orders", params={"tenantId": "t2"})
        assert response.status_code == 503
        assert response.json()["error_type"] == "StoreUnavailable"

    def test_bad_status_filter_is_400(self, central):
        response = _client(central).get("/orders", params={"tenantId": "t1", "status": "LOST"})
        assert response.status_code == 400

    def test_upsert_accepts_camel_case(self, central):
        payload = {
            "tenantId": "t1",
            "orders": [
                {
                    "id": "NEW-1",
                    "customerName": "Kamala Silva",
                    "customerPhone": "0712223344",
                    "items": [{"productId": "p-1", "name": "Kettle", "price": "1500", "quantity": 2}],
                }
            ],
        }
        response = _client(central).post("/orders", json=payload)
        assert response.json() == {"success": True, "count": 1}
        stored = central.orders("t1").get_by_id("NEW-1")
        assert stored.customer_name == "Kamala Silva"
        assert stored.total_amount.amount == 3000

    def test_upsert_without_orders_is_400(self, central):
        response = _client(central).post("/orders", json={"tenantId": "t1"})
        assert response.status_code == 400

    def test_delete_by_ids(self, central):
        response = _client(central).delete(
            "/orders", params={"tenantId": "t1", "id": "ORD-1,ORD-9"}
        )
        assert response.json() == {"success": True, "count": 1}
        assert central.orders("t1").get_by_id("ORD-1") is None

    def test_change_status(self, central):
        response = _client(central).post(
            "/orders/status",
            json={"tenantId": "t1", "orderId": "ORD-2", "status": "DELIVERY", "actor": "agent"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "DELIVERY"

    def test_invalid_transition_is_409(self, central):
        response = _client(central).post(
            "/orders/status",
            json={"tenantId": "t1", "orderId": "ORD-3", "status": "OPEN_LEAD", "actor": "agent"},
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "InvalidTransition"

    def test_customer_history(self, central):
        response = _client(central).get(
            "/customer-history", params={"tenantId": "t1", "phone": "077 123 4567"}
        )
        assert response.json() == {"count": 3, "returns": 0}


class TestShipping:

    def test_ship_order(self, central):
        response = _client(central).post(
            "/ship-order",
            json={"tenantId": "t1", "order": {"id": "ORD-1", "parcelWeight": "2"}},
        )
        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "SHIPPED"
        assert body["tracking_number"] == "WB900"
        assert body["parcel_weight"] == "2"

    def test_courier_rejection_is_400(self, central):
        courier = FakeCourierGateway(error=CourierRejected(208, "Invalid Address"))
        response = _client(central, courier).post(
            "/ship-order", json={"tenantId": "t1", "order": {"id": "ORD-1"}}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid Address", "error_type": "CourierRejected"}

    def test_courier_outage_is_502(self, central):
        courier = FakeCourierGateway(error=CourierUnreachable("read timed out"))
        response = _client(central, courier).post(
            "/ship-order", json={"tenantId": "t1", "order": {"id": "ORD-1"}}
        )
        assert response.status_code == 502

    def test_process_return(self, central):
        response = _client(central).post(
            "/process-return", json={"tenantId": "t1", "trackingOrId": "wb200"}
        )
        assert response.json()["status"] == "RETURN_COMPLETED"
        assert central.products("t1").get_by_id("p-1").stock == 11


class TestCourierWebhook:

    def test_json_update(self, central):
        response = _client(central).post(
            "/courier-webhook",
            json={"waybill_id": "WB200", "current_status": "Delivered"},
        )
        assert response.status_code == 200
        assert response.text == "Success"
        assert central.orders("t1").get_by_id("ORD-2").status == OrderStatus.DELIVERED

    def test_form_update(self, central):
        response = _client(central).post(
            "/courier-webhook",
            data={"waybillId": "WB200", "delivery_status": "Returned to sender"},
        )
        assert response.text == "Success"
        assert central.orders("t1").get_by_id("ORD-2").status == OrderStatus.RETURNED

    def test_query_only_update(self, central):
        response = _client(central).post(
            "/courier-webhook", params={"waybill_id": "WB200", "status": "Delivered"}
        )
        assert response.text == "Success"

    def test_unknown_waybill_is_acknowledged(self, central):
        response = _client(central).post(
            "/courier-webhook", json={"waybill_id": "WB-NOPE", "status": "Delivered"}
        )
        assert response.status_code == 200
        assert response.text == "Waybill Processed (Not in Registry)"

    def test_missing_waybill_is_400(self, central):
        response = _client(central).post("/courier-webhook", json={"status": "Delivered"})
        assert response.status_code == 400
        assert response.json()["error_type"] == "MissingWaybillReference"
