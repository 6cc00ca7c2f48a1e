"""CLI tests against a JSON store in a temporary directory."""

import json
import logging

import pytest
import structlog
from click.testing import CliRunner

from codship.domain.model.order import OrderStatus
from codship.infrastructure.cli.main import cli
from codship.infrastructure.persistence.json_document_store import JsonDocumentStore
from tests.fakes import make_order, make_product, make_tenant


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setenv("CODSHIP_LOG_LEVEL", "WARNING")
    monkeypatch.delenv("CODSHIP_CENTRAL_STORE", raising=False)
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    yield
    root.handlers, level = saved
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def store(tmp_path):
    store = JsonDocumentStore(tmp_path)
    store.tenants().save(make_tenant("t1"))
    store.tenants().save(make_tenant("t2", store_uri=str(tmp_path / "t2"), is_active=False))
    store.orders("t1").save_many(
        [
            make_order("ORD-1", status=OrderStatus.PENDING),
            make_order("ORD-2", status=OrderStatus.SHIPPED, tracking_number="WB200"),
        ]
    )
    store.products("t1").save(make_product())
    return store


def _run(store, *args):
    return CliRunner().invoke(cli, ["--store", store.location, *args])


class TestTenantCommands:

    def test_list_active(self, store):
        result = _run(store, "tenant", "list")
        assert result.exit_code == 0
        assert "Shop t1" in result.output
        assert "(central)" in result.output
        assert "Shop t2" not in result.output

    def test_list_all(self, store):
        result = _run(store, "tenant", "list", "--all")
        assert "Shop t2" in result.output

    def test_empty_store(self, tmp_path):
        result = CliRunner().invoke(cli, ["--store", str(tmp_path / "empty"), "tenant", "list"])
        assert result.exit_code == 0
        assert "No tenants found." in result.output


class TestOrderCommands:

    def test_show_opens_pending_lead(self, store):
        result = _run(store, "order", "show", "--tenant", "t1", "--id", "ORD-1")
        assert result.exit_code == 0
        assert "status=OPEN_LEAD" in result.output
        assert "[CLI Operator] Lead opened" in result.output
        assert store.orders("t1").get_by_id("ORD-1").status == OrderStatus.OPEN_LEAD

    def test_show_unknown_order(self, store):
        result = _run(store, "order", "show", "--tenant", "t1", "--id", "ORD-404")
        assert result.exit_code == 1
        assert "Order 'ORD-404' not found" in result.output

    def test_confirm_deducts_stock(self, store):
        _run(store, "order", "show", "--tenant", "t1", "--id", "ORD-1")
        result = _run(
            store, "order", "status", "--tenant", "t1", "--id", "ORD-1", "--to", "confirmed"
        )
        assert result.exit_code == 0
        assert "Order ORD-1 is now CONFIRMED." in result.output
        assert store.products("t1").get_by_id("p-1").stock == 9

    def test_invalid_transition(self, store):
        result = _run(store, "order", "status", "--tenant", "t1", "--id", "ORD-2", "--to", "HOLD")
        assert result.exit_code == 1
        assert store.orders("t1").get_by_id("ORD-2").status == OrderStatus.SHIPPED

    def test_return_restocks(self, store):
        result = _run(store, "order", "return", "--tenant", "t1", "--ref", "WB200")
        assert result.exit_code == 0
        assert "Order ORD-2 return completed" in result.output
        assert store.products("t1").get_by_id("p-1").stock == 11


class TestWebhookCommands:

    def test_replay(self, store, tmp_path):
        payload = tmp_path / "hook.json"
        payload.write_text(json.dumps({"waybill_id": "WB200", "current_status": "Delivered"}))

        result = _run(store, "webhook", "replay", str(payload))

        assert result.exit_code == 0
        assert "Outcome:  UPDATED" in result.output
        assert "Order:    ORD-2 (tenant t1)" in result.output
        assert store.orders("t1").get_by_id("ORD-2").status == OrderStatus.DELIVERED

    def test_replay_unknown_waybill(self, store, tmp_path):
        payload = tmp_path / "hook.txt"
        payload.write_text("waybill_id=WB-NOPE&status=Delivered")

        result = _run(
            store,
            "webhook",
            "replay",
            str(payload),
            "--content-type",
            "application/x-www-form-urlencoded",
        )

        assert "Outcome:  NOT_FOUND" in result.output
