"""Integration tests for the orders API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from fulfillment.api.routes import order_router
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client(service):
    app = FastAPI()
    app.include_router(order_router)
    app.state.fulfillment = service
    register_exception_handlers(app)
    return TestClient(app)


class TestFulfillOrderAPI:
    def test_success_returns_200_with_tracking_number(self, client, paid_order):
        order_id, _ = paid_order()
        response = client.post(f"/orders/{order_id}/fulfill")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "Completed"
        assert body["tracking_number"].startswith("TRK")
        assert body["degraded"] is False

    def test_stage_failure_returns_400(self, client, make_product, make_order):
        order_id = make_order([(make_product(), 1)])
        response = client.post(f"/orders/{order_id}/fulfill")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["stage"] == "payment"
        assert body["error"] == "payment_mismatch"

    def test_unknown_order_returns_404(self, client):
        response = client.post("/orders/ord-missing/fulfill")
        assert response.status_code == 404
        assert response.json()["error"] == "order_not_found"

    def test_second_fulfill_returns_409(self, client, paid_order):
        order_id, _ = paid_order()
        client.post(f"/orders/{order_id}/fulfill")

        response = client.post(f"/orders/{order_id}/fulfill")
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_state"

    def test_degraded_success_lists_warnings(self, client, paid_order, notifier):
        notifier.configure(should_succeed=False)
        order_id, _ = paid_order()

        body = client.post(f"/orders/{order_id}/fulfill").json()

        assert body["success"] is True
        assert body["degraded"] is True
        assert body["warnings"][0]["error"] == "notification_failure"


class TestGetOrderAPI:
    def test_returns_order_with_decimal_money(self, client, paid_order):
        order_id, products = paid_order(quantities=(2, 1), prices=("19.99", "5.00"))

        response = client.get(f"/orders/{order_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "Pending"
        assert body["total"] == "44.98"
        subtotals = sorted(item["subtotal"] for item in body["items"])
        assert subtotals == ["39.98", "5.00"]

    def test_reflects_failure(self, client, make_product, make_order):
        order_id = make_order([(make_product(), 1)])
        client.post(f"/orders/{order_id}/fulfill")

        body = client.get(f"/orders/{order_id}").json()
        assert body["status"] == "Failed"
        assert body["failed_stage"] == "payment"
        assert body["failure_reason"] == "No completed payment found for order"

    def test_unknown_order_returns_404(self, client):
        assert client.get("/orders/ord-missing").status_code == 404


class TestCancelAPI:
    def test_idle_order_reports_nothing_to_cancel(self, client):
        response = client.post("/orders/ord-idle/cancel", json={"reason": "customer request"})
        assert response.status_code == 202
        assert response.json() == {"order_id": "ord-idle", "cancellation_requested": False}
