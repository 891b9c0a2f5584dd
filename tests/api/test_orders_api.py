import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.api


def test_status_pending_before_webhook(client: TestClient):
    response = client.get("/api/orders/cs_test_not_yet")

    assert response.status_code == 200
    assert response.json() == {"order": None, "status": "pending"}


def test_status_processing_without_qr(client: TestClient, create_paid_order):
    order = create_paid_order(session_id="cs_test_proc", esim_status="failed")

    response = client.get("/api/orders/cs_test_proc")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "processing"
    assert data["order"]["order_number"] == order.order_number
    assert data["order"]["esim_qr_code"] is None
    assert data["order"]["esim_status"] == "failed"


def test_status_ready_with_qr(client: TestClient, create_paid_order):
    create_paid_order(session_id="cs_test_ready", esim_qr_code="LPA:1$rsp.esim-go.com$ABC")

    data = client.get("/api/orders/cs_test_ready").json()

    assert data["status"] == "ready"
    assert data["order"]["esim_qr_code"] == "LPA:1$rsp.esim-go.com$ABC"
    assert data["order"]["destination_name"] == "Japan"
    assert data["order"]["plan_name"] == "Week Explorer"


def test_status_hides_internal_fields(client: TestClient, create_paid_order):
    create_paid_order(session_id="cs_test_private")

    order = client.get("/api/orders/cs_test_private").json()["order"]

    for field in ("customer_id", "stripe_session_id", "stripe_payment_intent_id", "esim_iccid", "bundle_name"):
        assert field not in order


def test_ping(client: TestClient):
    assert client.get("/ping").json() == {"message": "pong"}
