import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from app.main import app
from app.core import config
from app.core.dependencies import get_mailer, get_provisioner
from app.crud import crud_customer, crud_order
from app.db.base import Base
from app.db.init_db import init_db
from app.db.session import get_db
from app.models.destination import Destination, Plan
from app.models.order import Order
from app.schemas.order import OrderCreateInternal
from tests.utils import (
    ADMIN_API_KEY,
    ADMIN_PASSWORD,
    ADMIN_USERNAME,
    WEBHOOK_SECRET,
    FakeMailer,
    FakeProvisioner,
    sign_payload,
)

# Use a separate SQLite database for testing
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

init_db(engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="session")
def test_engine():
    init_db(engine)
    yield engine

@pytest.fixture(scope="function")
def db_session(test_engine):
    """
    Fresh schema and a session per test. Commits made by CRUD functions are
    visible to API calls made through the TestClient in the same test.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "ADMIN_USERNAME", ADMIN_USERNAME)
    monkeypatch.setattr(config, "ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setattr(config, "ADMIN_API_KEY", ADMIN_API_KEY)
    monkeypatch.setattr(config, "SECRET_KEY", "test-secret-key")
    monkeypatch.setattr(config, "ORDER_NUMBER_PREFIX", "TRV")

@pytest.fixture(scope="function")
def fake_provisioner() -> FakeProvisioner:
    return FakeProvisioner()

@pytest.fixture(scope="function")
def fake_mailer() -> FakeMailer:
    return FakeMailer()

@pytest.fixture(scope="function")
def client(db_session, fake_provisioner, fake_mailer):
    app.dependency_overrides[get_provisioner] = lambda: fake_provisioner
    app.dependency_overrides[get_mailer] = lambda: fake_mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_provisioner, None)
    app.dependency_overrides.pop(get_mailer, None)

@pytest.fixture(scope="function")
def operator_headers(client: TestClient) -> dict:
    response = client.post(
        "/api/admin/login", data={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}

@pytest.fixture(scope="function")
def api_key_headers() -> dict:
    return {"Authorization": f"Bearer {ADMIN_API_KEY}"}


@pytest.fixture(scope="function")
def post_webhook(client: TestClient):
    def _post(payload: str, signature: Optional[str] = None):
        headers = {"Content-Type": "application/json"}
        headers["Stripe-Signature"] = signature if signature is not None else sign_payload(payload)
        return client.post("/api/webhooks/stripe", content=payload, headers=headers)
    return _post

@pytest.fixture(scope="function")
def destination_japan(db_session: Session) -> Destination:
    destination = Destination(slug="japan", locale="en-au", name="Japan")
    plan = Plan(
        destination_slug="japan",
        locale="en-au",
        currency="AUD",
        price_5day=Decimal("19.99"),
        price_7day=Decimal("29.99"),
        price_15day=Decimal("49.99"),
        bundle_5day="esim_UL_5D_JP_V2",
        bundle_7day="esim_UL_7D_JP_V2",
        bundle_15day=None,
    )
    db_session.add_all([destination, plan])
    db_session.commit()
    db_session.refresh(destination)
    return destination

@pytest.fixture(scope="function")
def create_paid_order(db_session: Session):
    """Factory for orders in an arbitrary fulfillment state."""
    counter = {"n": 0}

    def _create(
        email: str = "traveller@example.com",
        name: Optional[str] = "Alex Traveller",
        session_id: Optional[str] = None,
        bundle_name: Optional[str] = "esim_UL_7D_JP_V2",
        esim_qr_code: Optional[str] = None,
        confirmation_email_sent: bool = False,
        esim_status: Optional[str] = None,
        amount_cents: int = 2999,
        destination_name: str = "Japan",
        status: str = "paid",
    ) -> Order:
        counter["n"] += 1
        customer = crud_customer.upsert_customer(db_session, email=email, name=name)
        order = crud_order.create_order(
            db_session,
            obj_in=OrderCreateInternal(
                order_number=f"TRV-20260101-{counter['n']:03d}",
                customer_id=customer.id,
                destination_slug="japan",
                destination_name=destination_name,
                duration=7,
                plan_name="Week Explorer",
                bundle_name=bundle_name,
                amount_cents=amount_cents,
                currency="AUD",
                locale="en-au",
                status=status,
                stripe_session_id=session_id or f"cs_test_{uuid.uuid4().hex[:12]}",
                paid_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            ),
        )
        if esim_qr_code or confirmation_email_sent or esim_status:
            order.esim_qr_code = esim_qr_code
            order.confirmation_email_sent = confirmation_email_sent
            order.esim_status = esim_status or ("ordered" if esim_qr_code else None)
            db_session.commit()
            db_session.refresh(order)
        return order

    return _create
