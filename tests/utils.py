import hashlib
import hmac
import json
import time
import uuid
from typing import Optional

from app.core.esim_provider import ProvisionedEsim, ProvisioningError
from app.core.notifications import EmailSendError

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_USERNAME = "ops"
ADMIN_PASSWORD = "correct-horse"
ADMIN_API_KEY = "test-admin-api-key"


class FakeProvisioner:
    """Stands in for eSIM Go: records every call, optionally fails."""

    def __init__(self):
        self.calls = []
        self.error: Optional[Exception] = None

    def provision(self, bundle_name: str, order_reference: str) -> ProvisionedEsim:
        self.calls.append((bundle_name, order_reference))
        if self.error is not None:
            raise self.error
        return ProvisionedEsim(
            iccid=f"89000000000000{len(self.calls):06d}",
            smdp_address="smdp.example.com",
            matching_id=f"MATCH-{order_reference}",
        )

    def fail_with(self, message: str = "eSIM Go API error: 500 - out of stock"):
        self.error = ProvisioningError(message)


class FakeMailer:
    """Stands in for the email API: keeps sent messages, optionally fails."""

    def __init__(self):
        self.sent = []
        self.attempts = 0
        self.fail = False

    def send(self, email):
        self.attempts += 1
        if self.fail:
            raise EmailSendError("Email API error: 500 - mail server down")
        self.sent.append(email)
        return f"msg_{len(self.sent)}"


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Stripe-Signature header value for a raw payload."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_session_payload(
    session_id: Optional[str] = None,
    email: Optional[str] = "traveller@example.com",
    name: Optional[str] = "Alex Traveller",
    phone: Optional[str] = None,
    amount_total: int = 2999,
    currency: str = "aud",
    metadata: Optional[dict] = None,
) -> dict:
    if metadata is None:
        metadata = {
            "destination_slug": "japan",
            "duration": "7",
            "locale": "en-au",
            "bundle_name": "esim_UL_7D_JP_V2",
        }
    return {
        "id": session_id or f"cs_test_{uuid.uuid4().hex[:12]}",
        "object": "checkout.session",
        "amount_total": amount_total,
        "currency": currency,
        "payment_intent": f"pi_{uuid.uuid4().hex[:12]}",
        "customer_details": {"email": email, "name": name, "phone": phone},
        "metadata": metadata,
    }


def stripe_event(session: dict, event_type: str = "checkout.session.completed") -> str:
    return json.dumps({
        "id": f"evt_{uuid.uuid4().hex[:12]}",
        "object": "event",
        "type": event_type,
        "data": {"object": session},
    })
