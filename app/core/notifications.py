"""
Order confirmation email: rendering and dispatch.

There is a single template for every call site (webhook, operator retry,
operator resend). It renders the QR variant when an activation code is
available and the "payment confirmed, eSIM on its way" variant otherwise.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core import config
from app.core.qr import qr_image_url

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)

PLAN_NAMES = {
    5: "Quick Trip",
    7: "Week Explorer",
    15: "Extended Stay",
}


class EmailSendError(Exception):
    """The email API refused or never received the message."""


def plan_name_for(duration: Optional[int]) -> str:
    return PLAN_NAMES.get(duration, f"{duration}-Day Plan")


def format_amount(amount_cents: Optional[int], currency: Optional[str]) -> str:
    if not amount_cents:
        return "Paid"
    return f"{amount_cents / 100:.2f} {(currency or '').upper()}".strip()


@dataclass
class ConfirmationEmail:
    to: str
    subject: str
    html: str


def render_confirmation_email(
    *,
    to: str,
    customer_name: Optional[str],
    order_number: str,
    destination_name: str,
    plan_name: str,
    duration: int,
    amount_paid: str,
    qr_code: Optional[str] = None,
) -> ConfirmationEmail:
    first_name = (customer_name or "").split(" ")[0] or "there"
    if qr_code:
        subject = f"Your {destination_name} eSIM is ready! ✈️"
    else:
        subject = f"Order {order_number} - Payment confirmed for your {destination_name} eSIM"

    html = _env.get_template("emails/order_confirmation.html").render(
        first_name=first_name,
        order_number=order_number,
        destination_name=destination_name,
        plan_name=plan_name,
        duration=duration,
        amount_paid=amount_paid,
        qr_code=qr_code,
        qr_image_url=qr_image_url(qr_code) if qr_code else None,
        logo_url=config.EMAIL_LOGO_URL,
        support_phone=config.SUPPORT_PHONE,
    )
    return ConfirmationEmail(to=to, subject=subject, html=html)


def confirmation_email_for_order(order) -> ConfirmationEmail:
    """Build the email from a persisted Order (customer relationship loaded)."""
    return render_confirmation_email(
        to=order.customer.email,
        customer_name=order.customer.name,
        order_number=order.order_number,
        destination_name=order.destination_name,
        plan_name=order.plan_name or plan_name_for(order.duration),
        duration=order.duration,
        amount_paid=format_amount(order.amount_cents, order.currency),
        qr_code=order.esim_qr_code,
    )


class ResendMailer:
    """Sends through the Resend HTTP API (POST /emails)."""

    def __init__(
        self,
        api_key: str,
        sender: str = config.EMAIL_FROM,
        base_url: str = config.RESEND_API_BASE,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def send(self, email: ConfirmationEmail) -> Optional[str]:
        if not self.api_key:
            raise EmailSendError("RESEND_API_KEY not configured")

        payload = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Authorization": f"Bearer {self.api_key}"},
                transport=self._transport,
            ) as client:
                response = client.post("/emails", json=payload)
        except httpx.HTTPError as e:
            raise EmailSendError(f"Email API request failed: {e}") from e

        if not response.is_success:
            raise EmailSendError(f"Email API error: {response.status_code} - {response.text}")

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None
        logger.info(f"Email '{email.subject}' sent to {email.to} (id: {message_id})")
        return message_id


def build_mailer() -> ResendMailer:
    return ResendMailer(api_key=config.RESEND_API_KEY)
