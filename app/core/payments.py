"""
Stripe adapter: webhook signature verification, flattening a completed
Checkout session into a CheckoutCompletedEvent, and creating Checkout
sessions for the storefront.
"""
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe

from app.core import config
from app.schemas.webhook import CheckoutCompletedEvent, CheckoutMetadata

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class WebhookVerificationError(Exception):
    """Missing or invalid Stripe-Signature, or no webhook secret configured."""


def verify_webhook(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Check the Stripe-Signature header against the raw request body and return
    the decoded event. Nothing is parsed before the signature passes.
    """
    secret = config.STRIPE_WEBHOOK_SECRET
    if not signature:
        raise WebhookVerificationError("Missing stripe-signature header")
    if not secret:
        logger.error("Stripe webhook secret is not configured")
        raise WebhookVerificationError("Webhook secret not configured")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning("Webhook body is not valid UTF-8")
        raise WebhookVerificationError("Invalid payload") from e

    try:
        stripe.WebhookSignature.verify_header(body, signature, secret)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise WebhookVerificationError("Invalid signature") from e

    try:
        return json.loads(body)
    except ValueError as e:
        raise WebhookVerificationError("Invalid payload") from e


def checkout_event_from_session(session: Dict[str, Any]) -> CheckoutCompletedEvent:
    customer_details = session.get("customer_details") or {}
    payment_intent = session.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")

    metadata = session.get("metadata") or {}
    return CheckoutCompletedEvent(
        session_id=session["id"],
        customer_email=customer_details.get("email") or session.get("customer_email"),
        customer_name=customer_details.get("name"),
        customer_phone=customer_details.get("phone"),
        amount_total=session.get("amount_total"),
        currency=session.get("currency"),
        payment_intent_id=payment_intent,
        metadata=CheckoutMetadata(
            destination_slug=metadata.get("destination_slug") or None,
            duration=metadata.get("duration") or None,
            locale=metadata.get("locale") or None,
            bundle_name=metadata.get("bundle_name") or None,
        ),
    )


def _find_promotion_code(code: str) -> Optional[str]:
    try:
        promotion_codes = stripe.PromotionCode.list(code=code, active=True, limit=1)
    except stripe.StripeError as e:
        logger.error(f"Error looking up promotion code {code}: {e}")
        return None
    if promotion_codes.data:
        return promotion_codes.data[0].id
    return None


def create_checkout_session(
    *,
    destination_slug: str,
    destination_name: str,
    duration: int,
    locale: str,
    plan_name: str,
    price: Decimal,
    currency: str,
    bundle_name: Optional[str],
    origin: str,
    promo_code: Optional[str] = None,
) -> str:
    """
    Create a one-off payment Checkout session priced inline (no pre-created
    Stripe Prices) and return its hosted URL. Raises stripe.StripeError.
    """
    price_in_cents = int((Decimal(price) * 100).quantize(Decimal("1")))
    params: Dict[str, Any] = {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": [
            {
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {
                        "name": f"{destination_name} eSIM - {plan_name}",
                        "description": f"{duration}-day unlimited data eSIM for {destination_name}",
                        "metadata": {
                            "destination_slug": destination_slug,
                            "duration": str(duration),
                            "locale": locale,
                        },
                    },
                    "unit_amount": price_in_cents,
                },
                "quantity": 1,
            }
        ],
        "success_url": f"{origin}/{locale}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{origin}/{locale}/checkout/cancel",
        "metadata": {
            "destination_slug": destination_slug,
            "destination_name": destination_name,
            "duration": str(duration),
            "locale": locale,
            "bundle_name": bundle_name or "",
            "price_paid": str(price),
            "currency": currency,
        },
    }

    promotion_code_id = _find_promotion_code(promo_code) if promo_code else None
    if promotion_code_id:
        params["discounts"] = [{"promotion_code": promotion_code_id}]
        logger.info(f"Applied promotion code: {promo_code}")
    else:
        if promo_code:
            logger.info(f"Promotion code not found: {promo_code}, allowing manual entry")
        params["allow_promotion_codes"] = True

    mode = "TEST" if config.TEST_MODE else "LIVE"
    logger.info(f"Creating checkout session ({mode} mode) for {destination_slug}, {duration} days, {price_in_cents} {currency}")
    session = stripe.checkout.Session.create(**params)
    return session.url
