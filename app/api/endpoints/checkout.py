import logging

import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core import config
from app.core.notifications import plan_name_for
from app.core.payments import create_checkout_session
from app.crud import crud_destination
from app.db.session import get_db
from app.schemas.checkout import CheckoutRequest, CheckoutResponse

logger = logging.getLogger(__name__)
router = APIRouter()

CHECKOUT_DURATIONS = (5, 7, 15)


def display_name_from_slug(slug: str) -> str:
    return slug.replace("-", " ").title()


@router.post("", response_model=CheckoutResponse)
def create_checkout(
    payload: CheckoutRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Start a Stripe Checkout session for one plan. The wholesale bundle name
    travels in the session metadata so the webhook can provision it later.
    """
    if payload.duration not in CHECKOUT_DURATIONS:
        return JSONResponse(status_code=400, content={"error": "Invalid duration. Must be 5, 7, or 15."})

    plan = crud_destination.get_plan(db, destination_slug=payload.destination, locale=payload.locale)
    if not plan:
        return JSONResponse(status_code=404, content={"error": "Plan not found for this destination and locale"})

    price = plan.price_for(payload.duration)
    if not price or price <= 0:
        logger.error(f"Price not configured for {payload.destination}/{payload.locale}, {payload.duration} days")
        return JSONResponse(status_code=400, content={"error": "Price not configured for this plan"})

    destination = crud_destination.get_destination(db, slug=payload.destination, locale=payload.locale)
    destination_name = destination.name if destination else display_name_from_slug(payload.destination)

    if not stripe.api_key:
        logger.error("Stripe API key is not configured. Cannot create checkout session.")
        return JSONResponse(status_code=500, content={"error": "Failed to create checkout session"})

    try:
        url = create_checkout_session(
            destination_slug=payload.destination,
            destination_name=destination_name,
            duration=payload.duration,
            locale=payload.locale,
            plan_name=plan_name_for(payload.duration),
            price=price,
            currency=plan.currency,
            bundle_name=plan.bundle_for(payload.duration),
            origin=request.headers.get("origin") or config.SITE_URL,
            promo_code=payload.promo_code,
        )
    except stripe.StripeError as e:
        logger.error(f"Stripe API error creating checkout session for {payload.destination}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to create checkout session"})

    return CheckoutResponse(url=url)
