import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional

from app.core import fulfillment
from app.core.dependencies import get_mailer, get_provisioner
from app.core.payments import (
    CHECKOUT_COMPLETED,
    WebhookVerificationError,
    checkout_event_from_session,
    verify_webhook,
)
from app.db.session import get_db

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
    provisioner=Depends(get_provisioner),
    mailer=Depends(get_mailer),
):
    """
    Stripe webhook receiver. Once the signature checks out the event is always
    acknowledged with 200, so Stripe does not retry because of our own
    downstream failures; those stay visible on the order for operators.
    """
    payload = await request.body()
    try:
        event = verify_webhook(payload, stripe_signature)
    except WebhookVerificationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    event_type = event.get("type")
    if event_type != CHECKOUT_COMPLETED:
        logger.info(f"Ignoring Stripe event {event.get('id')} of type {event_type}")
        return {"received": True}

    session = (event.get("data") or {}).get("object") or {}
    logger.info(f"Processing {CHECKOUT_COMPLETED} for session {session.get('id')}")
    try:
        result = await run_in_threadpool(
            fulfillment.handle_payment_completed,
            db,
            checkout_event_from_session(session),
            provisioner=provisioner,
            mailer=mailer,
        )
    except Exception as e:
        logger.error(f"Fulfillment failed for session {session.get('id')}: {e}", exc_info=True)
        db.rollback()
        return {"received": True}

    return {"received": True, **result.model_dump(exclude_none=True)}
