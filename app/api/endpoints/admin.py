import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core import config, fulfillment
from app.core.dependencies import get_current_operator, get_mailer, get_provisioner
from app.core.esim_provider import ProvisioningError
from app.core.notifications import EmailSendError
from app.core.security import create_access_token, verify_admin_credentials
from app.crud import crud_customer, crud_order
from app.db.session import get_db
from app.schemas.customer import CustomerWithOrderCount
from app.schemas.fulfillment import (
    AdminStats,
    FulfillmentResult,
    OrderActionRequest,
    OrderActionResponse,
    RetryOrderRequest,
)
from app.schemas.order import OrderWithCustomer
from app.schemas.token import Token, TokenData

logger = logging.getLogger(__name__)
router = APIRouter()

ORDER_ACTIONS = ("retry", "resend")

# Operator errors that map straight to a status code
FULFILLMENT_ERROR_STATUS = {
    fulfillment.OrderNotFoundError: status.HTTP_404_NOT_FOUND,
    fulfillment.AlreadyProvisionedError: status.HTTP_409_CONFLICT,
    fulfillment.MissingBundleError: status.HTTP_409_CONFLICT,
    fulfillment.NothingToSendError: status.HTTP_400_BAD_REQUEST,
}


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra})


def _fulfillment_error(e: fulfillment.FulfillmentError) -> JSONResponse:
    return _error(FULFILLMENT_ERROR_STATUS.get(type(e), status.HTTP_400_BAD_REQUEST), str(e))


@router.post("/login", response_model=Token)
def login_for_access_token(response: Response, form_data: OAuth2PasswordRequestForm = Depends()):
    """
    OAuth2 compatible operator login. The token is returned and also set as
    the admin session cookie.
    """
    if not verify_admin_credentials(form_data.username, form_data.password):
        logger.warning(f"Failed admin login for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expires = timedelta(hours=config.ADMIN_SESSION_EXPIRE_HOURS)
    access_token = create_access_token(data={"sub": form_data.username}, expires_delta=expires)
    response.set_cookie(
        key=config.ADMIN_SESSION_COOKIE,
        value=access_token,
        max_age=int(expires.total_seconds()),
        httponly=True,
        secure=not config.TEST_MODE,
        samesite="lax",
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(config.ADMIN_SESSION_COOKIE)
    return {"success": True}


@router.post("/order-action", response_model=OrderActionResponse)
def order_action(
    payload: OrderActionRequest,
    db: Session = Depends(get_db),
    provisioner=Depends(get_provisioner),
    mailer=Depends(get_mailer),
    operator: TokenData = Depends(get_current_operator),
):
    """
    Per-order operator actions:
    - retry: provision an eSIM for an order without one, then send the QR email.
    - resend: send the QR email again.
    """
    if not payload.session_id or not payload.action:
        return _error(status.HTTP_400_BAD_REQUEST, "session_id and action required")
    if payload.action not in ORDER_ACTIONS:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid action")

    logger.info(f"Operator {operator.username}: {payload.action} for session {payload.session_id}")

    if payload.action == "retry":
        try:
            order = fulfillment.retry_order(
                db, session_id=payload.session_id, provisioner=provisioner, mailer=mailer
            )
        except fulfillment.FulfillmentError as e:
            return _fulfillment_error(e)
        except ProvisioningError as e:
            return _error(status.HTTP_502_BAD_GATEWAY, "Failed to provision eSIM", details=str(e))
        except EmailSendError as e:
            logger.error(f"Retry for session {payload.session_id}: eSIM provisioned but email failed: {e}")
            return _error(status.HTTP_502_BAD_GATEWAY, "Failed to send email", esim_provisioned=True)
        return {"success": True, "message": f"eSIM provisioned and email sent to {order.customer.email}"}

    try:
        order = fulfillment.resend_confirmation(db, session_id=payload.session_id, mailer=mailer)
    except fulfillment.FulfillmentError as e:
        return _fulfillment_error(e)
    except EmailSendError as e:
        return _error(status.HTTP_502_BAD_GATEWAY, "Failed to resend email", details=str(e))
    return {"success": True, "message": f"Email resent to {order.customer.email}"}


@router.post("/retry-order", response_model=FulfillmentResult)
def retry_order(
    payload: RetryOrderRequest,
    db: Session = Depends(get_db),
    provisioner=Depends(get_provisioner),
    mailer=Depends(get_mailer),
    operator: TokenData = Depends(get_current_operator),
):
    """Resume whatever is still missing (eSIM, email) for an existing order."""
    if not payload.session_id:
        return _error(status.HTTP_400_BAD_REQUEST, "session_id required")
    try:
        return fulfillment.retry_fulfillment(
            db, session_id=payload.session_id, provisioner=provisioner, mailer=mailer
        )
    except fulfillment.FulfillmentError as e:
        return _fulfillment_error(e)


@router.get("/orders", response_model=List[OrderWithCustomer])
def read_orders(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, description="Order number, customer email/name or destination"),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(pending|complete)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
    operator: TokenData = Depends(get_current_operator),
):
    return crud_order.get_orders(db, search=search, status=status_filter, skip=skip, limit=limit)


@router.get("/customers", response_model=List[CustomerWithOrderCount])
def read_customers(
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
    operator: TokenData = Depends(get_current_operator),
):
    rows = crud_customer.get_customers_with_order_counts(db, search=search, skip=skip, limit=limit)
    return [
        CustomerWithOrderCount.model_validate(customer).model_copy(update={"order_count": order_count})
        for customer, order_count in rows
    ]


@router.get("/stats", response_model=AdminStats)
def read_stats(
    db: Session = Depends(get_db),
    operator: TokenData = Depends(get_current_operator),
):
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    return AdminStats(
        total_orders=crud_order.get_order_count(db),
        total_customers=crud_customer.get_customer_count(db),
        recent_orders=crud_order.get_recent_order_count(db, since=week_ago),
        pending_esims=crud_order.get_pending_fulfillment_count(db),
        total_revenue_cents=crud_order.get_paid_revenue_cents(db),
    )
