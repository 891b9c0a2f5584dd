"""
Order fulfillment: turn a paid Checkout session into exactly one Order, give
it an eSIM and email the customer.

Every entry point (webhook, operator retry, operator resend) is safe to call
any number of times for the same session. Progress is read from the order
row itself, so a call picks up wherever the last one stopped:

    NEW / PROVISION_FAILED -> provision -> PROVISIONED -> email -> COMPLETE
    NEW / PROVISION_FAILED -> email (no QR yet) -> EMAIL_SENT -> provision -> COMPLETE

Fields only ever move forward: a QR code is never overwritten and
confirmation_email_sent never goes back to False.
"""
import enum
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import config
from app.core.esim_provider import ProvisioningError
from app.core.notifications import EmailSendError, confirmation_email_for_order, plan_name_for
from app.crud import crud_customer, crud_destination, crud_order
from app.models.order import Order
from app.schemas.fulfillment import FulfillmentResult
from app.schemas.order import OrderCreateInternal, OrderUpdate
from app.schemas.webhook import CheckoutCompletedEvent

logger = logging.getLogger(__name__)

MAX_ORDER_NUMBER_ATTEMPTS = 5
DEFAULT_DESTINATION_NAME = "your destination"


class FulfillmentState(str, enum.Enum):
    NEW = "new"
    PROVISION_FAILED = "provision_failed"
    PROVISIONED = "provisioned"
    EMAIL_SENT = "email_sent"
    COMPLETE = "complete"


class FulfillmentError(Exception):
    """Base class for operator-facing fulfillment errors."""


class OrderNotFoundError(FulfillmentError):
    pass


class AlreadyProvisionedError(FulfillmentError):
    pass


class MissingBundleError(FulfillmentError):
    pass


class NothingToSendError(FulfillmentError):
    pass


class OrderNumberAllocationError(Exception):
    pass


def fulfillment_state(order: Order) -> FulfillmentState:
    has_qr = bool(order.esim_qr_code)
    if has_qr and order.confirmation_email_sent:
        return FulfillmentState.COMPLETE
    if has_qr:
        return FulfillmentState.PROVISIONED
    if order.confirmation_email_sent:
        return FulfillmentState.EMAIL_SENT
    if order.esim_status == "failed":
        return FulfillmentState.PROVISION_FAILED
    return FulfillmentState.NEW


def resolve_destination_name(db: Session, *, slug: Optional[str], locale: Optional[str]) -> str:
    if not slug:
        return DEFAULT_DESTINATION_NAME
    if locale:
        destination = crud_destination.get_destination(db, slug=slug, locale=locale)
        if destination:
            return destination.name
    return slug


def _parse_duration(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        logger.warning(f"Unparseable duration in checkout metadata: {value!r}")
        return 0


def _create_order(db: Session, event: CheckoutCompletedEvent, now: datetime) -> Order:
    """
    Insert the order for this session. If another request inserted it first,
    return that row instead. Order number collisions are retried with a fresh
    number.
    """
    metadata = event.metadata
    customer = crud_customer.upsert_customer(
        db, email=event.customer_email, name=event.customer_name, phone=event.customer_phone
    )
    destination_name = resolve_destination_name(db, slug=metadata.destination_slug, locale=metadata.locale)
    duration = _parse_duration(metadata.duration)

    for attempt in range(1, MAX_ORDER_NUMBER_ATTEMPTS + 1):
        order_number = crud_order.next_order_number(
            db, on_date=now.date(), prefix=config.ORDER_NUMBER_PREFIX
        )
        order_in = OrderCreateInternal(
            order_number=order_number,
            customer_id=customer.id,
            destination_slug=metadata.destination_slug or "unknown",
            destination_name=destination_name,
            duration=duration,
            plan_name=plan_name_for(duration),
            bundle_name=metadata.bundle_name or None,
            amount_cents=event.amount_total or 0,
            currency=(event.currency or config.DEFAULT_CURRENCY).upper(),
            locale=metadata.locale or config.DEFAULT_LOCALE,
            status="paid",
            stripe_session_id=event.session_id,
            stripe_payment_intent_id=event.payment_intent_id,
            paid_at=now,
        )
        try:
            order = crud_order.create_order(db, obj_in=order_in)
        except IntegrityError:
            db.rollback()
            existing = crud_order.get_order_by_session(db, session_id=event.session_id)
            if existing is not None:
                logger.info(f"Order {existing.order_number} for session {event.session_id} was created concurrently")
                return existing
            logger.warning(
                f"Order number {order_number} already taken, retrying "
                f"({attempt}/{MAX_ORDER_NUMBER_ATTEMPTS})"
            )
            continue

        logger.info(f"Created order {order.order_number} for session {event.session_id}")
        return order

    raise OrderNumberAllocationError(
        f"Could not allocate an order number for session {event.session_id} "
        f"after {MAX_ORDER_NUMBER_ATTEMPTS} attempts"
    )


def provision_order(
    db: Session, order: Order, *, provisioner, bundle_name: str, now: Optional[datetime] = None
) -> Order:
    """
    One provisioning attempt for an order without a QR code.

    On success the SIM profile is persisted and the refreshed order returned.
    On failure esim_status is set to "failed" and ProvisioningError raised.
    """
    try:
        esim = provisioner.provision(bundle_name, order.order_number)
        qr_code = esim.qr_code
    except Exception as e:
        logger.error(f"eSIM provisioning failed for order {order.order_number}: {e}")
        crud_order.update_order(db, db_obj=order, obj_in=OrderUpdate(esim_status="failed"))
        if isinstance(e, ProvisioningError):
            raise
        raise ProvisioningError(str(e)) from e

    order = crud_order.update_order(
        db,
        db_obj=order,
        obj_in=OrderUpdate(
            esim_iccid=esim.iccid,
            esim_smdp_address=esim.smdp_address,
            esim_matching_id=esim.matching_id,
            esim_qr_code=qr_code,
            esim_provisioned_at=now or datetime.now(timezone.utc),
            esim_status="ordered",
        ),
    )
    logger.info(f"eSIM provisioned for order {order.order_number}: ICCID {order.esim_iccid}")
    return order


def send_confirmation(db: Session, order: Order, *, mailer) -> Order:
    """Send the confirmation email and mark it sent. Raises EmailSendError."""
    try:
        mailer.send(confirmation_email_for_order(order))
    except EmailSendError:
        raise
    except Exception as e:
        raise EmailSendError(str(e)) from e

    order = crud_order.update_order(db, db_obj=order, obj_in=OrderUpdate(confirmation_email_sent=True))
    logger.info(f"Confirmation email sent for order {order.order_number} to {order.customer.email}")
    return order


def resume_fulfillment(
    db: Session,
    order: Order,
    *,
    provisioner,
    mailer,
    bundle_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FulfillmentResult:
    """
    Run whatever is still missing for an existing order: provisioning while
    there is no QR code, then the email while it has not been sent. Failures
    are recorded on the order and in the result, never raised.
    """
    if not order.esim_qr_code:
        bundle = bundle_name or order.bundle_name
        if bundle:
            try:
                order = provision_order(db, order, provisioner=provisioner, bundle_name=bundle, now=now)
            except ProvisioningError:
                pass  # recorded as esim_status="failed"; the email goes out without a QR
        else:
            logger.warning(f"No bundle name for order {order.order_number}, skipping eSIM provisioning")

    email_error = None
    if not order.confirmation_email_sent:
        try:
            order = send_confirmation(db, order, mailer=mailer)
        except EmailSendError as e:
            email_error = str(e)
            logger.error(f"Failed to send confirmation email for order {order.order_number}: {e}")

    return FulfillmentResult(
        order_number=order.order_number,
        esim_provisioned=bool(order.esim_qr_code),
        email_sent=bool(order.confirmation_email_sent),
        email_error=email_error,
    )


def handle_payment_completed(
    db: Session,
    event: CheckoutCompletedEvent,
    *,
    provisioner,
    mailer,
    now: Optional[datetime] = None,
) -> FulfillmentResult:
    """
    Fulfil a verified checkout.session.completed event. Idempotent per
    session id: replays of a completed order are no-ops, replays of an
    incomplete one resume it.
    """
    now = now or datetime.now(timezone.utc)
    if not event.customer_email:
        logger.warning(f"No customer email on checkout session {event.session_id}, nothing to fulfil")
        return FulfillmentResult(skipped=True)

    order = crud_order.get_order_by_session(db, session_id=event.session_id)
    if order is None:
        order = _create_order(db, event, now)
    else:
        logger.info(f"Order {order.order_number} already exists for session {event.session_id}")

    if fulfillment_state(order) is FulfillmentState.COMPLETE:
        return FulfillmentResult(
            order_number=order.order_number,
            esim_provisioned=True,
            email_sent=True,
            duplicate=True,
        )

    return resume_fulfillment(
        db,
        order,
        provisioner=provisioner,
        mailer=mailer,
        bundle_name=event.metadata.bundle_name,
        now=now,
    )


def get_order_or_raise(db: Session, *, session_id: str) -> Order:
    order = crud_order.get_order_by_session(db, session_id=session_id)
    if order is None:
        raise OrderNotFoundError("Order not found")
    return order


def retry_order(db: Session, *, session_id: str, provisioner, mailer) -> Order:
    """
    Operator retry: provision an order that has no QR code yet, then send the
    QR email. Unlike the webhook path, failures are raised to the caller.
    """
    order = get_order_or_raise(db, session_id=session_id)
    if order.esim_qr_code:
        raise AlreadyProvisionedError("eSIM already provisioned")
    if not order.bundle_name:
        raise MissingBundleError("No bundle name for this order")

    order = provision_order(db, order, provisioner=provisioner, bundle_name=order.bundle_name)
    return send_confirmation(db, order, mailer=mailer)


def resend_confirmation(db: Session, *, session_id: str, mailer) -> Order:
    order = get_order_or_raise(db, session_id=session_id)
    if not order.esim_qr_code:
        raise NothingToSendError("No QR code to send - provision eSIM first")
    return send_confirmation(db, order, mailer=mailer)


def retry_fulfillment(db: Session, *, session_id: str, provisioner, mailer) -> FulfillmentResult:
    order = get_order_or_raise(db, session_id=session_id)
    return resume_fulfillment(db, order, provisioner=provisioner, mailer=mailer)
