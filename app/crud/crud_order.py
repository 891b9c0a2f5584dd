from datetime import date, datetime
from sqlalchemy import func, or_, and_
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List

from app.models.order import Order
from app.models.customer import Customer
from app.schemas.order import OrderCreateInternal, OrderUpdate

PENDING_FILTER = "pending"
COMPLETE_FILTER = "complete"

def create_order(db: Session, *, obj_in: OrderCreateInternal) -> Order:
    """
    Create a new order.
    Raises sqlalchemy.exc.IntegrityError if the session id or order number is
    already taken; the caller decides how to recover.
    """
    db_obj = Order(**obj_in.model_dump())
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

def get_order(db: Session, order_id: int) -> Optional[Order]:
    return (
        db.query(Order)
        .options(joinedload(Order.customer))
        .filter(Order.id == order_id)
        .first()
    )

def get_order_by_session(db: Session, *, session_id: str) -> Optional[Order]:
    """
    Get a single order by its Stripe Checkout session id (the idempotency key).
    Eager loads the customer, which every fulfillment step needs for the email.
    """
    return (
        db.query(Order)
        .options(joinedload(Order.customer))
        .filter(Order.stripe_session_id == session_id)
        .first()
    )

def update_order(db: Session, *, db_obj: Order, obj_in: OrderUpdate) -> Order:
    """
    Update an order. Only fields explicitly set on obj_in are written, so a
    step never clears a field another step populated.
    """
    update_data = obj_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

def next_order_number(db: Session, *, on_date: date, prefix: str = "TRV") -> str:
    """
    Next human-readable order number for the given day: PREFIX-YYYYMMDD-NNN.
    Read-max-then-increment; the unique constraint on order_number catches
    two requests computing the same number.
    """
    day_prefix = f"{prefix}-{on_date.strftime('%Y%m%d')}-"
    existing = (
        db.query(Order.order_number)
        .filter(Order.order_number.like(f"{day_prefix}%"))
        .all()
    )
    last_num = 0
    for (order_number,) in existing:
        suffix = order_number[len(day_prefix):]
        if suffix.isdigit():
            last_num = max(last_num, int(suffix))
    return f"{day_prefix}{last_num + 1:03d}"

def _pending_clause():
    return and_(
        Order.status == "paid",
        or_(Order.esim_qr_code.is_(None), Order.confirmation_email_sent.is_(False)),
    )

def _complete_clause():
    return and_(
        Order.status == "paid",
        Order.esim_qr_code.isnot(None),
        Order.confirmation_email_sent.is_(True),
    )

def get_orders(
    db: Session,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Order]:
    """
    Admin listing, newest first.
    search matches order number, customer email/name or destination name
    (case-insensitive). status is "pending" (paid but not fully fulfilled) or
    "complete"; anything else means no status filter.
    """
    query = db.query(Order).join(Order.customer).options(joinedload(Order.customer))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(Order.order_number).like(pattern),
                func.lower(Customer.email).like(pattern),
                func.lower(Customer.name).like(pattern),
                func.lower(Order.destination_name).like(pattern),
            )
        )
    if status == PENDING_FILTER:
        query = query.filter(_pending_clause())
    elif status == COMPLETE_FILTER:
        query = query.filter(_complete_clause())

    return query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit).all()

def get_order_count(db: Session) -> int:
    return db.query(Order).count()

def get_recent_order_count(db: Session, *, since: datetime) -> int:
    return db.query(Order).filter(Order.created_at >= since).count()

def get_pending_fulfillment_count(db: Session) -> int:
    return db.query(Order).filter(_pending_clause()).count()

def get_paid_revenue_cents(db: Session) -> int:
    total = db.query(func.sum(Order.amount_cents)).filter(Order.status == "paid").scalar()
    return int(total or 0)
