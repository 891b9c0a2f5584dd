from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional, List, Tuple

from app.models.customer import Customer
from app.models.order import Order
from app.schemas.customer import CustomerCreate, CustomerUpdate

def get_customer_by_email(db: Session, email: str) -> Optional[Customer]:
    return db.query(Customer).filter(Customer.email == email).first()

def create_customer(db: Session, *, obj_in: CustomerCreate) -> Customer:
    db_obj = Customer(email=obj_in.email, name=obj_in.name, phone=obj_in.phone)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

def update_customer(db: Session, *, db_obj: Customer, obj_in: CustomerUpdate) -> Customer:
    """
    Merge newly supplied contact details. None never overwrites a stored value.
    """
    update_data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        return db_obj
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

def upsert_customer(
    db: Session, *, email: str, name: Optional[str] = None, phone: Optional[str] = None
) -> Customer:
    """
    One row per email: create on first purchase, otherwise merge in any new
    non-empty name/phone (last write wins).
    """
    customer = get_customer_by_email(db, email=email)
    if customer is None:
        try:
            return create_customer(db, obj_in=CustomerCreate(email=email, name=name or None, phone=phone or None))
        except IntegrityError:
            # Created by a concurrent request; fall through to the merge
            db.rollback()
            customer = get_customer_by_email(db, email=email)
    return update_customer(db, db_obj=customer, obj_in=CustomerUpdate(name=name or None, phone=phone or None))

def get_customers_with_order_counts(
    db: Session, *, search: Optional[str] = None, skip: int = 0, limit: int = 100
) -> List[Tuple[Customer, int]]:
    """
    Admin listing, newest first, with each customer's total order count.
    """
    query = (
        db.query(Customer, func.count(Order.id))
        .outerjoin(Order, Order.customer_id == Customer.id)
        .group_by(Customer.id)
    )
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(func.lower(Customer.email).like(pattern), func.lower(Customer.name).like(pattern))
        )
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).offset(skip).limit(limit).all()

def get_customer_count(db: Session) -> int:
    return db.query(Customer).count()
