from sqlalchemy.orm import Session
from typing import Optional, List

from app.models.destination import Destination, Plan

def get_destination(db: Session, *, slug: str, locale: str) -> Optional[Destination]:
    return (
        db.query(Destination)
        .filter(Destination.slug == slug, Destination.locale == locale)
        .first()
    )

def get_destinations(db: Session, *, locale: Optional[str] = None) -> List[Destination]:
    query = db.query(Destination)
    if locale:
        query = query.filter(Destination.locale == locale)
    return query.order_by(Destination.name).all()

def get_plan(db: Session, *, destination_slug: str, locale: str) -> Optional[Plan]:
    return (
        db.query(Plan)
        .filter(Plan.destination_slug == destination_slug, Plan.locale == locale)
        .first()
    )

def get_plans(
    db: Session, *, locale: Optional[str] = None, destination_slug: Optional[str] = None
) -> List[Plan]:
    query = db.query(Plan)
    if locale:
        query = query.filter(Plan.locale == locale)
    if destination_slug:
        query = query.filter(Plan.destination_slug == destination_slug)
    return query.order_by(Plan.destination_slug).all()
