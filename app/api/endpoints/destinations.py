from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud import crud_destination
from app.db.session import get_db
from app.schemas.destination import Destination, Plan

router = APIRouter()

@router.get("/destinations", response_model=List[Destination])
def read_destinations(
    db: Session = Depends(get_db),
    locale: Optional[str] = Query(None, min_length=2, max_length=10, description="e.g. en-au"),
):
    return crud_destination.get_destinations(db, locale=locale)

@router.get("/plans", response_model=List[Plan])
def read_plans(
    db: Session = Depends(get_db),
    locale: Optional[str] = Query(None, min_length=2, max_length=10),
    destination: Optional[str] = Query(None, description="Destination slug"),
):
    """
    Retail plans. Wholesale bundle names are not part of the public schema.
    """
    return crud_destination.get_plans(db, locale=locale, destination_slug=destination)
