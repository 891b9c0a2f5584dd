from pydantic import BaseModel
from typing import Optional
from decimal import Decimal

class Destination(BaseModel):
    slug: str
    locale: str
    name: str

    class Config:
        from_attributes = True

class Plan(BaseModel):
    destination_slug: str
    locale: str
    currency: str
    price_5day: Optional[Decimal] = None
    price_7day: Optional[Decimal] = None
    price_15day: Optional[Decimal] = None

    class Config:
        from_attributes = True
