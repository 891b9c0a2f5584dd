from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class CustomerBase(BaseModel):
    # Stripe's address as collected at checkout, stored verbatim
    email: str = Field(min_length=1, max_length=255)
    name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

class CustomerCreate(CustomerBase):
    pass

class CustomerUpdate(BaseModel):
    """Only non-null values are merged into the stored customer."""
    name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

class Customer(CustomerBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class CustomerWithOrderCount(Customer):
    order_count: int = 0
