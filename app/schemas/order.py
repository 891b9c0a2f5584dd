from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.schemas.customer import Customer  # For nesting in admin listings

class OrderBase(BaseModel):
    destination_slug: str = Field(..., max_length=100)
    destination_name: str = Field(..., max_length=255)
    duration: int = Field(default=0, ge=0)
    plan_name: str = Field(..., max_length=100)
    bundle_name: Optional[str] = Field(default=None, max_length=255)
    amount_cents: int = Field(default=0, ge=0)
    currency: str = Field(default="AUD", max_length=3)
    locale: str = Field(default="en-au", max_length=10)

class OrderCreateInternal(OrderBase):
    """
    Schema for creating an order in the database from a completed checkout.
    order_number and customer_id are allocated by the system.
    """
    order_number: str = Field(..., max_length=32)
    customer_id: int
    status: str = Field(default="paid", max_length=50)
    stripe_session_id: str = Field(..., max_length=255)
    stripe_payment_intent_id: Optional[str] = Field(default=None, max_length=255)
    paid_at: Optional[datetime] = None


class OrderUpdate(BaseModel):
    """
    Partial update used by the fulfillment steps. Only fields explicitly set
    are written.
    """
    status: Optional[str] = Field(default=None, max_length=50)
    esim_iccid: Optional[str] = None
    esim_smdp_address: Optional[str] = None
    esim_matching_id: Optional[str] = None
    esim_qr_code: Optional[str] = None
    esim_provisioned_at: Optional[datetime] = None
    esim_status: Optional[str] = Field(default=None, max_length=50)
    confirmation_email_sent: Optional[bool] = None


class Order(OrderBase):  # Full schema for admin views
    id: int
    order_number: str
    customer_id: int
    status: str
    stripe_session_id: str
    stripe_payment_intent_id: Optional[str] = None
    esim_iccid: Optional[str] = None
    esim_smdp_address: Optional[str] = None
    esim_matching_id: Optional[str] = None
    esim_qr_code: Optional[str] = None
    esim_provisioned_at: Optional[datetime] = None
    esim_status: Optional[str] = None
    confirmation_email_sent: bool
    paid_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class OrderWithCustomer(Order):
    customer: Customer


class OrderPublic(BaseModel):
    """What the checkout success page is allowed to see."""
    order_number: str
    destination_name: str
    plan_name: str
    duration: int
    amount_cents: int
    currency: str
    esim_qr_code: Optional[str] = None
    esim_status: Optional[str] = None
    status: str

    class Config:
        from_attributes = True

class OrderStatusResponse(BaseModel):
    order: Optional[OrderPublic] = None
    status: str  # pending, processing, ready
