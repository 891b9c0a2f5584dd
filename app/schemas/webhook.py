from pydantic import BaseModel, Field
from typing import Optional

class CheckoutMetadata(BaseModel):
    """
    Metadata attached to the Stripe Checkout session by /api/checkout.
    Everything is optional at the type level; fulfillment degrades without it
    (destination name falls back to the slug, provisioning is skipped without
    a bundle name).
    """
    destination_slug: Optional[str] = None
    duration: Optional[str] = None
    locale: Optional[str] = None
    bundle_name: Optional[str] = None

class CheckoutCompletedEvent(BaseModel):
    """A verified checkout.session.completed event, flattened."""
    session_id: str
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    amount_total: Optional[int] = None  # smallest currency unit
    currency: Optional[str] = None
    payment_intent_id: Optional[str] = None
    metadata: CheckoutMetadata = Field(default_factory=CheckoutMetadata)
