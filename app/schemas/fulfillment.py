from pydantic import BaseModel
from typing import Optional

class FulfillmentResult(BaseModel):
    order_number: Optional[str] = None
    esim_provisioned: bool = False
    email_sent: bool = False
    duplicate: bool = False
    skipped: bool = False  # event could not be fulfilled (no delivery address)
    email_error: Optional[str] = None

class OrderActionRequest(BaseModel):
    session_id: Optional[str] = None
    action: Optional[str] = None  # "retry" or "resend"

class RetryOrderRequest(BaseModel):
    session_id: Optional[str] = None

class OrderActionResponse(BaseModel):
    success: bool = True
    message: str

class AdminStats(BaseModel):
    total_orders: int
    total_customers: int
    recent_orders: int
    pending_esims: int
    total_revenue_cents: int
