from pydantic import BaseModel, Field
from typing import Optional

class CheckoutRequest(BaseModel):
    destination: str = Field(..., min_length=1)
    duration: int
    locale: str = Field(..., min_length=2)
    promo_code: Optional[str] = Field(default=None, alias="promoCode")

    class Config:
        populate_by_name = True

class CheckoutResponse(BaseModel):
    url: str
