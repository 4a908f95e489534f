from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from app.constants.statuses import PaymentMethod


class PaymentCreate(BaseModel):
    purchase_id: int
    payment_method: PaymentMethod
    amount: Optional[float] = Field(None, gt=0)
    bank_code: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None


class PaymentOut(BaseModel):
    id: int
    user_id: int
    purchase_id: int
    payment_method: str
    amount: float
    status: str
    xendit_id: Optional[str] = None
    external_id: Optional[str] = None
    payment_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class XenditWebhookPayload(BaseModel):
    id: str = Field(..., min_length=1)
    external_id: Optional[str] = None
    status: str = Field(..., min_length=1)
    amount: Optional[float] = None
    currency: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None
