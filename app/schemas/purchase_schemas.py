from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from app.constants.statuses import PurchaseStatus


class PurchaseCreate(BaseModel):
    visa_id: int
    visa_option_id: Optional[int] = None


class PurchaseStatusUpdate(BaseModel):
    status: PurchaseStatus


class PurchaseOut(BaseModel):
    id: int
    user_id: int
    visa_id: int
    visa_option_id: Optional[int] = None
    total_price: float
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
