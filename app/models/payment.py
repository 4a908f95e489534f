from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.constants.statuses import PaymentStatus


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    purchase_id: int = Field(foreign_key="visa_purchase.id", index=True)

    payment_method: str  # virtual_account | qris
    amount: float
    status: str = Field(default=PaymentStatus.pending.value)  # pending | paid | expired | failed

    # gateway invoice id, the only key the webhook can match on
    xendit_id: Optional[str] = Field(default=None, unique=True, index=True)
    external_id: Optional[str] = Field(default=None, index=True)
    payment_url: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
