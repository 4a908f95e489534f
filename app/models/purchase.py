from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.constants.statuses import PurchaseStatus


class Purchase(SQLModel, table=True):
    __tablename__ = "visa_purchase"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    visa_id: int = Field(foreign_key="visa.id", index=True)
    visa_option_id: Optional[int] = Field(default=None, foreign_key="visa_option.id")

    total_price: float
    status: str = Field(default=PurchaseStatus.pending.value)  # pending | completed | cancelled

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
