from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class ActivityLog(SQLModel, table=True):
    """Append-only audit trail of writes to users, visas, purchases and payments."""

    __tablename__ = "activity_log"

    id: Optional[int] = Field(default=None, primary_key=True)

    # 0 is the system actor (webhooks, workers)
    user_id: int = Field(default=0, index=True)
    action: str = Field(index=True)
    entity_type: str = Field(index=True)
    entity_id: int = Field(index=True)
    entity_name: Optional[str] = None
    description: Optional[str] = None
    changes: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
