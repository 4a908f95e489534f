from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ActivityOut(BaseModel):
    id: int
    user_id: int
    action: str
    entity_type: str
    entity_id: int
    entity_name: Optional[str] = None
    description: Optional[str] = None
    changes: Optional[dict] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
