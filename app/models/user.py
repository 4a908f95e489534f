from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.constants.statuses import UserRole


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password: str
    name: str
    avatar_url: Optional[str] = None
    google_id: Optional[str] = Field(default=None, index=True)
    role: str = Field(default=UserRole.customer.value)
    is_active: bool = Field(default=True)
    last_login_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value
