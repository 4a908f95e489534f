from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Visa(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    country: str = Field(index=True)
    type: str
    description: Optional[str] = None
    price: float
    duration: int  # days
    visa_document_url: Optional[str] = None
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)

    @property
    def display_name(self) -> str:
        return f"{self.country} - {self.type}"


class VisaOption(SQLModel, table=True):
    __tablename__ = "visa_option"

    id: Optional[int] = Field(default=None, primary_key=True)
    visa_id: int = Field(foreign_key="visa.id", index=True)
    name: str
    description: Optional[str] = None
    price: float
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    deleted_at: Optional[datetime] = Field(default=None, index=True)
