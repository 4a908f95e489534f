from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class VisaCreate(BaseModel):
    country: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    duration: int = Field(..., gt=0)


class VisaUpdate(BaseModel):
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    duration: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class VisaOptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: float = Field(..., ge=0)


class VisaOptionOut(BaseModel):
    id: int
    visa_id: int
    name: str
    description: Optional[str] = None
    price: float
    is_active: bool

    class Config:
        from_attributes = True


class VisaOut(BaseModel):
    id: int
    country: str
    type: str
    description: Optional[str] = None
    price: float
    duration: int
    visa_document_url: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VisaDetailOut(VisaOut):
    options: List[VisaOptionOut] = []
