from pydantic import BaseModel, Field, HttpUrl
from enum import Enum
from typing import List, Optional
from datetime import datetime


class Role(str, Enum):
    customer = "CUSTOMER"
    provider = "PROVIDER"
    admin = "ADMIN"


class UserOut(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Role
    payment_qr_code: Optional[str] = None
    payment_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class PaymentDetailsUpdate(BaseModel):
    payment_qr_code: Optional[HttpUrl] = Field(None, description="URL of the uploaded payment QR image")
    payment_notes: Optional[str] = Field(None, max_length=500, example="GCash: 09171234567")


class PaymentDetailsOut(BaseModel):
    id: str
    payment_qr_code: Optional[str] = None
    payment_notes: Optional[str] = None

    class Config:
        from_attributes = True


class RoleUpdate(BaseModel):
    role: Role


class WorkingWindowIn(BaseModel):
    weekday: int = Field(..., ge=0, le=6, description="Monday is 0")
    start_minute: int = Field(..., ge=0, lt=1440, example=540)
    end_minute: int = Field(..., gt=0, le=1440, example=1020)


class WorkingWindowOut(WorkingWindowIn):
    class Config:
        from_attributes = True


class WorkingHoursUpdate(BaseModel):
    windows: List[WorkingWindowIn] = Field(default_factory=list)
