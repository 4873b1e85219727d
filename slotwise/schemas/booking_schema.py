from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum
from slotwise.utils.time_utils import ensure_utc


class BookingStatus(str, Enum):
    pending = "PENDING"
    confirmed = "CONFIRMED"
    cancelled = "CANCELLED"
    completed = "COMPLETED"


class PaymentStatus(str, Enum):
    unpaid = "UNPAID"
    customer_marked_paid = "CUSTOMER_MARKED_PAID"
    provider_confirmed = "PROVIDER_CONFIRMED"


class BookingTransition(str, Enum):
    confirm = "CONFIRM"
    cancel = "CANCEL"
    complete = "COMPLETE"
    mark_paid = "MARK_PAID"
    confirm_payment = "CONFIRM_PAYMENT"


class BookingCreate(BaseModel):
    service_id: str = Field(..., description="ID of the service being booked")
    start_time: datetime = Field(..., description="Booking start time")
    end_time: Optional[datetime] = Field(
        None, description="Booking end time; defaults to start_time plus the service duration"
    )
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_to_utc(cls, v):
        if v is None:
            return v
        # If v is timezone-naive, assume it's UTC
        return ensure_utc(v)

    @model_validator(mode="after")
    def end_time_must_be_after_start_time(self):
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TransitionRequest(BaseModel):
    transition: BookingTransition


class BookingResponse(BaseModel):
    id: str
    service_id: str
    customer_id: str
    provider_id: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus = BookingStatus.pending
    payment_status: PaymentStatus = PaymentStatus.unpaid
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v) if v is not None else v

    class Config:
        from_attributes = True


class BookingEventResponse(BaseModel):
    id: str
    booking_id: str
    actor_id: str
    actor_role: Optional[str] = None
    action: str
    from_status: Optional[BookingStatus] = None
    to_status: BookingStatus
    from_payment_status: Optional[PaymentStatus] = None
    to_payment_status: PaymentStatus
    created_at: datetime

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    start: datetime
    end: datetime


class PaymentInfoResponse(BaseModel):
    booking: BookingResponse
    service_title: str
    base_price: float
    provider_id: str
    provider_name: Optional[str] = None
    payment_qr_code: Optional[str] = None
    payment_notes: Optional[str] = None
    is_customer: bool
    is_provider: bool
