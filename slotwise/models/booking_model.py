from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, CheckConstraint, Index
import uuid
from slotwise.database import Base
from sqlalchemy.orm import relationship


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    customer_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    # Copied from the service so conflict checks never need a join
    provider_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    payment_status = Column(String(30), nullable=False, default="UNPAID")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now_utc)
    updated_at = Column(DateTime(timezone=True), default=_now_utc, onupdate=_now_utc)

    # Relationships
    service = relationship("Service", back_populates="bookings")
    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("User", foreign_keys=[provider_id])
    events = relationship("BookingEvent", back_populates="booking", order_by="BookingEvent.created_at")

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_booking_interval"),
        Index("ix_bookings_provider_start", "provider_id", "start_time"),
        Index("ix_bookings_customer", "customer_id"),
    )
