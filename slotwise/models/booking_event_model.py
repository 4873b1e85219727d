from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey
import uuid
from slotwise.database import Base
from sqlalchemy.orm import relationship


class BookingEvent(Base):
    """Audit row for a booking creation or transition, committed with the change itself."""

    __tablename__ = "booking_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    actor_id = Column(String(128), nullable=False)
    actor_role = Column(String(20), nullable=True)
    action = Column(String(30), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    from_payment_status = Column(String(30), nullable=True)
    to_payment_status = Column(String(30), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="events")
