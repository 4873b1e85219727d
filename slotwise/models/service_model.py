from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, ForeignKey, Numeric, Integer, DateTime, CheckConstraint
import uuid
from slotwise.database import Base
from sqlalchemy.orm import relationship


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    provider_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False, index=True)
    description = Column(String(1000), nullable=True)
    category = Column(String(30), nullable=False, index=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Relationships
    provider = relationship("User", back_populates="services")
    bookings = relationship("Booking", back_populates="service")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_service_duration_positive"),
        CheckConstraint("base_price >= 0", name="check_service_price_non_negative"),
    )
