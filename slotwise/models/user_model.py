from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean, Text
from slotwise.database import Base
from sqlalchemy.orm import relationship


class User(Base):
    __tablename__ = "users"

    # Ids come from the identity provider's subject claim
    id = Column(String(128), primary_key=True, index=True)
    name = Column(String, nullable=True, index=True)
    email = Column(String, nullable=True, index=True)
    role = Column(String(20), nullable=False, default="CUSTOMER")
    payment_qr_code = Column(Text, nullable=True)  # opaque object-storage URL
    payment_notes = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Relationships
    services = relationship("Service", back_populates="provider")
    working_windows = relationship(
        "WorkingWindow", back_populates="provider", order_by="WorkingWindow.weekday"
    )
