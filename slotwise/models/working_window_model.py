from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, UniqueConstraint
from slotwise.database import Base
from sqlalchemy.orm import relationship


class WorkingWindow(Base):
    """Weekly working hours of a provider, in minutes since midnight of the business timezone."""

    __tablename__ = "working_windows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    weekday = Column(Integer, nullable=False)  # Monday == 0
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)

    provider = relationship("User", back_populates="working_windows")

    __table_args__ = (
        UniqueConstraint("provider_id", "weekday", name="uq_working_window_provider_day"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="check_working_window_weekday"),
        CheckConstraint(
            "start_minute >= 0 AND end_minute <= 1440 AND end_minute > start_minute",
            name="check_working_window_bounds",
        ),
    )
