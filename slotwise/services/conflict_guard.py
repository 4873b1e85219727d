"""
Conflict guard: admits a new booking only if the provider has no active
booking overlapping it.

The overlap check and the insert run in one transaction, after the provider's
calendar has been locked:

- PostgreSQL: a transaction-scoped advisory lock keyed by provider id.
- SQLite: every transaction starts with BEGIN IMMEDIATE (see database.py), so
  writers are already serialized by the database lock.
- Other backends: the provider's user row is locked with SELECT ... FOR UPDATE.

Concurrent reservations for the same provider therefore queue up behind each
other and each one re-reads the committed bookings before deciding.
"""

import hashlib
from datetime import datetime
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from slotwise.exceptions import OverlapError, ValidationException
from slotwise.logger import get_logger
from slotwise.models.booking_event_model import BookingEvent
from slotwise.models.booking_model import Booking
from slotwise.models.service_model import Service
from slotwise.models.user_model import User
from slotwise.schemas.booking_schema import BookingStatus, PaymentStatus
from slotwise.utils.time_utils import ensure_utc

logger = get_logger(__name__)


def provider_lock_key(provider_id: str) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(provider_id.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


class ConflictGuard:
    @staticmethod
    def lock_provider_calendar(db: Session, provider_id: str) -> None:
        """Hold the provider's calendar until the current transaction ends."""
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            db.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": provider_lock_key(provider_id)},
            )
        elif dialect != "sqlite":
            db.query(User.id).filter(User.id == provider_id).with_for_update().first()

    @staticmethod
    def find_overlap(
        db: Session,
        provider_id: str,
        start_time: datetime,
        end_time: datetime,
    ) -> Optional[Booking]:
        """First non-cancelled booking of the provider intersecting [start_time, end_time)"""
        return (
            db.query(Booking)
            .filter(
                Booking.provider_id == provider_id,
                Booking.status != BookingStatus.cancelled.value,
                Booking.start_time < end_time,
                Booking.end_time > start_time,
            )
            .order_by(Booking.start_time)
            .first()
        )

    @staticmethod
    def try_reserve(
        db: Session,
        service: Service,
        customer_id: str,
        start_time: datetime,
        end_time: datetime,
        notes: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Booking:
        """Insert a PENDING/UNPAID booking or raise OverlapError.

        Commits on success. On any failure the transaction is rolled back, so
        either exactly one booking row exists afterwards or none does.
        """
        start_time = ensure_utc(start_time)
        end_time = ensure_utc(end_time)
        if end_time <= start_time:
            raise ValidationException("end_time must be after start_time", code="INVALID_INTERVAL")

        provider_id = service.provider_id
        try:
            ConflictGuard.lock_provider_calendar(db, provider_id)

            existing = ConflictGuard.find_overlap(db, provider_id, start_time, end_time)
            if existing is not None:
                logger.warning(
                    f"Overlap rejected for provider {provider_id}: "
                    f"{start_time.isoformat()} - {end_time.isoformat()}"
                )
                raise OverlapError(
                    details={
                        "requested_start": start_time.isoformat(),
                        "requested_end": end_time.isoformat(),
                        "taken_start": ensure_utc(existing.start_time).isoformat(),
                        "taken_end": ensure_utc(existing.end_time).isoformat(),
                    }
                )

            booking = Booking(
                service_id=service.id,
                customer_id=customer_id,
                provider_id=provider_id,
                start_time=start_time,
                end_time=end_time,
                notes=notes,
                status=BookingStatus.pending.value,
                payment_status=PaymentStatus.unpaid.value,
            )
            db.add(booking)
            db.flush()
            db.add(
                BookingEvent(
                    booking_id=booking.id,
                    actor_id=customer_id,
                    actor_role=actor_role,
                    action="CREATE",
                    to_status=booking.status,
                    to_payment_status=booking.payment_status,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(f"Booking {booking.id} reserved for provider {provider_id} by customer {customer_id}")
        return booking


conflict_guard = ConflictGuard()
