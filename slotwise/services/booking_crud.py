from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timedelta
from slotwise.exceptions import (
    BookingError,
    DomainException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from slotwise.models.booking_event_model import BookingEvent
from slotwise.models.booking_model import Booking
from slotwise.models.service_model import Service
from slotwise.models.user_model import User
from slotwise.schemas.booking_schema import BookingCreate, BookingTransition
from slotwise.schemas.user_schema import Role
from slotwise.services.availability import Slot, availability_calculator
from slotwise.services.booking_lifecycle import booking_lifecycle
from slotwise.services.conflict_guard import conflict_guard
from slotwise.utils.time_utils import ensure_utc, utc_now
from slotwise.logger import get_logger

logger = get_logger(__name__)


class BookingCRUD:
    @staticmethod
    def get_availability(
            db: Session, service_id: str, range_start: datetime, range_end: datetime
    ) -> List[Slot]:
        return availability_calculator.get_availability(db, service_id, range_start, range_end)

    @staticmethod
    def create_booking(db: Session, booking: BookingCreate, customer: User) -> Booking:
        """Reserve a slot for the customer; the provider is taken from the service"""
        service = (
            db.query(Service)
            .filter(Service.id == str(booking.service_id), Service.is_active == True)  # noqa: E712
            .first()
        )
        if not service:
            raise NotFoundException("Service not found or is inactive", code="SERVICE_NOT_FOUND")

        start_time = ensure_utc(booking.start_time)
        expected_end = start_time + timedelta(minutes=service.duration_minutes)
        end_time = ensure_utc(booking.end_time) if booking.end_time else expected_end
        if end_time != expected_end:
            raise ValidationException(
                f"Bookings for this service last exactly {service.duration_minutes} minutes",
                code="INVALID_DURATION",
                details={"expected_end_time": expected_end.isoformat()},
            )
        if start_time <= utc_now():
            raise ValidationException("start_time must be in the future", code="START_IN_PAST")

        try:
            return conflict_guard.try_reserve(
                db,
                service,
                customer_id=customer.id,
                start_time=start_time,
                end_time=end_time,
                notes=booking.notes,
                actor_role=customer.role,
            )
        except DomainException:
            raise
        except Exception as e:
            logger.error(f"Error creating booking: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while creating booking",
            )

    @staticmethod
    def transition_booking(
            db: Session, booking_id: str, actor: User, transition: BookingTransition
    ) -> Booking:
        try:
            return booking_lifecycle.apply_transition(
                db, booking_id, actor_id=actor.id, actor_role=actor.role, transition=transition
            )
        except BookingError as e:
            logger.warning(
                f"Transition {transition} on booking {booking_id} by {actor.id} refused: {e.code}"
            )
            raise
        except DomainException:
            raise
        except Exception as e:
            logger.error(f"Error updating booking {booking_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while updating booking",
            )

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: str) -> Optional[Booking]:
        """Get booking by ID"""
        return db.query(Booking).filter(Booking.id == str(booking_id)).first()

    @staticmethod
    def get_booking_for_user(db: Session, booking_id: str, user: User) -> Booking:
        """Booking visible to one of its parties, or to an admin"""
        booking = BookingCRUD.get_booking_by_id(db, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if user.role != Role.admin.value and user.id not in (booking.customer_id, booking.provider_id):
            raise ForbiddenException("You do not have access to this booking")
        return booking

    @staticmethod
    def get_bookings(
            db: Session,
            skip: int = 0,
            limit: int = 100,
            customer_id: Optional[str] = None,
            provider_id: Optional[str] = None,
            service_id: Optional[str] = None,
            status: Optional[str] = None,
            from_date: Optional[datetime] = None,
            to_date: Optional[datetime] = None,
            ascending: bool = False,
    ) -> List[Booking]:
        """Get bookings with optional filtering"""
        query = db.query(Booking)

        if customer_id:
            query = query.filter(Booking.customer_id == customer_id)
        if provider_id:
            query = query.filter(Booking.provider_id == provider_id)
        if service_id:
            query = query.filter(Booking.service_id == str(service_id))
        if status:
            query = query.filter(Booking.status == getattr(status, "value", status))

        # Filter by date range
        if from_date:
            query = query.filter(Booking.start_time >= ensure_utc(from_date))
        if to_date:
            query = query.filter(Booking.end_time <= ensure_utc(to_date))

        order = Booking.start_time.asc() if ascending else Booking.start_time.desc()
        return query.order_by(order).offset(skip).limit(limit).all()

    @staticmethod
    def get_customer_bookings(
            db: Session, customer_id: str, status: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[Booking]:
        """Bookings the user made as a customer, newest first"""
        return BookingCRUD.get_bookings(
            db=db, customer_id=customer_id, status=status, skip=skip, limit=limit
        )

    @staticmethod
    def get_provider_schedule(
            db: Session,
            provider_id: str,
            status: Optional[str] = None,
            from_date: Optional[datetime] = None,
            to_date: Optional[datetime] = None,
            skip: int = 0,
            limit: int = 100,
    ) -> List[Booking]:
        """Appointments of a provider in chronological order"""
        return BookingCRUD.get_bookings(
            db=db,
            provider_id=provider_id,
            status=status,
            from_date=from_date,
            to_date=to_date,
            skip=skip,
            limit=limit,
            ascending=True,
        )

    @staticmethod
    def get_payment_info(db: Session, booking_id: str, user: User) -> dict:
        booking = BookingCRUD.get_booking_by_id(db, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if user.id not in (booking.customer_id, booking.provider_id):
            raise ForbiddenException("You do not have access to this booking")

        provider = booking.provider
        return {
            "booking": booking,
            "service_title": booking.service.title,
            "base_price": float(booking.service.base_price),
            "provider_id": booking.provider_id,
            "provider_name": provider.name if provider else None,
            "payment_qr_code": provider.payment_qr_code if provider else None,
            "payment_notes": provider.payment_notes if provider else None,
            "is_customer": booking.customer_id == user.id,
            "is_provider": booking.provider_id == user.id,
        }

    @staticmethod
    def get_booking_events(db: Session, booking_id: str, user: User) -> List[BookingEvent]:
        booking = BookingCRUD.get_booking_for_user(db, booking_id, user)
        return (
            db.query(BookingEvent)
            .filter(BookingEvent.booking_id == booking.id)
            .order_by(BookingEvent.created_at.asc())
            .all()
        )


booking_crud = BookingCRUD()
