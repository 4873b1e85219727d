from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from slotwise.services.booking_crud import booking_crud
from slotwise.schemas.booking_schema import (
    BookingCreate,
    BookingEventResponse,
    BookingResponse,
    BookingStatus,
    PaymentInfoResponse,
    SlotResponse,
    TransitionRequest,
)
from slotwise.database import get_db
from slotwise.exceptions import DomainException
from slotwise.security.auth import get_current_user, get_current_admin_user, get_current_provider_user
from slotwise.models.user_model import User
from slotwise.logger import get_logger

booking_router = APIRouter()
logger = get_logger(__name__)


@booking_router.get(
    "/services/{service_id}/availability",
    response_model=List[SlotResponse],
    status_code=status.HTTP_200_OK,
)
def get_availability(
    service_id: str,
    start: datetime = Query(..., description="Start of the range (inclusive)"),
    end: datetime = Query(..., description="End of the range (exclusive)"),
    db: Session = Depends(get_db),
):
    """Free slots of a service in a time range (public, read-only)"""
    try:
        slots = booking_crud.get_availability(db, service_id, start, end)
        return [SlotResponse(start=slot.start, end=slot.end) for slot in slots]

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error computing availability for service {service_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while computing availability",
        )


# CUSTOMER ENDPOINTS


@booking_router.post(
    "/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED
)
def create_booking(
    booking: BookingCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Request a booking slot; responds 409 when the slot is no longer available"""
    try:
        logger.info(f"User {current_user.id} creating booking for service {booking.service_id}")
        db_booking = booking_crud.create_booking(db, booking, current_user)
        return BookingResponse.model_validate(db_booking)

    except HTTPException:
        raise
    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error creating booking: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while creating booking",
        )


@booking_router.get(
    "/bookings", response_model=List[BookingResponse], status_code=status.HTTP_200_OK
)
def get_my_bookings(
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of bookings to retrieve"),
    booking_status: Optional[BookingStatus] = Query(
        None, alias="status", description="Filter by booking status"
    ),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Bookings the current user made as a customer"""
    try:
        bookings = booking_crud.get_customer_bookings(
            db, current_user.id, status=booking_status, skip=skip, limit=limit
        )
        return [BookingResponse.model_validate(booking) for booking in bookings]

    except Exception as e:
        logger.error(f"Error fetching user bookings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching bookings",
        )


@booking_router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get booking by ID (customer, provider or admin)"""
    try:
        booking = booking_crud.get_booking_for_user(db, booking_id, current_user)
        return BookingResponse.model_validate(booking)

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error fetching booking {booking_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching booking",
        )


@booking_router.post(
    "/bookings/{booking_id}/transitions",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def transition_booking(
    booking_id: str,
    request: TransitionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Move a booking along its status or payment lifecycle"""
    try:
        logger.info(f"User {current_user.id} requesting {request.transition.value} on booking {booking_id}")
        booking = booking_crud.transition_booking(db, booking_id, current_user, request.transition)
        return BookingResponse.model_validate(booking)

    except HTTPException:
        raise
    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error updating booking {booking_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating booking",
        )


@booking_router.get(
    "/bookings/{booking_id}/payment-info",
    response_model=PaymentInfoResponse,
    status_code=status.HTTP_200_OK,
)
def get_payment_info(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Provider's payment QR code and notes for a booking"""
    try:
        info = booking_crud.get_payment_info(db, booking_id, current_user)
        info["booking"] = BookingResponse.model_validate(info["booking"])
        return PaymentInfoResponse(**info)

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error fetching payment info for booking {booking_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching payment info",
        )


@booking_router.get(
    "/bookings/{booking_id}/events",
    response_model=List[BookingEventResponse],
    status_code=status.HTTP_200_OK,
)
def get_booking_events(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Audit trail of a booking"""
    try:
        events = booking_crud.get_booking_events(db, booking_id, current_user)
        return [BookingEventResponse.model_validate(event) for event in events]

    except DomainException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error fetching events for booking {booking_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching booking history",
        )


# PROVIDER ENDPOINTS


@booking_router.get(
    "/provider/bookings",
    response_model=List[BookingResponse],
    status_code=status.HTTP_200_OK,
)
def get_provider_schedule(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    from_date: Optional[datetime] = Query(None, description="Bookings starting at or after"),
    to_date: Optional[datetime] = Query(None, description="Bookings ending at or before"),
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Provider's appointments in chronological order"""
    try:
        bookings = booking_crud.get_provider_schedule(
            db,
            current_user.id,
            status=booking_status,
            from_date=from_date,
            to_date=to_date,
            skip=skip,
            limit=limit,
        )
        return [BookingResponse.model_validate(booking) for booking in bookings]

    except Exception as e:
        logger.error(f"Error fetching provider schedule: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching bookings",
        )


# ADMIN ENDPOINTS


@booking_router.get(
    "/admin/bookings",
    response_model=List[BookingResponse],
    status_code=status.HTTP_200_OK,
)
def get_all_bookings(
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of bookings to retrieve"),
    customer_id: Optional[str] = Query(None, description="Filter by customer ID"),
    provider_id: Optional[str] = Query(None, description="Filter by provider ID"),
    service_id: Optional[str] = Query(None, description="Filter by service ID"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    from_date: Optional[datetime] = Query(None),
    to_date: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Get all bookings with filtering (admin only)"""
    try:
        logger.info(f"Admin {current_user.id} fetching all bookings")
        bookings = booking_crud.get_bookings(
            db=db,
            skip=skip,
            limit=limit,
            customer_id=customer_id,
            provider_id=provider_id,
            service_id=service_id,
            status=booking_status,
            from_date=from_date,
            to_date=to_date,
        )
        return [BookingResponse.model_validate(booking) for booking in bookings]

    except Exception as e:
        logger.error(f"Error fetching all bookings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching bookings",
        )
