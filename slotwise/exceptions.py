"""
Domain exceptions for the booking engine.

Business outcomes (overlaps, wrong actor, stale state, early completion) are
raised as DomainException subclasses and converted to HTTP responses at the
API layer. Anything else is an infrastructure failure and becomes a generic 500.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


# Booking business errors


class BookingError(DomainException):
    """Recoverable outcome of a booking operation."""


class OverlapError(BookingError):
    """The requested interval intersects an active booking of the provider."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "This time slot is no longer available",
            code="OVERLAP",
            details=details,
        )


class InvalidActorError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "You are not allowed to perform this action on the booking",
            code="INVALID_ACTOR",
            details=details,
        )


class InvalidStateError(BookingError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "Booking state changed, please refresh",
            code="INVALID_STATE",
            details=details,
        )


class NotYetDueError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "This transition is not allowed yet, try again later",
            code="NOT_YET_DUE",
            details=details,
        )
