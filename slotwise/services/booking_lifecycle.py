"""
Booking lifecycle state machine.

Two independent axes:

    status:          PENDING -> CONFIRMED -> COMPLETED, PENDING/CONFIRMED -> CANCELLED
    payment_status:  UNPAID -> CUSTOMER_MARKED_PAID -> PROVIDER_CONFIRMED

Authority is relationship based: an actor may act as the provider of a booking
only if it is that booking's provider, and as the customer only if it is that
booking's customer. The stored role only decides which side an actor acts on
when it is both the customer and the provider of the same booking; ADMIN
grants nothing on its own.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import FrozenSet, Optional, Set, Tuple

from sqlalchemy.orm import Session

from slotwise import config
from slotwise.exceptions import (
    InvalidActorError,
    InvalidStateError,
    NotFoundException,
    NotYetDueError,
)
from slotwise.logger import get_logger
from slotwise.models.booking_event_model import BookingEvent
from slotwise.models.booking_model import Booking
from slotwise.schemas.booking_schema import BookingStatus, BookingTransition, PaymentStatus
from slotwise.schemas.user_schema import Role
from slotwise.utils.time_utils import ensure_utc, utc_now

logger = get_logger(__name__)

CUSTOMER = Role.customer.value
PROVIDER = Role.provider.value


@dataclass(frozen=True)
class TransitionRule:
    field: str
    sources: FrozenSet[str]
    target: str
    parties: FrozenSet[str]


TRANSITION_RULES = {
    BookingTransition.confirm: TransitionRule(
        "status",
        frozenset({BookingStatus.pending.value}),
        BookingStatus.confirmed.value,
        frozenset({PROVIDER}),
    ),
    BookingTransition.cancel: TransitionRule(
        "status",
        frozenset({BookingStatus.pending.value, BookingStatus.confirmed.value}),
        BookingStatus.cancelled.value,
        frozenset({CUSTOMER, PROVIDER}),
    ),
    BookingTransition.complete: TransitionRule(
        "status",
        frozenset({BookingStatus.confirmed.value}),
        BookingStatus.completed.value,
        frozenset({PROVIDER}),
    ),
    BookingTransition.mark_paid: TransitionRule(
        "payment_status",
        frozenset({PaymentStatus.unpaid.value}),
        PaymentStatus.customer_marked_paid.value,
        frozenset({CUSTOMER}),
    ),
    BookingTransition.confirm_payment: TransitionRule(
        "payment_status",
        frozenset({PaymentStatus.customer_marked_paid.value}),
        PaymentStatus.provider_confirmed.value,
        frozenset({PROVIDER}),
    ),
}


def acting_parties(booking: Booking, actor_id: str, actor_role: Optional[str]) -> Set[str]:
    parties = set()
    if actor_id == booking.provider_id:
        parties.add(PROVIDER)
    if actor_id == booking.customer_id:
        parties.add(CUSTOMER)
    # The role claim only picks a side when the actor is on both sides
    if len(parties) > 1 and actor_role in (CUSTOMER, PROVIDER):
        parties &= {actor_role}
    return parties


def check_transition(
    booking: Booking,
    actor_id: str,
    actor_role: Optional[str],
    transition: BookingTransition,
    now: datetime,
    cancel_cutoff_hours: Optional[float] = None,
) -> Tuple[str, str]:
    """Validate a transition against the booking's current state.

    Returns the (field, new value) pair to write. Raises InvalidActorError,
    InvalidStateError or NotYetDueError.
    """
    rule = TRANSITION_RULES[BookingTransition(transition)]
    allowed = acting_parties(booking, actor_id, actor_role) & rule.parties
    if not allowed:
        raise InvalidActorError(
            details={"transition": rule.target, "required": sorted(rule.parties)}
        )

    if rule.field == "payment_status" and booking.status == BookingStatus.cancelled.value:
        raise InvalidStateError(
            "Payment of a cancelled booking can no longer change",
            details={"status": booking.status, "payment_status": booking.payment_status},
        )

    current = getattr(booking, rule.field)
    if current not in rule.sources:
        raise InvalidStateError(
            details={"field": rule.field, "current": current, "requested": rule.target}
        )

    if (
        transition == BookingTransition.cancel
        and booking.status == BookingStatus.confirmed.value
        and PROVIDER not in allowed
    ):
        if cancel_cutoff_hours is None:
            raise InvalidActorError("Only the provider can cancel a confirmed booking")
        deadline = ensure_utc(booking.start_time) - timedelta(hours=cancel_cutoff_hours)
        if now > deadline:
            raise InvalidActorError(
                "The cancellation window for this booking has closed",
                details={"deadline": deadline.isoformat()},
            )

    if transition == BookingTransition.complete and now < ensure_utc(booking.end_time):
        raise NotYetDueError(
            "A booking can only be completed after it has ended",
            details={"end_time": ensure_utc(booking.end_time).isoformat()},
        )

    return rule.field, rule.target


class BookingLifecycle:
    @staticmethod
    def apply_transition(
        db: Session,
        booking_id: str,
        actor_id: str,
        actor_role: Optional[str],
        transition: BookingTransition,
        now: Optional[datetime] = None,
    ) -> Booking:
        """Validate and commit one transition.

        The booking is re-read inside the writing transaction and the UPDATE is
        guarded by the state that was validated, so a concurrent writer that
        got there first makes this call fail with InvalidStateError instead of
        being overwritten.
        """
        now = ensure_utc(now) if now is not None else utc_now()
        transition = BookingTransition(transition)
        try:
            booking = (
                db.query(Booking)
                .filter(Booking.id == str(booking_id))
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not booking:
                raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")

            field, target = check_transition(
                booking,
                actor_id,
                actor_role,
                transition,
                now,
                cancel_cutoff_hours=config.CUSTOMER_CANCEL_CUTOFF_HOURS,
            )

            from_status = booking.status
            from_payment_status = booking.payment_status
            updated = (
                db.query(Booking)
                .filter(
                    Booking.id == booking.id,
                    Booking.status == from_status,
                    Booking.payment_status == from_payment_status,
                )
                .update({field: target, "updated_at": utc_now()}, synchronize_session=False)
            )
            if updated != 1:
                raise InvalidStateError(details={"booking_id": booking.id})

            db.add(
                BookingEvent(
                    booking_id=booking.id,
                    actor_id=actor_id,
                    actor_role=actor_role,
                    action=transition.value,
                    from_status=from_status,
                    to_status=target if field == "status" else from_status,
                    from_payment_status=from_payment_status,
                    to_payment_status=target if field == "payment_status" else from_payment_status,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(
            f"Booking {booking.id}: {transition.value} by {actor_id} ({actor_role}) -> "
            f"status={booking.status}, payment_status={booking.payment_status}"
        )
        return booking


booking_lifecycle = BookingLifecycle()
