import threading
from datetime import timedelta

import pytest

from slotwise.exceptions import OverlapError, ValidationException
from slotwise.models.booking_event_model import BookingEvent
from slotwise.models.booking_model import Booking
from slotwise.models.service_model import Service
from slotwise.services.conflict_guard import conflict_guard, provider_lock_key


def reserve(session_factory, service_id, customer_id, start, end):
    with session_factory() as session:
        service = session.get(Service, service_id)
        booking = conflict_guard.try_reserve(session, service, customer_id, start, end)
        return booking.id


def active_bookings(session_factory, provider_id):
    with session_factory() as session:
        return (
            session.query(Booking)
            .filter(Booking.provider_id == provider_id, Booking.status != "CANCELLED")
            .order_by(Booking.start_time)
            .all()
        )


def test_reserve_creates_pending_unpaid_booking(session_factory, marketplace, at):
    booking_id = reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(11), at(12))

    with session_factory() as session:
        booking = session.get(Booking, booking_id)
        assert booking.status == "PENDING"
        assert booking.payment_status == "UNPAID"
        assert booking.provider_id == marketplace["provider_id"]
        events = session.query(BookingEvent).filter(BookingEvent.booking_id == booking_id).all()
        assert [event.action for event in events] == ["CREATE"]


def test_overlapping_request_is_rejected(session_factory, marketplace, make_booking, at):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
        status="CONFIRMED",
    )

    with pytest.raises(OverlapError) as exc_info:
        reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(10, 30), at(11, 30))

    assert exc_info.value.code == "OVERLAP"
    assert len(active_bookings(session_factory, marketplace["provider_id"])) == 1


@pytest.mark.parametrize(
    "start,end",
    [((9, 30), (10, 30)), ((10, 15), (10, 45)), ((9, 0), (12, 0)), ((10, 0), (11, 0))],
)
def test_every_kind_of_intersection_is_rejected(session_factory, marketplace, make_booking, at, start, end):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
    )

    with pytest.raises(OverlapError):
        reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(*start), at(*end))


def test_adjacent_intervals_do_not_conflict(session_factory, marketplace, make_booking, at):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
        status="CONFIRMED",
    )

    reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(11), at(12))
    reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(9), at(10))

    assert len(active_bookings(session_factory, marketplace["provider_id"])) == 3


def test_cancelled_booking_frees_its_interval(session_factory, marketplace, make_booking, at):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
        status="CANCELLED",
    )

    reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(10), at(11))


def test_completed_booking_still_occupies_its_interval(session_factory, marketplace, make_booking, at):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
        status="COMPLETED",
    )

    with pytest.raises(OverlapError):
        reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(10), at(11))


def test_different_providers_do_not_conflict(session_factory, marketplace, make_user, make_service, make_booking, at):
    make_booking(
        marketplace["service_id"],
        marketplace["other_customer_id"],
        marketplace["provider_id"],
        at(10),
        at(11),
    )
    other_provider = make_user("provider-2", role="PROVIDER")
    other_service = make_service(other_provider, category="HAIRCUT")

    reserve(session_factory, other_service, marketplace["customer_id"], at(10), at(11))


def test_inverted_interval_is_a_validation_error(session_factory, marketplace, at):
    with pytest.raises(ValidationException):
        reserve(session_factory, marketplace["service_id"], marketplace["customer_id"], at(11), at(10))


def test_concurrent_overlapping_requests_admit_exactly_one(session_factory, marketplace, make_user, at):
    attempts = 8
    customers = [make_user(f"racer-{i}") for i in range(attempts)]
    barrier = threading.Barrier(attempts)
    results = []
    results_lock = threading.Lock()

    def attempt(customer_id, offset):
        start = at(10) + timedelta(minutes=offset)
        barrier.wait()
        try:
            reserve(session_factory, marketplace["service_id"], customer_id, start, start + timedelta(minutes=60))
            outcome = "ok"
        except OverlapError:
            outcome = "overlap"
        with results_lock:
            results.append(outcome)

    # Every request overlaps every other one: offsets stay within 60 minutes
    threads = [
        threading.Thread(target=attempt, args=(customer_id, i * 5))
        for i, customer_id in enumerate(customers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count("ok") == 1
    assert results.count("overlap") == attempts - 1
    assert len(active_bookings(session_factory, marketplace["provider_id"])) == 1


def test_lock_key_is_stable_signed_64_bit():
    key = provider_lock_key("provider-1")
    assert key == provider_lock_key("provider-1")
    assert key != provider_lock_key("provider-2")
    assert -(2 ** 63) <= key < 2 ** 63
