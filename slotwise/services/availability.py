"""
Availability calculator.

A provider's day is cut into back-to-back buckets of the service duration,
starting at the opening of each working window. A bucket is offered only when
it does not intersect any active booking of the provider. Days never spill
into each other: a bucket that would run past the end of its window is dropped.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from slotwise import config
from slotwise.exceptions import NotFoundException, ValidationException
from slotwise.logger import get_logger
from slotwise.models.booking_model import Booking
from slotwise.models.service_model import Service
from slotwise.models.working_window_model import WorkingWindow
from slotwise.schemas.booking_schema import BookingStatus
from slotwise.utils.time_utils import ensure_utc

logger = get_logger(__name__)

# weekday (Monday == 0) -> [(start_minute, end_minute), ...]
WeeklyWindows = Dict[int, List[Tuple[int, int]]]


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval intersection: [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def default_weekly_windows() -> WeeklyWindows:
    start = config.WORKDAY_START_HOUR * 60
    end = config.WORKDAY_END_HOUR * 60
    if end <= start:
        return {}
    return {weekday: [(start, end)] for weekday in range(7)}


def _window_edge(day: date, minute: int, tz) -> datetime:
    """UTC instant of a wall-clock minute offset from local midnight."""
    local = datetime.combine(day, time.min) + timedelta(minutes=minute)
    return local.replace(tzinfo=tz).astimezone(timezone.utc)


def _local_days(range_start: datetime, range_end: datetime, tz) -> Iterator[date]:
    day = range_start.astimezone(tz).date()
    last_day = range_end.astimezone(tz).date()
    while day <= last_day:
        yield day
        day += timedelta(days=1)


def iter_available_slots(
    duration_minutes: int,
    range_start: datetime,
    range_end: datetime,
    weekly_windows: WeeklyWindows,
    busy: Iterable[Tuple[datetime, datetime]],
    tz=timezone.utc,
) -> Iterator[Slot]:
    """Yield free slots lying entirely inside [range_start, range_end), in order.

    Pure function of its arguments, so calling it again over the same booking
    state yields the same sequence.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    range_start = ensure_utc(range_start)
    range_end = ensure_utc(range_end)
    if range_end <= range_start:
        return

    step = timedelta(minutes=duration_minutes)
    intervals = sorted((ensure_utc(start), ensure_utc(end)) for start, end in busy)
    # Buckets come out in ascending order, so intervals that ended before the
    # current bucket can never matter again.
    cursor = 0

    for day in _local_days(range_start, range_end, tz):
        for start_minute, end_minute in sorted(weekly_windows.get(day.weekday(), ())):
            # Edges are local wall-clock times; buckets are stepped in UTC so
            # every slot lasts exactly `step`, DST days included.
            window_end = _window_edge(day, end_minute, tz)
            bucket_start = _window_edge(day, start_minute, tz)
            while bucket_start + step <= window_end:
                slot_start = bucket_start
                slot_end = bucket_start + step
                bucket_start = slot_end

                if slot_start < range_start:
                    continue
                if slot_end > range_end:
                    return

                while cursor < len(intervals) and intervals[cursor][1] <= slot_start:
                    cursor += 1
                taken = any(
                    overlaps(slot_start, slot_end, busy_start, busy_end)
                    for busy_start, busy_end in intervals[cursor:]
                    if busy_start < slot_end
                )
                if not taken:
                    yield Slot(start=slot_start, end=slot_end)


class AvailabilityCalculator:
    @staticmethod
    def get_weekly_windows(db: Session, provider_id: str) -> WeeklyWindows:
        """Provider's configured hours, or the default business hours if it configured none."""
        rows: Sequence[WorkingWindow] = (
            db.query(WorkingWindow).filter(WorkingWindow.provider_id == provider_id).all()
        )
        if not rows:
            return default_weekly_windows()

        windows: WeeklyWindows = {}
        for row in rows:
            windows.setdefault(row.weekday, []).append((row.start_minute, row.end_minute))
        return windows

    @staticmethod
    def get_busy_intervals(
        db: Session, provider_id: str, range_start: datetime, range_end: datetime
    ) -> List[Tuple[datetime, datetime]]:
        rows = (
            db.query(Booking.start_time, Booking.end_time)
            .filter(
                Booking.provider_id == provider_id,
                Booking.status != BookingStatus.cancelled.value,
                Booking.start_time < range_end,
                Booking.end_time > range_start,
            )
            .order_by(Booking.start_time)
            .all()
        )
        return [(start, end) for start, end in rows]

    @staticmethod
    def get_availability(
        db: Session, service_id: str, range_start: datetime, range_end: datetime
    ) -> List[Slot]:
        """Free slots of a service between range_start and range_end"""
        service = (
            db.query(Service)
            .filter(Service.id == str(service_id), Service.is_active == True)  # noqa: E712
            .first()
        )
        if not service:
            raise NotFoundException("Service not found or is inactive", code="SERVICE_NOT_FOUND")

        range_start = ensure_utc(range_start)
        range_end = ensure_utc(range_end)
        if range_end <= range_start:
            return []
        if range_end - range_start > timedelta(days=config.MAX_AVAILABILITY_RANGE_DAYS):
            raise ValidationException(
                f"Availability range may span at most {config.MAX_AVAILABILITY_RANGE_DAYS} days",
                code="RANGE_TOO_LONG",
            )

        windows = AvailabilityCalculator.get_weekly_windows(db, service.provider_id)
        busy = AvailabilityCalculator.get_busy_intervals(
            db, service.provider_id, range_start, range_end
        )
        slots = list(
            iter_available_slots(
                service.duration_minutes,
                range_start,
                range_end,
                windows,
                busy,
                tz=ZoneInfo(config.BUSINESS_TIMEZONE),
            )
        )
        logger.debug(
            f"Availability for service {service.id}: {len(slots)} free slots, {len(busy)} busy intervals"
        )
        return slots


availability_calculator = AvailabilityCalculator()
