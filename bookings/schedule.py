"""
Purpose: Recurring-booking schedule expansion (pure functions only).
What it does:
Turns (start date, end date, daily time) into the concrete school days a
booking covers. Weekends are always excluded.

Rule: No storage, no pricing. Same inputs always give the same sequence.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING, Iterator, List, Optional

if TYPE_CHECKING:
    from .models import Booking

# date.weekday(): Monday == 0 ... Friday == 4
LAST_SCHOOL_WEEKDAY = 4


class InvalidDateRange(ValueError):
    """Raised when a schedule starts after it ends."""
    pass


class NoSchoolDaysInRange(ValueError):
    """Raised when a booking range holds no Monday-Friday date."""
    pass


def is_school_day(day: date) -> bool:
    return day.weekday() <= LAST_SCHOOL_WEEKDAY


def iter_school_days(start_date: date, end_date: date) -> Iterator[date]:
    """
    Lazily walk every calendar date in [start_date, end_date] and yield the weekdays.
    """
    if start_date > end_date:
        raise InvalidDateRange(f"start date {start_date} is after end date {end_date}")

    current = start_date
    while current <= end_date:
        if is_school_day(current):
            yield current
        current += timedelta(days=1)


def expand_schedule(start_date: date, end_date: date, daily_time: Optional[time] = None) -> List[date]:
    """
    Concrete school days covered by a booking, ascending.

    daily_time does not change which dates are produced; it is accepted so the
    call mirrors a booking's (start, end, time) triple. Use
    scheduled_pickup_times() to get the combined datetimes.
    """
    return list(iter_school_days(start_date, end_date))


def count_school_days(start_date: date, end_date: date) -> int:
    return sum(1 for _ in iter_school_days(start_date, end_date))


def require_school_days(start_date: date, end_date: date, daily_time: Optional[time] = None) -> List[date]:
    """
    Same as expand_schedule() but refuses an empty schedule.
    Booking creation goes through this.
    """
    days = expand_schedule(start_date, end_date, daily_time)
    if not days:
        raise NoSchoolDaysInRange(f"no school days between {start_date} and {end_date}")
    return days


def scheduled_pickup_times(start_date: date, end_date: date, daily_time: time) -> List[datetime]:
    return [datetime.combine(day, daily_time) for day in iter_school_days(start_date, end_date)]


def booking_school_days(booking: Booking) -> List[date]:
    return expand_schedule(booking.ride_date, booking.last_ride_date, booking.daily_time)


def covers_date(booking: Booking, day: date) -> bool:
    """
    True when the booking has a ride on `day`.
    """
    if not (booking.ride_date <= day <= booking.last_ride_date):
        return False
    return is_school_day(day)
