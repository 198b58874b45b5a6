from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, FrozenSet, List, Optional, Sequence

from bookings.models import ActorRole, Booking, BookingStatus
from bookings.schedule import booking_school_days
from dispatch import events
from dispatch.events import LifecycleEvent
from rides.models import ActiveRide, RideStatus


class InvalidStatusTransition(Exception):
    """Raised when a booking or ride is no longer in the state the caller expected."""
    pass


class ActorNotPermitted(Exception):
    """Raised when someone outside the booking tries to move it."""
    pass


BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# Only a finished day ride counts towards closing a recurring booking
RESOLVED_RIDE_STATUSES = frozenset({RideStatus.COMPLETED})


@dataclass(frozen=True)
class BookingTransition:
    """
    New booking snapshot plus the events the change produced.
    Nothing is persisted or sent until the caller hands these on.
    """
    previous_status: BookingStatus
    booking: Booking
    events: List[LifecycleEvent] = field(default_factory=list)


def _move(booking: Booking, target: BookingStatus, now: datetime, **changes) -> Booking:
    if target not in BOOKING_TRANSITIONS[booking.status]:
        raise InvalidStatusTransition(
            f"Cannot transition booking {booking.id} to {target.value} from {booking.status.value}"
        )
    return replace(booking, status=target, updated_at=now, **changes)


def accept_booking(booking: Booking, driver_id: str, *, now: Optional[datetime] = None) -> BookingTransition:
    """
    Called when the booked driver accepts a pending request.
    """
    now = now or datetime.now()
    if driver_id != booking.driver_id:
        raise ActorNotPermitted(f"Driver {driver_id} does not hold booking {booking.id}")

    if booking.status != BookingStatus.PENDING:
        raise InvalidStatusTransition(
            f"Booking {booking.id} is not pending. Current: {booking.status.value}"
        )

    confirmed = _move(booking, BookingStatus.CONFIRMED, now)
    return BookingTransition(booking.status, confirmed, [events.booking_confirmed(confirmed, now)])


def cancel_booking(
    booking: Booking,
    actor_id: str,
    actor_role: ActorRole,
    *,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BookingTransition:
    """
    Either party may cancel a pending or confirmed booking.
    The other party is notified.
    """
    now = now or datetime.now()
    owner_id = booking.driver_id if actor_role == ActorRole.DRIVER else booking.guardian_id
    if actor_id != owner_id:
        raise ActorNotPermitted(f"{actor_role.value} {actor_id} is not a party to booking {booking.id}")

    cancelled = _move(
        booking,
        BookingStatus.CANCELLED,
        now,
        cancelled_by=actor_role,
        cancellation_reason=reason.strip() if reason and reason.strip() else None,
    )
    return BookingTransition(booking.status, cancelled, [events.booking_cancelled(cancelled, actor_role, now)])


def reject_booking(
    booking: Booking,
    driver_id: str,
    *,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BookingTransition:
    """
    A driver turning a pending request down. Once confirmed, the driver
    goes through cancel_booking instead.
    """
    if booking.status != BookingStatus.PENDING:
        raise InvalidStatusTransition(
            f"Booking {booking.id} is not pending. Current: {booking.status.value}"
        )
    return cancel_booking(booking, driver_id, ActorRole.DRIVER, reason=reason, now=now)


def _day_rides_resolved(booking: Booking, day_rides: Sequence[ActiveRide]) -> bool:
    rides_by_date = {ride.date: ride for ride in day_rides if ride.carries_booking(booking.id)}
    for day in booking_school_days(booking):
        ride = rides_by_date.get(day)
        if ride is None or ride.status not in RESOLVED_RIDE_STATUSES:
            return False
    return True


def complete_booking(
    booking: Booking,
    *,
    today: Optional[date] = None,
    day_rides: Sequence[ActiveRide] = (),
    now: Optional[datetime] = None,
) -> BookingTransition:
    """
    Close out a confirmed booking once its service is over.

    Single day: the ride date has arrived.
    Recurring: every school day in the range has a completed day ride
    carrying this booking.
    """
    now = now or datetime.now()
    today = today or now.date()

    if booking.status != BookingStatus.CONFIRMED:
        raise InvalidStatusTransition(
            f"Booking {booking.id} must be confirmed to complete. Current: {booking.status.value}"
        )

    if today < booking.ride_date:
        raise InvalidStatusTransition(f"Booking {booking.id} has not started yet (ride date {booking.ride_date})")

    if booking.is_recurring and not _day_rides_resolved(booking, day_rides):
        raise InvalidStatusTransition(f"Booking {booking.id} still has unfinished school days")

    completed = _move(booking, BookingStatus.COMPLETED, now)
    return BookingTransition(booking.status, completed, [])
