from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, FrozenSet, List, Optional

from dispatch import events
from dispatch.events import LifecycleEvent
from rides.models import ActiveRide, RideChild, RideChildStatus, RideStatus

from .booking_state import InvalidStatusTransition


class RideChildNotFound(LookupError):
    """Raised when a child is not on the ride being updated."""
    pass


class InvalidRideCancellation(ValueError):
    """Raised when a day cancellation has no usable reason or targets a past date."""
    pass


RIDE_TRANSITIONS: Dict[RideStatus, FrozenSet[RideStatus]] = {
    RideStatus.NOT_STARTED: frozenset({RideStatus.IN_PROGRESS, RideStatus.CANCELLED}),
    RideStatus.IN_PROGRESS: frozenset({RideStatus.COMPLETED, RideStatus.CANCELLED}),
    RideStatus.COMPLETED: frozenset(),
    RideStatus.CANCELLED: frozenset(),
}

# Attendance only moves forward; absent and dropped_off are final for the day
CHILD_TRANSITIONS: Dict[RideChildStatus, FrozenSet[RideChildStatus]] = {
    RideChildStatus.PENDING: frozenset({RideChildStatus.PICKED_UP, RideChildStatus.ABSENT}),
    RideChildStatus.PICKED_UP: frozenset({RideChildStatus.DROPPED_OFF}),
    RideChildStatus.ABSENT: frozenset(),
    RideChildStatus.DROPPED_OFF: frozenset(),
}


@dataclass(frozen=True)
class RideTransition:
    previous_status: RideStatus
    ride: ActiveRide
    events: List[LifecycleEvent] = field(default_factory=list)


def _move(ride: ActiveRide, target: RideStatus, now: datetime, **changes) -> ActiveRide:
    if target not in RIDE_TRANSITIONS[ride.status]:
        raise InvalidStatusTransition(
            f"Cannot transition ride {ride.id} to {target.value} from {ride.status.value}"
        )
    return replace(ride, status=target, updated_at=now, **changes)


def start_ride(ride: ActiveRide, *, now: Optional[datetime] = None) -> RideTransition:
    """
    Driver taps "Start ride" for the day.
    """
    now = now or datetime.now()
    if ride.status != RideStatus.NOT_STARTED:
        raise InvalidStatusTransition(f"Ride {ride.id} already {ride.status.value}")
    started = _move(ride, RideStatus.IN_PROGRESS, now, started_at=now)
    return RideTransition(ride.status, started, [])


def mark_child(
    ride: ActiveRide,
    child_id: str,
    new_status: RideChildStatus,
    *,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RideTransition:
    """
    Record one child's attendance. The ride's counts follow from the new
    child list; nothing else is touched.
    """
    now = now or datetime.now()
    if ride.status != RideStatus.IN_PROGRESS:
        raise InvalidStatusTransition(f"Ride {ride.id} is not in progress. Current: {ride.status.value}")

    child = ride.find_child(child_id)
    if child is None:
        raise RideChildNotFound(f"Child {child_id} is not on ride {ride.id}")

    if new_status not in CHILD_TRANSITIONS[child.status]:
        raise InvalidStatusTransition(
            f"Child {child_id} cannot move from {child.status.value} to {new_status.value}"
        )

    changes = {"status": new_status}
    if notes is not None:
        changes["notes"] = notes
    if new_status == RideChildStatus.PICKED_UP:
        changes["picked_up_at"] = now
    elif new_status == RideChildStatus.DROPPED_OFF:
        changes["dropped_off_at"] = now
    updated_child: RideChild = replace(child, **changes)

    children = tuple(updated_child if current.id == child.id else current for current in ride.children)
    updated = replace(ride, children=children, updated_at=now)

    return RideTransition(ride.status, updated, [events.attendance_changed(updated, updated_child, now)])


def complete_ride(ride: ActiveRide, *, force: bool = False, now: Optional[datetime] = None) -> RideTransition:
    """
    End the day's trip. Every child must be dropped off or absent unless the
    driver forces it.
    """
    now = now or datetime.now()
    if ride.status != RideStatus.IN_PROGRESS:
        raise InvalidStatusTransition(f"Ride {ride.id} is not in progress. Current: {ride.status.value}")

    if not force and not ride.all_children_resolved:
        unresolved = ride.total_children - ride.absent_count - ride.dropped_off_count
        raise InvalidStatusTransition(f"Ride {ride.id} still has {unresolved} child(ren) on board or waiting")

    completed = _move(ride, RideStatus.COMPLETED, now, completed_at=now)
    return RideTransition(ride.status, completed, events.trip_ended(completed, now))


def cancel_ride_for_day(
    ride: ActiveRide,
    reason: str,
    *,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    max_reason_length: int = 500,
) -> RideTransition:
    """
    Driver calls off the whole day. Every guardian on the ride is told why.
    """
    now = now or datetime.now()
    today = today or now.date()

    reason = (reason or "").strip()
    if not reason:
        raise InvalidRideCancellation("A reason is required to cancel the day's ride")
    if len(reason) > max_reason_length:
        raise InvalidRideCancellation(f"Reason must be at most {max_reason_length} characters")
    if ride.date < today:
        raise InvalidRideCancellation(f"Cannot cancel ride {ride.id}, {ride.date} is in the past")

    cancelled = _move(ride, RideStatus.CANCELLED, now, cancellation_reason=reason)
    return RideTransition(ride.status, cancelled, events.ride_cancelled(cancelled, reason, now))
