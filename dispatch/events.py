"""
Purpose: The events lifecycle operations emit ("what changed, who should know").
What it does:
Every booking or ride transition returns a list of LifecycleEvent objects
next to the new snapshot. The NotificationDispatcher turns each event into
one delivery per recipient. Builders here own the human-readable text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from bookings.models import ActorRole, Booking

if TYPE_CHECKING:
    from rides.models import ActiveRide, RideChild


class EventType(str, Enum):
    BOOKING_CONFIRMED = "BookingConfirmed"
    BOOKING_CANCELLED = "BookingCancelled"
    ATTENDANCE_CHANGED = "AttendanceChanged"
    TRIP_ENDED = "TripEnded"
    RIDE_CANCELLED = "RideCancelled"


class NotificationType(str, Enum):
    """
    Channel-agnostic category the guardian/driver apps filter on.
    """
    BOOKING = "booking"
    ATTENDANCE = "attendance"
    TRIP_END = "trip_end"
    RIDE_CANCELLED = "ride_cancelled"


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    message: str
    type: NotificationType
    data: Dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return {"title": self.title, "message": self.message, "type": self.type.value, "data": dict(self.data)}


@dataclass(frozen=True)
class LifecycleEvent:
    event_type: EventType
    recipient_ids: Tuple[str, ...]
    payload: NotificationPayload
    sender_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=datetime.now)


# --- Booking events ---

def booking_confirmed(booking: Booking, now: datetime) -> LifecycleEvent:
    return LifecycleEvent(
        event_type=EventType.BOOKING_CONFIRMED,
        recipient_ids=(booking.guardian_id,),
        sender_id=booking.driver_id,
        occurred_at=now,
        payload=NotificationPayload(
            title="Booking Confirmed",
            message=f"Your driver accepted the booking starting {booking.ride_date.isoformat()}.",
            type=NotificationType.BOOKING,
            data={
                "bookingId": booking.id,
                "guardianId": booking.guardian_id,
                "driverId": booking.driver_id,
                "childId": booking.child_id,
            },
        ),
    )


def booking_cancelled(booking: Booking, actor_role: ActorRole, now: datetime) -> LifecycleEvent:
    # Tell the other party
    if actor_role == ActorRole.DRIVER:
        recipient, sender = booking.guardian_id, booking.driver_id
        message = "Your driver cancelled the booking."
    else:
        recipient, sender = booking.driver_id, booking.guardian_id
        message = "The guardian cancelled the booking."

    if booking.cancellation_reason:
        message = f"{message} Reason: {booking.cancellation_reason}"

    return LifecycleEvent(
        event_type=EventType.BOOKING_CANCELLED,
        recipient_ids=(recipient,),
        sender_id=sender,
        occurred_at=now,
        payload=NotificationPayload(
            title="Booking Cancelled",
            message=message,
            type=NotificationType.BOOKING,
            data={
                "bookingId": booking.id,
                "guardianId": booking.guardian_id,
                "driverId": booking.driver_id,
                "cancelledBy": actor_role.value,
                "reason": booking.cancellation_reason,
            },
        ),
    )


# --- Ride events ---

ATTENDANCE_TEXT = {
    "picked_up": ("Child Picked Up", "Your child has been safely picked up by the driver."),
    "absent": ("Child Absent", "Your child was marked as absent and not picked up."),
    "dropped_off": ("Child Dropped Off", "Your child has been dropped off."),
}


def attendance_changed(ride: ActiveRide, child: RideChild, now: datetime) -> LifecycleEvent:
    title, message = ATTENDANCE_TEXT[child.status.value]
    return LifecycleEvent(
        event_type=EventType.ATTENDANCE_CHANGED,
        recipient_ids=(child.guardian_id,),
        sender_id=ride.driver_id,
        occurred_at=now,
        payload=NotificationPayload(
            title=title,
            message=message,
            type=NotificationType.ATTENDANCE,
            data={
                "rideId": ride.id,
                "childId": child.child_id,
                "bookingId": child.booking_id,
                "status": child.status.value,
                "notes": child.notes,
                "timestamp": now.isoformat(),
            },
        ),
    )


def trip_ended(ride: ActiveRide, now: datetime) -> List[LifecycleEvent]:
    return [
        LifecycleEvent(
            event_type=EventType.TRIP_ENDED,
            recipient_ids=(guardian_id,),
            sender_id=ride.driver_id,
            occurred_at=now,
            payload=NotificationPayload(
                title="Trip Completed",
                message=f"Today's trip on {ride.date.isoformat()} has been completed.",
                type=NotificationType.TRIP_END,
                data={
                    "rideId": ride.id,
                    "droppedOffCount": ride.dropped_off_count,
                    "absentCount": ride.absent_count,
                    "timestamp": now.isoformat(),
                },
            ),
        )
        for guardian_id in ride.guardian_ids
    ]


def ride_cancelled(ride: ActiveRide, reason: str, now: datetime) -> List[LifecycleEvent]:
    return [
        LifecycleEvent(
            event_type=EventType.RIDE_CANCELLED,
            recipient_ids=(guardian_id,),
            sender_id=ride.driver_id,
            occurred_at=now,
            payload=NotificationPayload(
                title="Ride Cancelled",
                message=f"The ride on {ride.date.isoformat()} was cancelled by the driver. Reason: {reason}",
                type=NotificationType.RIDE_CANCELLED,
                data={
                    "rideId": ride.id,
                    "date": ride.date.isoformat(),
                    "reason": reason,
                    "childIds": [child.child_id for child in ride.children if child.guardian_id == guardian_id],
                },
            ),
        )
        for guardian_id in ride.guardian_ids
    ]
