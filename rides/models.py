"""
Purpose: Core data models for the daily rides domain.
What it does:
Defines one driver's run on one date (ActiveRide) and each child's leg
inside it (RideChild). Attendance counts are computed from the child list,
they are never stored as independent fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bookings.models import Booking, Location


class RideStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RideChildStatus(str, Enum):
    PENDING = "pending"
    PICKED_UP = "picked_up"
    ABSENT = "absent"
    DROPPED_OFF = "dropped_off"


TERMINAL_CHILD_STATUSES = frozenset({RideChildStatus.ABSENT, RideChildStatus.DROPPED_OFF})


def ride_id_for(driver_id: str, ride_date: date) -> str:
    return f"{driver_id}_{ride_date.isoformat()}"


@dataclass(frozen=True)
class RideChild:
    id: str
    child_id: str
    booking_id: str
    guardian_id: str
    pickup_location: Location
    dropoff_location: Location
    scheduled_pickup_time: Optional[datetime] = None
    status: RideChildStatus = RideChildStatus.PENDING
    picked_up_at: Optional[datetime] = None
    dropped_off_at: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status in TERMINAL_CHILD_STATUSES

    @classmethod
    def from_booking(cls, booking: Booking, ride_date: date) -> RideChild:
        scheduled = datetime.combine(ride_date, booking.daily_time) if booking.daily_time else None
        return cls(
            id=f"{booking.id}_{booking.child_id}",
            child_id=booking.child_id,
            booking_id=booking.id,
            guardian_id=booking.guardian_id,
            pickup_location=booking.pickup_location,
            dropoff_location=booking.dropoff_location,
            scheduled_pickup_time=scheduled,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "childId": self.child_id,
            "bookingId": self.booking_id,
            "guardianId": self.guardian_id,
            "pickupLocation": self.pickup_location.to_document(),
            "dropoffLocation": self.dropoff_location.to_document(),
            "scheduledPickupTime": self.scheduled_pickup_time.isoformat() if self.scheduled_pickup_time else None,
            "status": self.status.value,
            "pickedUpAt": self.picked_up_at.isoformat() if self.picked_up_at else None,
            "droppedOffAt": self.dropped_off_at.isoformat() if self.dropped_off_at else None,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class ActiveRide:
    """
    A stateless snapshot of one driver's run on one date.
    """
    id: str
    driver_id: str
    date: date
    status: RideStatus = RideStatus.NOT_STARTED
    children: Tuple[RideChild, ...] = ()
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    # Storage version for compare-and-swap
    revision: int = 0

    @classmethod
    def new(cls, driver_id: str, ride_date: date, children: List[RideChild]) -> ActiveRide:
        return cls(
            id=ride_id_for(driver_id, ride_date),
            driver_id=driver_id,
            date=ride_date,
            children=tuple(children),
        )

    # --- Derived attendance counts ---

    def _count(self, status: RideChildStatus) -> int:
        return sum(1 for child in self.children if child.status == status)

    @property
    def total_children(self) -> int:
        return len(self.children)

    @property
    def picked_up_count(self) -> int:
        return self._count(RideChildStatus.PICKED_UP)

    @property
    def absent_count(self) -> int:
        return self._count(RideChildStatus.ABSENT)

    @property
    def dropped_off_count(self) -> int:
        return self._count(RideChildStatus.DROPPED_OFF)

    @property
    def all_children_resolved(self) -> bool:
        return all(child.is_resolved for child in self.children)

    @property
    def guardian_ids(self) -> List[str]:
        """
        Distinct guardians on this ride, in child order.
        """
        seen: List[str] = []
        for child in self.children:
            if child.guardian_id not in seen:
                seen.append(child.guardian_id)
        return seen

    def find_child(self, child_id: str) -> Optional[RideChild]:
        for child in self.children:
            if child.child_id == child_id:
                return child
        return None

    def carries_booking(self, booking_id: str) -> bool:
        return any(child.booking_id == booking_id for child in self.children)

    def to_document(self) -> Dict[str, Any]:
        """
        Storage projection. Counts are written out for readers but always
        recomputed from `children` here.
        """
        return {
            "id": self.id,
            "driverId": self.driver_id,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "cancellationReason": self.cancellation_reason,
            "children": [child.to_document() for child in self.children],
            "totalChildren": self.total_children,
            "pickedUpCount": self.picked_up_count,
            "absentCount": self.absent_count,
            "droppedOffCount": self.dropped_off_count,
            "revision": self.revision,
        }
