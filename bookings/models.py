"""
Purpose: Domain models for the Bookings capability.
What it does:
- Defines core data structures:
- Coordinate / Location (immutable geography values)
- BookingRequest (what a guardian submits)
- Booking (single-day or recurring reservation of one driver for one child)

Defines enums/constants:
- BookingStatus = pending | confirmed | cancelled | completed
- ActorRole = guardian | driver

Rule: No pricing math, no schedule expansion, no transitions. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import uuid


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ActorRole(str, Enum):
    """
    Who performed a transition. Decides which party a cancellation notifies.
    """
    GUARDIAN = "guardian"
    DRIVER = "driver"


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class Location:
    coordinate: Coordinate
    address: str = ""

    @classmethod
    def new(cls, lat: float, lng: float, address: str = "") -> Location:
        return cls(coordinate=Coordinate(lat=lat, lng=lng), address=address)

    def to_document(self) -> Dict[str, Any]:
        return {"lat": self.coordinate.lat, "lng": self.coordinate.lng, "address": self.address}


@dataclass(frozen=True)
class BookingRequest:
    """
    A guardian's request before pricing and scheduling.
    end_date is required iff is_recurring.
    """
    guardian_id: str
    child_id: str
    driver_id: str
    pickup_location: Location
    dropoff_location: Location
    ride_date: date
    is_recurring: bool = False
    end_date: Optional[date] = None
    daily_time: Optional[time] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Booking:
    """
    Snapshot of a booking. Transitions never mutate it, they return a new
    snapshot (see dispatch.state_machines.booking_state).
    """
    id: str
    guardian_id: str
    child_id: str
    driver_id: str
    pickup_location: Location
    dropoff_location: Location
    ride_date: date

    is_recurring: bool = False
    end_date: Optional[date] = None
    daily_time: Optional[time] = None
    recurring_day_count: Optional[int] = None

    status: BookingStatus = BookingStatus.PENDING

    # Pricing snapshot taken when the request was quoted
    total_price: Optional[int] = None
    distance: Optional[float] = None
    price_per_km: Optional[int] = None

    notes: Optional[str] = None
    cancelled_by: Optional[ActorRole] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    # Storage version for compare-and-swap, bumped by the store on every save
    revision: int = 0

    @property
    def last_ride_date(self) -> date:
        return self.end_date if self.is_recurring and self.end_date else self.ride_date

    @property
    def is_active(self) -> bool:
        return self.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    @staticmethod
    def new(
        request: BookingRequest,
        *,
        recurring_day_count: Optional[int],
        total_price: Optional[int] = None,
        distance: Optional[float] = None,
        price_per_km: Optional[int] = None,
    ) -> Booking:
        now = datetime.now()
        return Booking(
            id=str(uuid.uuid4()),
            guardian_id=request.guardian_id,
            child_id=request.child_id,
            driver_id=request.driver_id,
            pickup_location=request.pickup_location,
            dropoff_location=request.dropoff_location,
            ride_date=request.ride_date,
            is_recurring=request.is_recurring,
            end_date=request.end_date,
            daily_time=request.daily_time,
            recurring_day_count=recurring_day_count,
            status=BookingStatus.PENDING,
            total_price=total_price,
            distance=distance,
            price_per_km=price_per_km,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )

    def to_document(self) -> Dict[str, Any]:
        """
        Plain dict shape handed to a document store.
        """
        return {
            "id": self.id,
            "guardianId": self.guardian_id,
            "childId": self.child_id,
            "driverId": self.driver_id,
            "pickupLocation": self.pickup_location.to_document(),
            "dropoffLocation": self.dropoff_location.to_document(),
            "rideDate": self.ride_date.isoformat(),
            "isRecurring": self.is_recurring,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "dailyTime": self.daily_time.strftime("%H:%M") if self.daily_time else None,
            "recurringDays": self.recurring_day_count,
            "status": self.status.value,
            "totalPrice": self.total_price,
            "distance": self.distance,
            "pricePerKm": self.price_per_km,
            "notes": self.notes,
            "cancelledBy": self.cancelled_by.value if self.cancelled_by else None,
            "cancellationReason": self.cancellation_reason,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "revision": self.revision,
        }
