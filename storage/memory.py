"""
Purpose: In-memory stand-in for the document store that holds bookings and rides.
What it does:
- Owns the id -> snapshot maps for Booking and ActiveRide
- Applies every save as one atomic compare-and-swap:
   - the stored status must still be the status the change was computed from
   - the stored revision must still be the revision that was read
- Bumps the revision on each successful save

Rule: Store owns persistence and conflict detection, state machines own the rules.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Optional

from bookings.models import Booking, BookingStatus
from rides.models import ActiveRide, RideStatus


class StorageConflict(Exception):
    """Raised when a record changed between read and write. Reload and decide again."""
    pass


class RecordNotFound(LookupError):
    """Raised when an id is not in the store."""
    pass


@dataclass
class InMemoryStore:
    """
    Thread-safe in-memory storage collaborator.
    """
    _bookings: Dict[str, Booking] = field(default_factory=dict)
    _rides: Dict[str, ActiveRide] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # --- Bookings ---

    def add_booking(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id in self._bookings:
                raise StorageConflict(f"Booking {booking.id} already exists")
            stored = replace(booking, revision=1)
            self._bookings[booking.id] = stored
            return stored

    def get_booking(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise RecordNotFound(f"Booking {booking_id} not found")
        return booking

    def save_booking(self, booking: Booking, *, expected_status: BookingStatus) -> Booking:
        """
        Compare-and-swap: `booking` must carry the revision that was read.
        """
        with self._lock:
            current = self._bookings.get(booking.id)
            if current is None:
                raise RecordNotFound(f"Booking {booking.id} not found")
            if current.status != expected_status or current.revision != booking.revision:
                raise StorageConflict(
                    f"Booking {booking.id} changed since it was read "
                    f"(expected {expected_status.value} r{booking.revision}, found {current.status.value} r{current.revision})"
                )
            stored = replace(booking, revision=current.revision + 1)
            self._bookings[booking.id] = stored
            return stored

    def bookings_for_driver(self, driver_id: str, status: Optional[BookingStatus] = None) -> List[Booking]:
        return [
            booking for booking in self._bookings.values()
            if booking.driver_id == driver_id and (status is None or booking.status == status)
        ]

    def bookings_for_child(self, child_id: str) -> List[Booking]:
        return [booking for booking in self._bookings.values() if booking.child_id == child_id]

    def bookings_for_guardian(self, guardian_id: str) -> List[Booking]:
        return [booking for booking in self._bookings.values() if booking.guardian_id == guardian_id]

    # --- Rides ---

    def add_ride(self, ride: ActiveRide) -> ActiveRide:
        with self._lock:
            if ride.id in self._rides:
                raise StorageConflict(f"Ride {ride.id} already exists")
            stored = replace(ride, revision=1)
            self._rides[ride.id] = stored
            return stored

    def find_ride(self, ride_id: str) -> Optional[ActiveRide]:
        return self._rides.get(ride_id)

    def get_ride(self, ride_id: str) -> ActiveRide:
        ride = self._rides.get(ride_id)
        if ride is None:
            raise RecordNotFound(f"Ride {ride_id} not found")
        return ride

    def save_ride(self, ride: ActiveRide, *, expected_status: RideStatus) -> ActiveRide:
        """
        Compare-and-swap on status and revision. Per-child updates go through here
        too, so two concurrent attendance marks cannot overwrite each other.
        """
        with self._lock:
            current = self._rides.get(ride.id)
            if current is None:
                raise RecordNotFound(f"Ride {ride.id} not found")
            if current.status != expected_status or current.revision != ride.revision:
                raise StorageConflict(
                    f"Ride {ride.id} changed since it was read "
                    f"(expected {expected_status.value} r{ride.revision}, found {current.status.value} r{current.revision})"
                )
            stored = replace(ride, revision=current.revision + 1)
            self._rides[ride.id] = stored
            return stored

    def rides_for_driver(self, driver_id: str, on: Optional[date] = None) -> List[ActiveRide]:
        return [
            ride for ride in self._rides.values()
            if ride.driver_id == driver_id and (on is None or ride.date == on)
        ]

    def rides_for_booking(self, booking_id: str) -> List[ActiveRide]:
        return [ride for ride in self._rides.values() if ride.carries_booking(booking_id)]

    def all_rides(self) -> List[ActiveRide]:
        return list(self._rides.values())
