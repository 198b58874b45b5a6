"""
Purpose: Orchestrator / request boundary for a driver's daily ride.
What it does:
Builds the day's ride from the driver's confirmed bookings, then runs each
driver action (start, attendance, end, cancel day) through the ride state
machine, saves it with compare-and-swap and hands the events to the
NotificationDispatcher.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from bookings.models import BookingStatus
from bookings.schedule import covers_date
from dispatch.dispatcher import NotificationDispatcher
from dispatch.state_machines.ride_state import (
    RideTransition,
    cancel_ride_for_day,
    complete_ride,
    mark_child,
    start_ride,
)
from storage.memory import InMemoryStore, StorageConflict

from .models import ActiveRide, RideChild, RideChildStatus, RideStatus, ride_id_for
from .policy import RidePolicy, default_ride_policy

logger = logging.getLogger(__name__)


class NoBookingsForDay(LookupError):
    """Raised when a driver has no confirmed booking running on the requested date."""
    pass


class RideService:
    """
    Coordinates one driver's day: plan -> start -> attendance -> end (or cancel).
    """
    def __init__(
        self,
        store: InMemoryStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        policy: Optional[RidePolicy] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.policy = policy or default_ride_policy()

    def commit(self, transition: RideTransition) -> ActiveRide:
        try:
            stored = self.store.save_ride(transition.ride, expected_status=transition.previous_status)
        except StorageConflict:
            logger.warning(f"Ride {transition.ride.id} conflict, update rejected")
            raise

        if stored.status != transition.previous_status:
            logger.info(f"Ride {stored.id}: {transition.previous_status.value} -> {stored.status.value}")
        self.dispatcher.dispatch(transition.events)
        return stored

    # --- Planning ---

    def children_for_day(self, driver_id: str, ride_date: date) -> List[RideChild]:
        bookings = [
            booking for booking in self.store.bookings_for_driver(driver_id, BookingStatus.CONFIRMED)
            if covers_date(booking, ride_date)
        ]
        bookings.sort(key=lambda booking: (booking.daily_time is None, booking.daily_time, booking.created_at))
        return [RideChild.from_booking(booking, ride_date) for booking in bookings]

    def plan_day_ride(self, driver_id: str, ride_date: Optional[date] = None) -> ActiveRide:
        """
        Create the not-started ride for a date, or return it if it already exists.
        """
        ride_date = ride_date or date.today()
        existing = self.store.find_ride(ride_id_for(driver_id, ride_date))
        if existing is not None:
            return existing

        children = self.children_for_day(driver_id, ride_date)
        if not children:
            raise NoBookingsForDay(f"No confirmed bookings for driver {driver_id} on {ride_date}")

        ride = self.store.add_ride(ActiveRide.new(driver_id, ride_date, children))
        logger.info(f"Planned ride {ride.id} with {ride.total_children} child(ren)")
        return ride

    # --- Driver actions ---

    def start_day_ride(
        self,
        driver_id: str,
        ride_date: Optional[date] = None,
        *,
        now: Optional[datetime] = None,
    ) -> ActiveRide:
        ride = self.plan_day_ride(driver_id, ride_date)
        return self.commit(start_ride(ride, now=now))

    def mark_child(
        self,
        ride_id: str,
        child_id: str,
        status: RideChildStatus,
        *,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ActiveRide:
        ride = self.store.get_ride(ride_id)
        updated = self.commit(mark_child(ride, child_id, status, notes=notes, now=now))

        if self.policy.auto_complete_when_resolved and updated.all_children_resolved:
            logger.info(f"Ride {ride_id}: every child resolved, ending trip")
            updated = self.commit(complete_ride(updated, now=now))
        return updated

    def complete(self, ride_id: str, *, force: bool = False, now: Optional[datetime] = None) -> ActiveRide:
        ride = self.store.get_ride(ride_id)
        return self.commit(complete_ride(ride, force=force, now=now))

    def cancel_for_day(
        self,
        ride_id: str,
        reason: str,
        *,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> ActiveRide:
        ride = self.store.get_ride(ride_id)
        return self.commit(
            cancel_ride_for_day(
                ride,
                reason,
                today=today,
                now=now,
                max_reason_length=self.policy.max_cancellation_reason_length,
            )
        )

    # --- Guardian views ---

    def rides_for_guardian(self, guardian_id: str, statuses: Optional[List[RideStatus]] = None) -> List[ActiveRide]:
        return [
            ride for ride in self.store.all_rides()
            if guardian_id in ride.guardian_ids and (statuses is None or ride.status in statuses)
        ]
