"""
Purpose: Orchestrator / request boundary for bookings (the "glue").
What it does:
Validates a guardian's request, schedules and prices it, stores it as pending,
then runs every later status change through the booking state machine,
saves it with compare-and-swap and hands the resulting events to the
NotificationDispatcher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import List, Optional, Tuple

from dispatch.dispatcher import NotificationDispatcher
from dispatch.state_machines.booking_state import (
    BookingTransition,
    InvalidStatusTransition,
    accept_booking,
    cancel_booking,
    complete_booking,
    reject_booking,
)
from pricing.engine import driver_availability, extension_price, quote
from pricing.models import PricingQuote
from pricing.policy import PricingPolicy, default_pricing_policy
from routing.geo import is_route_compatible
from storage.memory import InMemoryStore, StorageConflict

from .models import ActorRole, Booking, BookingRequest, BookingStatus, Location
from .policy import BookingPolicy, default_booking_policy
from .schedule import InvalidDateRange, count_school_days, require_school_days

logger = logging.getLogger(__name__)


class InvalidBookingRequest(ValueError):
    """Raised when a request is missing or mixes up its recurring fields."""
    pass


@dataclass(frozen=True)
class BookingDraft:
    """
    A stored pending booking and the quote the guardian was shown.
    """
    booking: Booking
    quote: PricingQuote


class BookingService:
    """
    Coordinates booking creation and status changes against the store and the notifier.
    """
    def __init__(
        self,
        store: InMemoryStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        pricing_policy: Optional[PricingPolicy] = None,
        booking_policy: Optional[BookingPolicy] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.pricing_policy = pricing_policy or default_pricing_policy()
        self.booking_policy = booking_policy or default_booking_policy()

    # --- Creation ---

    def booked_seats(self, driver_id: str, on: Optional[date] = None) -> int:
        """
        Seats a driver has already promised: confirmed bookings still running on `on`.
        """
        on = on or date.today()
        return sum(
            1 for booking in self.store.bookings_for_driver(driver_id, BookingStatus.CONFIRMED)
            if booking.last_ride_date >= on
        )

    def overlapping_booking(self, request: BookingRequest) -> Optional[Booking]:
        """
        An active booking for the same child and driver whose dates meet the request.
        """
        last_day = request.end_date if request.is_recurring and request.end_date else request.ride_date
        for booking in self.store.bookings_for_child(request.child_id):
            if (
                booking.is_active
                and booking.driver_id == request.driver_id
                and booking.ride_date <= last_day
                and request.ride_date <= booking.last_ride_date
            ):
                return booking
        return None

    def request_booking(
        self,
        request: BookingRequest,
        *,
        total_seats: int,
        booked_seats: Optional[int] = None,
        today: Optional[date] = None,
    ) -> BookingDraft:
        """
        Schedule, price and store a new pending booking.
        Nothing is stored if the dates are unusable.
        """
        today = today or date.today()

        if request.ride_date < today:
            raise InvalidBookingRequest(f"Ride date {request.ride_date} is in the past")

        if request.is_recurring:
            if request.end_date is None:
                raise InvalidBookingRequest("A recurring booking needs an end date")
            school_days = require_school_days(request.ride_date, request.end_date, request.daily_time)
            day_count = len(school_days)
            recurring_day_count: Optional[int] = day_count
        else:
            if request.end_date is not None:
                raise InvalidBookingRequest("Only recurring bookings take an end date")
            require_school_days(request.ride_date, request.ride_date, request.daily_time)
            day_count = 1
            recurring_day_count = None

        clash = self.overlapping_booking(request)
        if clash is not None:
            raise InvalidBookingRequest(
                f"Child {request.child_id} already has booking {clash.id} with driver {request.driver_id} "
                f"({clash.ride_date} to {clash.last_ride_date})"
            )

        if booked_seats is None:
            booked_seats = self.booked_seats(request.driver_id, request.ride_date)
        availability = driver_availability(total_seats, booked_seats)

        trip_quote = quote(
            request.pickup_location.coordinate,
            request.dropoff_location.coordinate,
            day_count,
            availability,
            self.pricing_policy,
        )

        booking = Booking.new(
            request,
            recurring_day_count=recurring_day_count,
            total_price=trip_quote.total_price,
            distance=trip_quote.distance_km,
            price_per_km=trip_quote.base_rate_per_km_per_day,
        )
        stored = self.store.add_booking(booking)

        logger.info(
            f"Booking {stored.id} requested: child {stored.child_id} with driver {stored.driver_id}, "
            f"{day_count} day(s), Rs.{trip_quote.total_price}"
        )
        return BookingDraft(booking=stored, quote=trip_quote)

    # --- Transitions ---

    def commit(self, transition: BookingTransition) -> Booking:
        """
        Save a transition computed from a previously read snapshot, then notify.
        Raises StorageConflict if the booking moved on in the meantime.
        """
        try:
            stored = self.store.save_booking(transition.booking, expected_status=transition.previous_status)
        except StorageConflict:
            logger.warning(
                f"Booking {transition.booking.id} conflict: "
                f"{transition.previous_status.value} -> {transition.booking.status.value} rejected"
            )
            raise

        logger.info(f"Booking {stored.id}: {transition.previous_status.value} -> {stored.status.value}")
        self.dispatcher.dispatch(transition.events)
        return stored

    def accept(self, booking_id: str, driver_id: str, *, now: Optional[datetime] = None) -> Booking:
        booking = self.store.get_booking(booking_id)
        return self.commit(accept_booking(booking, driver_id, now=now))

    def reject(self, booking_id: str, driver_id: str, *, reason: Optional[str] = None, now: Optional[datetime] = None) -> Booking:
        booking = self.store.get_booking(booking_id)
        return self.commit(reject_booking(booking, driver_id, reason=reason, now=now))

    def cancel(
        self,
        booking_id: str,
        actor_id: str,
        actor_role: ActorRole,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        booking = self.store.get_booking(booking_id)
        return self.commit(cancel_booking(booking, actor_id, actor_role, reason=reason, now=now))

    def complete(self, booking_id: str, *, today: Optional[date] = None, now: Optional[datetime] = None) -> Booking:
        booking = self.store.get_booking(booking_id)
        day_rides = self.store.rides_for_booking(booking_id)
        return self.commit(complete_booking(booking, today=today, day_rides=day_rides, now=now))

    def cancel_child_bookings(self, child_id: str, guardian_id: str, *, reason: Optional[str] = None) -> List[Booking]:
        """
        Child profile deleted: cancel whatever is still active for that child.
        A booking that moves on mid-loop is skipped (commit logs the conflict).
        """
        cancelled = []
        for booking in self.store.bookings_for_child(child_id):
            if not booking.is_active:
                continue
            try:
                cancelled.append(
                    self.commit(cancel_booking(booking, guardian_id, ActorRole.GUARDIAN, reason=reason))
                )
            except StorageConflict:
                # Changed under us (e.g. driver just cancelled); the rest still go
                continue
        return cancelled

    def extend(self, booking_id: str, new_end_date: date, *, now: Optional[datetime] = None) -> Booking:
        """
        Push a recurring booking's end date out, charging the added school days
        at the booking's existing daily rate.
        """
        now = now or datetime.now()
        booking = self.store.get_booking(booking_id)

        if not booking.is_recurring or booking.end_date is None:
            raise InvalidBookingRequest(f"Booking {booking_id} is not recurring")
        if not booking.is_active:
            raise InvalidStatusTransition(f"Cannot extend booking {booking_id} in status {booking.status.value}")
        if new_end_date <= booking.end_date:
            raise InvalidDateRange(f"New end date {new_end_date} must be after {booking.end_date}")
        for other in self.store.bookings_for_child(booking.child_id):
            if (
                other.id != booking.id
                and other.is_active
                and other.driver_id == booking.driver_id
                and booking.end_date < other.ride_date <= new_end_date
            ):
                raise InvalidBookingRequest(f"Extending {booking_id} to {new_end_date} would overlap booking {other.id}")

        current_days = booking.recurring_day_count or 0
        new_day_count = count_school_days(booking.ride_date, new_end_date)
        added_days = new_day_count - current_days
        added_price = extension_price(booking.total_price or 0, current_days, added_days)

        extended = replace(
            booking,
            end_date=new_end_date,
            recurring_day_count=new_day_count,
            total_price=(booking.total_price or 0) + added_price,
            updated_at=now,
        )
        stored = self.store.save_booking(extended, expected_status=booking.status)
        logger.info(f"Booking {booking_id} extended to {new_end_date}: +{added_days} day(s), +Rs.{added_price}")
        return stored

    # --- Driver search / display helpers ---

    def driver_serves(self, pickup: Location, school: Location, route_start: Location, route_end: Location) -> bool:
        return is_route_compatible(
            pickup.coordinate,
            school.coordinate,
            route_start.coordinate,
            route_end.coordinate,
            max_km=self.booking_policy.route_compatibility_km,
        )

    @staticmethod
    def days_remaining(booking: Booking, today: Optional[date] = None) -> int:
        today = today or date.today()
        return max(0, (booking.last_ride_date - today).days)

    def status_summary(self, booking: Booking, today: Optional[date] = None) -> Tuple[str, str]:
        """
        (label, description) shown on the guardian's booking card.
        """
        if booking.status == BookingStatus.PENDING:
            return "Pending Confirmation", "Waiting for driver to accept the booking"

        if booking.status == BookingStatus.CONFIRMED:
            remaining = self.days_remaining(booking, today)
            if remaining <= self.booking_policy.ending_soon_days:
                return "Ending Soon", f"Only {remaining} days remaining"
            return "Active", f"{remaining} days remaining"

        return booking.status.value, "Booking status"
