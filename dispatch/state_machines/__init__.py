#Transition tables and pure transition functions for bookings and daily rides.
#Each function takes a snapshot and returns (new snapshot, events); nothing is saved here.

from .booking_state import (
    ActorNotPermitted,
    BookingTransition,
    InvalidStatusTransition,
    accept_booking,
    cancel_booking,
    complete_booking,
    reject_booking,
)
from .ride_state import (
    InvalidRideCancellation,
    RideChildNotFound,
    RideTransition,
    cancel_ride_for_day,
    complete_ride,
    mark_child,
    start_ride,
)

__all__ = [
    "ActorNotPermitted",
    "BookingTransition",
    "InvalidStatusTransition",
    "accept_booking",
    "cancel_booking",
    "complete_booking",
    "reject_booking",
    "InvalidRideCancellation",
    "RideChildNotFound",
    "RideTransition",
    "cancel_ride_for_day",
    "complete_ride",
    "mark_child",
    "start_ride",
]
