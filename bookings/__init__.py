"""
Bookings domain package.

Public API:
- Domain models: Booking, BookingRequest, BookingStatus, ActorRole, Coordinate, Location
- Schedule expansion: expand_schedule, count_school_days, require_school_days

The BookingService orchestrator lives in bookings.service and is imported from
there directly (it depends on pricing, which depends on these models).
"""
from .models import ActorRole, Booking, BookingRequest, BookingStatus, Coordinate, Location
from .schedule import (
    InvalidDateRange,
    NoSchoolDaysInRange,
    count_school_days,
    expand_schedule,
    require_school_days,
)

__all__ = ["ActorRole",
           "Booking",
             "BookingRequest",
               "BookingStatus",
               "Coordinate",
               "Location",
               "InvalidDateRange",
               "NoSchoolDaysInRange",
               "count_school_days",
               "expand_schedule",
               "require_school_days",
               ]
