"""
Purpose: Central configuration for booking rules.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class BookingPolicy:
    """
    Tunables used by bookings.service.
    """

    # --- Driver search ---
    # A driver's route serves a child when both pickup and school are within
    # this many km of the route's start and end points.
    route_compatibility_km: float = 20.0

    # --- Display ---
    # Confirmed bookings with this many days or fewer left show as "Ending Soon".
    ending_soon_days: int = 3

    def validate(self) -> None:
        if self.route_compatibility_km <= 0:
            raise ValueError("route_compatibility_km must be > 0")
        if self.ending_soon_days < 0:
            raise ValueError("ending_soon_days must be >= 0")


def default_booking_policy() -> BookingPolicy:
    p = BookingPolicy()
    p.validate()
    return p
