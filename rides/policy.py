"""
Purpose: Central configuration for daily rides.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class RidePolicy:
    """
    Tunables for the per-day ride lifecycle.
    """

    # --- Day cancellation ---
    # Guardians see this text, keep it short enough for a push notification.
    max_cancellation_reason_length: int = 500

    # --- Completion ---
    # Close the ride as soon as every child is dropped off or absent,
    # without waiting for the driver to press "End trip".
    auto_complete_when_resolved: bool = True

    def validate(self) -> None:
        if self.max_cancellation_reason_length <= 0:
            raise ValueError("max_cancellation_reason_length must be > 0")


def default_ride_policy() -> RidePolicy:
    p = RidePolicy()
    p.validate()
    return p
