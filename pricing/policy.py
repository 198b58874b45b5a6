"""
Purpose: Central configuration for trip pricing (single source of truth).
What it does:

Stores the tariff constants:

BASE_RATE_PER_KM = 25 (Rs. per km per school day)

AVAILABILITY_MULTIPLIER = 0.20 (max surcharge when a van is full)

Rule: No logic here, just parameters so the tariff can be tuned without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PricingPolicy:
    """
    Tariff used by pricing.engine.

    Notes:
    - availability surcharge = base_price * availability_multiplier * (100 - availability%) / 100,
      so an empty van adds nothing and a full van adds the whole multiplier.
    """

    # --- Tariff ---
    base_rate_per_km: int = 25
    availability_multiplier: Decimal = Decimal("0.20")

    # --- Display ---
    currency_prefix: str = "Rs."

    # --- Fuel estimate defaults (informational only, never charged) ---
    fuel_efficiency_km_per_l: float = 12.0
    fuel_price_per_l: int = 350

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.base_rate_per_km <= 0:
            raise ValueError("base_rate_per_km must be > 0")

        if not (Decimal("0") <= self.availability_multiplier <= Decimal("1")):
            raise ValueError("availability_multiplier must be within [0, 1]")

        if self.fuel_efficiency_km_per_l <= 0:
            raise ValueError("fuel_efficiency_km_per_l must be > 0")


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default tariff.
    """
    p = PricingPolicy()
    p.validate()
    return p
