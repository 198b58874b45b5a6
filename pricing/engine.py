"""
Purpose: The pricing "engine" (single entry point for quotes).
What it does:

- measures the trip with routing.geo.distance_km
- applies the per-km, per-school-day tariff
- adds a surcharge that grows as the driver's van fills up
- returns an immutable PricingQuote with a display breakdown

Rule: Pure functions. No storage, no notifications, no clock.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from bookings.models import Coordinate
from routing.geo import distance_km as great_circle_km

from .models import PriceBreakdown, PricingQuote
from .policy import PricingPolicy, default_pricing_policy

Number = Union[int, float, Decimal]

WHOLE_RUPEE = Decimal("1")
HUNDRED = Decimal("100")


class InvalidPricingInput(ValueError):
    """Raised when distance, day count or availability are out of range."""
    pass


def round_rupees(amount: Number) -> int:
    """
    Round to a whole Rupee, halves away from zero, so Rs.50.5 bills as Rs.51
    like quotes already issued.
    """
    return int(Decimal(str(amount)).quantize(WHOLE_RUPEE, rounding=ROUND_HALF_UP))


def driver_availability(total_seats: int, booked_seats: int) -> int:
    """
    Percentage of the van that is still free, 0-100.
    A van with no seats counts as fully booked.
    """
    if total_seats <= 0:
        return 0
    availability = (total_seats - booked_seats) / total_seats * 100
    return round(max(0.0, min(100.0, availability)))


def _validate(distance_km: float, day_count: int, availability_percent: Number) -> None:
    if isinstance(day_count, bool) or not isinstance(day_count, int):
        raise InvalidPricingInput(f"day_count must be an integer, got {day_count!r}")
    if day_count < 0:
        raise InvalidPricingInput(f"day_count must be >= 0, got {day_count}")
    if not 0 <= availability_percent <= 100:
        raise InvalidPricingInput(f"availability_percent must be within [0, 100], got {availability_percent}")
    if distance_km < 0:
        raise InvalidPricingInput(f"distance must be >= 0, got {distance_km}")


def quote_for_distance(
    distance_km: float,
    day_count: int,
    availability_percent: int,
    policy: Optional[PricingPolicy] = None,
) -> PricingQuote:
    """
    Price an already measured trip.

    base_price and availability_bonus are each rounded to a whole Rupee before
    they are summed, so totals match quotes already shown to guardians.
    """
    policy = policy or default_pricing_policy()
    _validate(distance_km, day_count, availability_percent)

    base_price = Decimal(policy.base_rate_per_km) * Decimal(str(distance_km)) * day_count

    # Invert availability: fewer free seats => bigger surcharge
    availability_factor = (HUNDRED - Decimal(str(availability_percent))) / HUNDRED
    availability_bonus = base_price * policy.availability_multiplier * availability_factor

    rounded_base = round_rupees(base_price)
    rounded_bonus = round_rupees(availability_bonus)
    total_price = rounded_base + rounded_bonus

    prefix = policy.currency_prefix
    breakdown = PriceBreakdown(
        base_calculation=(
            f"{prefix}{policy.base_rate_per_km} × {distance_km}km × {day_count} days = {prefix}{rounded_base}"
        ),
        availability_adjustment=(
            f"Availability adjustment ({round_rupees(availability_factor * HUNDRED)}%): {prefix}{rounded_bonus}"
        ),
        final_total=f"Total: {prefix}{total_price}",
    )

    return PricingQuote(
        base_rate_per_km_per_day=policy.base_rate_per_km,
        distance_km=distance_km,
        day_count=day_count,
        availability_percent=int(availability_percent),
        base_price=rounded_base,
        availability_bonus=rounded_bonus,
        total_price=total_price,
        breakdown=breakdown,
    )


def quote(
    pickup: Coordinate,
    dropoff: Coordinate,
    day_count: int,
    availability_percent: int,
    policy: Optional[PricingPolicy] = None,
) -> PricingQuote:
    """
    Main pricing entry point: pickup -> dropoff for `day_count` school days
    with a driver whose van is `availability_percent` free.
    """
    return quote_for_distance(great_circle_km(pickup, dropoff), day_count, availability_percent, policy)


def extension_price(total_price: int, day_count: int, additional_days: int) -> int:
    """
    Price of extending a booking, charged at the booking's existing daily rate.
    """
    if additional_days < 0:
        raise InvalidPricingInput(f"additional_days must be >= 0, got {additional_days}")
    daily_rate = Decimal(total_price) / Decimal(day_count or 1)
    return round_rupees(daily_rate * additional_days)


def estimate_fuel_cost(distance_km: float, policy: Optional[PricingPolicy] = None) -> int:
    policy = policy or default_pricing_policy()
    litres = Decimal(str(distance_km)) / Decimal(str(policy.fuel_efficiency_km_per_l))
    return round_rupees(litres * policy.fuel_price_per_l)


def format_price(amount: int, policy: Optional[PricingPolicy] = None) -> str:
    policy = policy or default_pricing_policy()
    return f"{policy.currency_prefix}{amount:,}"
