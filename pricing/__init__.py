"""
Pricing domain package.

Public API:
- quote, quote_for_distance, driver_availability
- PricingQuote, PriceBreakdown
- PricingPolicy, default_pricing_policy
"""

from .engine import (
    InvalidPricingInput,
    driver_availability,
    estimate_fuel_cost,
    extension_price,
    format_price,
    quote,
    quote_for_distance,
)
from .models import PriceBreakdown, PricingQuote
from .policy import PricingPolicy, default_pricing_policy

__all__ = [
    "InvalidPricingInput",
    "driver_availability",
    "estimate_fuel_cost",
    "extension_price",
    "format_price",
    "quote",
    "quote_for_distance",
    "PriceBreakdown",
    "PricingQuote",
    "PricingPolicy",
    "default_pricing_policy",
]
