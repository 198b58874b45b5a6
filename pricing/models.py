"""
Purpose: Pricing output models.
Rule: No math here. The engine builds these, everyone else reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Human readable lines shown to the guardian before confirming.
    """
    base_calculation: str
    availability_adjustment: str
    final_total: str


@dataclass(frozen=True)
class PricingQuote:
    """
    One quote per booking request. Currency fields are whole Rupees.
    """
    base_rate_per_km_per_day: int
    distance_km: float
    day_count: int
    availability_percent: int
    base_price: int
    availability_bonus: int
    total_price: int
    breakdown: PriceBreakdown

    def to_document(self) -> Dict[str, Any]:
        return {
            "baseRatePerKmPerDay": self.base_rate_per_km_per_day,
            "distanceKm": self.distance_km,
            "dayCount": self.day_count,
            "availabilityPercent": self.availability_percent,
            "basePrice": self.base_price,
            "availabilityBonus": self.availability_bonus,
            "totalPrice": self.total_price,
            "breakdown": {
                "baseCalculation": self.breakdown.base_calculation,
                "availabilityAdjustment": self.breakdown.availability_adjustment,
                "finalTotal": self.breakdown.final_total,
            },
        }
