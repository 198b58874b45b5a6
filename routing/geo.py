#Purpose: Straight-line (great-circle) distance math.
#Used by pricing (trip distance) and by driver search (route compatibility).
#No HTTP calls here, the geocoding client lives in geocoding_client.py.

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bookings.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Haversine great-circle distance between two coordinates, in kilometres,
    rounded to 2 decimal places.
    """
    delta_lat = math.radians(b.lat - a.lat)
    delta_lng = math.radians(b.lng - a.lng)

    haversine = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(delta_lng / 2) ** 2
    )
    central_angle = 2 * math.atan2(math.sqrt(haversine), math.sqrt(1 - haversine))

    return round(EARTH_RADIUS_KM * central_angle, 2)


def is_route_compatible(
    pickup: Coordinate,
    school: Coordinate,
    route_start: Coordinate,
    route_end: Coordinate,
    max_km: float = 20.0,
) -> bool:
    """
    A driver's fixed route can serve a child when the child's pickup is near the
    route start AND the child's school is near the route end.
    """
    pickup_distance = distance_km(pickup, route_start)
    school_distance = distance_km(school, route_end)
    return pickup_distance <= max_km and school_distance <= max_km
