"""
Rides domain package.

Public API:
- Domain models: ActiveRide, RideChild, RideStatus, RideChildStatus
- RidePolicy

The RideService orchestrator lives in rides.service.
"""
from .models import ActiveRide, RideChild, RideChildStatus, RideStatus, ride_id_for
from .policy import RidePolicy, default_ride_policy

__all__ = [
    "ActiveRide",
    "RideChild",
    "RideChildStatus",
    "RideStatus",
    "ride_id_for",
    "RidePolicy",
    "default_ride_policy",
]
