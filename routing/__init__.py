#Marks routing as a package.
#Re-exports the distance math so other modules
#import from routing without knowing internal file names.
#The HTTP geocoder stays in routing.geocoding_client (it reads .env on import).
#No business logic.

from .geo import distance_km, is_route_compatible, EARTH_RADIUS_KM

__all__ = [
    "distance_km",
    "is_route_compatible",
    "EARTH_RADIUS_KM",
]
