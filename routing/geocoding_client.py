#Purpose: The geocoding "adapter/client".
#Sole responsibility: turn a free-text address into a Location via HTTP.
#Runs before pricing; it holds no pricing or booking rules.


from dotenv import load_dotenv
import os
from typing import Any, Dict, List, Optional
import requests

from bookings.models import Coordinate, Location

# Read the geocoder base URL from environment
# Example in .env:
# GEOCODER_BASE_URL=https://nominatim.openstreetmap.org
load_dotenv()
GEOCODER_BASE_URL = os.getenv("GEOCODER_BASE_URL")


class GeocodingError(Exception):
    """Raised when an address cannot be resolved."""
    pass


class GeocodingClient:
    """
    Geocoding Adapter / Client

    Sole responsibility:
    - Talk to a Nominatim-style /search endpoint
    - Normalize the first hit into a Location (lat, lng, address)
    """
    def __init__(self, base_url: Optional[str] = None, timeout: int = 5, country_code: Optional[str] = "lk"):
        self.base_url = base_url or GEOCODER_BASE_URL
        self.timeout = timeout #seconds to wait for the geocoder before giving up
        self.country_code = country_code #bias results to one country, None disables

        if not self.base_url:
            raise ValueError("Geocoder base URL not set. Please set GEOCODER_BASE_URL in the .env file.")

    def build_params(self, address: str) -> Dict[str, Any]:
        params: Dict[str, Any] = {"q": address, "format": "json", "limit": 1}
        if self.country_code:
            params["countrycodes"] = self.country_code
        return params

    def geocode(self, address: str) -> Location:
        """
        Resolve a free-text address.

        Returns:
            Location with the geocoder's coordinate and display name
        """
        if not address or not address.strip():
            raise GeocodingError("Address must not be empty.")

        try:
            response = requests.get(
                f"{self.base_url}/search",
                params=self.build_params(address),
                timeout=self.timeout,
            )
            response.raise_for_status()
            results: List[Dict[str, Any]] = response.json()
        except requests.RequestException as exc:
            raise GeocodingError(f"Geocoder request failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError(f"Geocoder returned invalid JSON: {exc}") from exc

        if not results:
            raise GeocodingError(f"No match for address '{address}'")

        best = results[0]
        try:
            coordinate = Coordinate(lat=float(best["lat"]), lng=float(best["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeocodingError(f"Geocoder result for '{address}' has no usable coordinate: {exc}") from exc

        return Location(coordinate=coordinate, address=best.get("display_name", address))
