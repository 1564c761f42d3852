"""Google Geocoding: pincode or coordinates to a structured address."""
import logging

import httpx

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(Exception):
    """Provider answered with a non-OK status."""

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status


class NoGeocodeResults(GeocodingError):
    pass


def parse_geocode_result(result: dict, lat: float | None = None, lng: float | None = None) -> dict:
    location = {"address": result.get("formatted_address")}
    if lat is not None and lng is not None:
        location["lat"] = lat
        location["lng"] = lng
    else:
        point = (result.get("geometry") or {}).get("location")
        if point:
            location["lat"] = point.get("lat")
            location["lng"] = point.get("lng")

    components = result.get("address_components") or []
    for component in components:
        types = component.get("types") or []
        name = component.get("long_name")
        if "locality" in types or "postal_town" in types:
            location["city"] = name
        if "administrative_area_level_1" in types:
            location["state"] = name
        if "sublocality" in types or "sublocality_level_1" in types:
            location["area"] = name
        if "postal_code" in types:
            location["zipCode"] = name

    if not location.get("area"):
        for component in components:
            types = component.get("types") or []
            if "sublocality_level_2" in types or "neighborhood" in types:
                location["area"] = component.get("long_name")
    return location


class GoogleGeocoder:
    def __init__(self, api_key: str, country: str = "India", timeout: float = 10.0):
        self.api_key = api_key
        self.country = country
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _lookup(self, params: dict) -> dict:
        with httpx.Client(timeout=self.timeout) as client:
            r = client.get(GEOCODE_URL, params={**params, "key": self.api_key})
        data = r.json()
        status = data.get("status")
        if status != "OK":
            logger.error("Geocoding API error: %s", data)
            raise GeocodingError(data.get("error_message") or f"Geocoding failed: {status}", status=status)
        results = data.get("results") or []
        if not results:
            raise NoGeocodeResults("No results found", status=status)
        return results[0]

    def from_pincode(self, pincode: str) -> dict:
        return parse_geocode_result(self._lookup({"address": f"{pincode},{self.country}"}))

    def from_coordinates(self, lat: float, lng: float) -> dict:
        return parse_geocode_result(self._lookup({"latlng": f"{lat},{lng}"}), lat=lat, lng=lng)
