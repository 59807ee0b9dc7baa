"""Reverse geocoding of report coordinates into state and LGA names."""
import requests
from flask import current_app

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(Exception):
    """Raised when coordinates cannot be resolved to a locality."""


def reverse_geocode(lat: float, lng: float) -> dict:
    """Return ``{"state": ..., "lga": ...}`` for a coordinate pair."""
    api_key = current_app.config.get("GOOGLE_MAPS_API_KEY")
    if not api_key:
        raise GeocodingError("GOOGLE_MAPS_API_KEY is not configured")

    try:
        response = requests.get(
            GEOCODE_URL,
            params={"latlng": f"{lat:f},{lng:f}", "key": api_key},
            timeout=10,
        )
    except requests.RequestException as exc:
        raise GeocodingError(f"Geocoding request failed: {exc}") from exc
    if response.status_code != 200:
        raise GeocodingError(f"Unexpected status code: {response.status_code}")

    try:
        body = response.json()
    except ValueError as exc:
        raise GeocodingError("Geocoding response not JSON-decodable") from exc

    locality = ""
    state = ""
    for result in body.get("results") or []:
        for component in result.get("address_components") or []:
            types = component.get("types") or []
            if not locality and ("locality" in types or "administrative_area_level_2" in types):
                locality = component.get("long_name", "")
            elif not state and "administrative_area_level_1" in types:
                state = component.get("long_name", "")
        if locality and state:
            break

    current_app.logger.info("geocode_resolved", extra={"lga": locality, "state": state})
    return {"state": state, "lga": locality}
