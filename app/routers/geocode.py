"""Pincode / coordinate lookup for the listing form."""
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_geocoder
from app.exceptions import APIError
from app.services.geocoding import GeocodingError, GoogleGeocoder, NoGeocodeResults

logger = logging.getLogger(__name__)

router = APIRouter(tags=["geocode"])


@router.get("/geocode")
def geocode(
    type: str | None = None,
    pincode: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    geocoder: GoogleGeocoder = Depends(get_geocoder),
):
    if not geocoder.configured:
        raise HTTPException(
            status_code=500,
            detail="Server Google Maps API key (GOOGLE_MAPS_SERVER_API_KEY) not configured",
        )
    try:
        if type == "pincode" and pincode and pincode.strip():
            return geocoder.from_pincode(pincode.strip())
        if type == "coordinates" and lat is not None and lng is not None:
            return geocoder.from_coordinates(lat, lng)
    except NoGeocodeResults:
        raise HTTPException(status_code=404, detail="No results found")
    except GeocodingError as e:
        raise APIError(400, str(e), status=e.status)
    except httpx.HTTPError as e:
        logger.error("Geocoding request failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to geocode location")
    raise HTTPException(status_code=400, detail="Invalid parameters")
