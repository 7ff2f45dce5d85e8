"""Google Maps Geocoding API provider.

Uses the Google Maps Geocoding API
(https://developers.google.com/maps/documentation/geocoding/)
for place-name-to-coordinate resolution. Requires an API key.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from place_resolver.lib.geocoder.base import (
    BaseGeocoder,
    GeocodingProviderError,
    GeocodingResult,
)

GOOGLE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DEFAULT_TIMEOUT = 10.0

# Google location_type → confidence
_LOCATION_TYPE_CONFIDENCE: dict[str, float] = {
    "ROOFTOP": 1.0,
    "RANGE_INTERPOLATED": 0.85,
    "GEOMETRIC_CENTER": 0.6,
    "APPROXIMATE": 0.5,
}


class _LatLng(BaseModel):
    lat: float
    lng: float


class _Geometry(BaseModel):
    location: _LatLng
    location_type: str = "APPROXIMATE"


class _GoogleResult(BaseModel):
    geometry: _Geometry
    formatted_address: str | None = None


class GoogleGeocodeResponse(BaseModel):
    """Subset of the Google Geocoding API response body."""

    model_config = ConfigDict(extra="ignore")

    status: str
    results: list[_GoogleResult] = []
    error_message: str | None = None


class GoogleMapsGeocoder(BaseGeocoder):
    """Google Maps geocoder provider."""

    def __init__(
        self,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        region: str = "id",
        language: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._region = region
        self._language = language or region

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def geocode(self, location: str) -> GeocodingResult | None:
        """Geocode a place name using the Google Maps API.

        Args:
            location: Free-text place name.

        Returns:
            GeocodingResult or None if no match found.

        Raises:
            GeocodingProviderError: On transport, service, or API-specific errors.
        """
        params = {
            "address": location,
            "key": self._api_key,
            "region": self._region,
            "language": self._language,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(GOOGLE_API_URL, params=params)
                response.raise_for_status()

            return self._parse_response(response.json())

        except httpx.TimeoutException as e:
            logger.warning("Google Maps geocoder timeout")
            raise GeocodingProviderError("google", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Google Maps geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "google",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Google Maps geocoder connection error")
            raise GeocodingProviderError("google", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Google Maps geocoder unexpected error")
            raise GeocodingProviderError("google", f"Unexpected error: {e}") from e

    def _parse_response(self, data: object) -> GeocodingResult | None:
        """Parse Google Maps API response into a GeocodingResult.

        Args:
            data: Decoded JSON body from the Google Maps API.

        Returns:
            GeocodingResult or None if no match found.

        Raises:
            GeocodingProviderError: On API error statuses or malformed payloads.
        """
        try:
            parsed = GoogleGeocodeResponse.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Failed to parse Google Maps response: {e.error_count()} validation errors")
            raise GeocodingProviderError("google", "Malformed response payload") from e

        if parsed.status == "ZERO_RESULTS":
            return None

        if parsed.status != "OK":
            msg = parsed.error_message or f"Geocoding failed with status: {parsed.status}"
            raise GeocodingProviderError("google", f"API error: {msg}")

        if not parsed.results:
            return None

        best = parsed.results[0]
        try:
            return GeocodingResult(
                latitude=best.geometry.location.lat,
                longitude=best.geometry.location.lng,
                formatted_address=best.formatted_address,
                confidence_score=_LOCATION_TYPE_CONFIDENCE.get(best.geometry.location_type, 0.5),
            )
        except ValueError as e:
            raise GeocodingProviderError("google", f"Invalid coordinates: {e}") from e
