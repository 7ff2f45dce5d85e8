"""SerpApi Google Maps search provider.

Queries the SerpApi ``google_maps`` engine (https://serpapi.com/google-maps-api)
and takes coordinates from the most relevant place in the response. Good at
landmarks, venues and colloquial place names that address geocoders miss.
Requires an API key.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from place_resolver.lib.geocoder.base import (
    BaseGeocoder,
    GeocodingProviderError,
    GeocodingResult,
)

SERP_API_URL = "https://serpapi.com/search.json"
DEFAULT_TIMEOUT = 10.0


class _GpsCoordinates(BaseModel):
    latitude: float
    longitude: float


class _SerpPlace(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    address: str | None = None
    place_id: str | None = None
    gps_coordinates: _GpsCoordinates | None = None


class SerpSearchResponse(BaseModel):
    """Subset of the SerpApi Google Maps search response body."""

    model_config = ConfigDict(extra="ignore")

    place_results: _SerpPlace | None = None
    local_results: list[_SerpPlace] = []
    organic_results: list[_SerpPlace] = []
    error: str | None = None

    def candidates(self) -> list[_SerpPlace]:
        """Places in relevance order: direct match, then local, then organic."""
        places = [self.place_results] if self.place_results else []
        return places + self.local_results + self.organic_results


class SerpGeocoder(BaseGeocoder):
    """SerpApi Google Maps search geocoder provider."""

    def __init__(
        self,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        region_name: str = "",
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._region_name = region_name

    @property
    def provider_name(self) -> str:
        return "serp"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _build_query(self, location: str) -> str:
        if self._region_name and self._region_name.lower() not in location.lower():
            return f"{location} {self._region_name}"
        return location

    async def geocode(self, location: str) -> GeocodingResult | None:
        """Geocode a place name using SerpApi Google Maps search.

        Args:
            location: Free-text place name.

        Returns:
            GeocodingResult or None if no place with coordinates was found.

        Raises:
            GeocodingProviderError: On transport, service, or parse errors.
        """
        params = {
            "engine": "google_maps",
            "q": self._build_query(location),
            "api_key": self._api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(SERP_API_URL, params=params)
                response.raise_for_status()

            return self._parse_response(response.json())

        except httpx.TimeoutException as e:
            logger.warning("SerpApi geocoder timeout")
            raise GeocodingProviderError("serp", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"SerpApi geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "serp",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("SerpApi geocoder connection error")
            raise GeocodingProviderError("serp", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("SerpApi geocoder unexpected error")
            raise GeocodingProviderError("serp", f"Unexpected error: {e}") from e

    def _parse_response(self, data: object) -> GeocodingResult | None:
        """Parse a SerpApi response into a GeocodingResult.

        Args:
            data: Decoded JSON body from SerpApi.

        Returns:
            GeocodingResult for the first place carrying GPS coordinates, or None.

        Raises:
            GeocodingProviderError: On API error messages or malformed payloads.
        """
        try:
            parsed = SerpSearchResponse.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Failed to parse SerpApi response: {e.error_count()} validation errors")
            raise GeocodingProviderError("serp", "Malformed response payload") from e

        if parsed.error:
            # SerpApi reports an empty search as an error string
            if "hasn't returned any results" in parsed.error:
                return None
            raise GeocodingProviderError("serp", f"API error: {parsed.error}")

        for place in parsed.candidates():
            if place.gps_coordinates is None:
                continue
            try:
                return GeocodingResult(
                    latitude=place.gps_coordinates.latitude,
                    longitude=place.gps_coordinates.longitude,
                    formatted_address=place.address or place.title,
                )
            except ValueError as e:
                raise GeocodingProviderError("serp", f"Invalid coordinates: {e}") from e

        return None
