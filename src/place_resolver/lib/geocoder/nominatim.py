"""OpenStreetMap Nominatim geocoder provider.

Uses the Nominatim API (https://nominatim.org/release-docs/develop/api/Search/)
for place-name-to-coordinate resolution. Free but rate-limited to 1 req/sec.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from place_resolver.lib.geocoder.base import (
    BaseGeocoder,
    GeocodingProviderError,
    GeocodingResult,
)

NOMINATIM_API_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "place-resolver/0.1"


class NominatimPlace(BaseModel):
    """One entry of the Nominatim search response array."""

    model_config = ConfigDict(extra="ignore")

    lat: float
    lon: float
    display_name: str | None = None
    importance: float = 0.0


_PLACES_ADAPTER = TypeAdapter(list[NominatimPlace])


class NominatimGeocoder(BaseGeocoder):
    """OpenStreetMap Nominatim geocoder provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        email: str = "",
        country_codes: str = "id",
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout = timeout
        self._email = email
        self._country_codes = country_codes
        self._user_agent = user_agent

    @property
    def provider_name(self) -> str:
        return "nominatim"

    @property
    def rate_limit_delay(self) -> float:
        return 1.0

    async def geocode(self, location: str) -> GeocodingResult | None:
        """Geocode a place name using the Nominatim API.

        Args:
            location: Free-text place name.

        Returns:
            GeocodingResult or None if no match found.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | int] = {
            "q": location,
            "format": "json",
            "limit": 1,
            "countrycodes": self._country_codes,
        }
        if self._email:
            params["email"] = self._email

        headers = {"User-Agent": self._user_agent}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(NOMINATIM_API_URL, params=params, headers=headers)
                response.raise_for_status()

            return self._parse_response(response.json())

        except httpx.TimeoutException as e:
            logger.warning("Nominatim geocoder timeout")
            raise GeocodingProviderError("nominatim", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nominatim geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "nominatim",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Nominatim geocoder connection error")
            raise GeocodingProviderError("nominatim", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Nominatim geocoder unexpected error")
            raise GeocodingProviderError("nominatim", f"Unexpected error: {e}") from e

    def _parse_response(self, data: object) -> GeocodingResult | None:
        """Parse Nominatim API response into a GeocodingResult.

        Args:
            data: Decoded JSON body (list of places) from Nominatim.

        Returns:
            GeocodingResult or None if no match found.
        """
        try:
            places = _PLACES_ADAPTER.validate_python(data)
        except ValidationError as e:
            logger.warning(f"Failed to parse Nominatim response: {e.error_count()} validation errors")
            raise GeocodingProviderError("nominatim", "Malformed response payload") from e

        if not places:
            return None

        best = places[0]
        try:
            return GeocodingResult(
                latitude=best.lat,
                longitude=best.lon,
                formatted_address=best.display_name,
                confidence_score=min(max(best.importance, 0.0), 1.0),
            )
        except ValueError as e:
            raise GeocodingProviderError("nominatim", f"Invalid coordinates: {e}") from e
