"""Mapbox Geocoding API v6 provider.

Uses the Mapbox Geocoding API v6 forward endpoint
(https://docs.mapbox.com/api/search/geocoding-v6/)
restricted to the configured country. Requires an access token.
"""

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from place_resolver.lib.geocoder.base import (
    BaseGeocoder,
    GeocodingProviderError,
    GeocodingResult,
)

MAPBOX_API_URL = "https://api.mapbox.com/search/geocode/v6/forward"
DEFAULT_TIMEOUT = 10.0


class _Geometry(BaseModel):
    coordinates: list[float]

    @field_validator("coordinates")
    @classmethod
    def validate_pair(cls, v: list[float]) -> list[float]:
        if len(v) < 2:
            msg = "coordinates must contain longitude and latitude"
            raise ValueError(msg)
        return v


class _Properties(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    full_address: str | None = None
    place_formatted: str | None = None
    relevance: float | None = None


class _Feature(BaseModel):
    model_config = ConfigDict(extra="ignore")

    geometry: _Geometry
    properties: _Properties = Field(default_factory=_Properties)


class MapboxForwardResponse(BaseModel):
    """Subset of the Mapbox v6 forward geocoding FeatureCollection."""

    model_config = ConfigDict(extra="ignore")

    features: list[_Feature] = []


class MapboxGeocoder(BaseGeocoder):
    """Mapbox geocoder provider."""

    def __init__(
        self,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        country: str = "id",
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._country = country

    @property
    def provider_name(self) -> str:
        return "mapbox"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def geocode(self, location: str) -> GeocodingResult | None:
        """Geocode a place name using the Mapbox API.

        Args:
            location: Free-text place name.

        Returns:
            GeocodingResult or None if no match found.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params = {
            "q": location,
            "access_token": self._api_key,
            "country": self._country,
            "limit": 1,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(MAPBOX_API_URL, params=params)
                response.raise_for_status()

            return self._parse_response(response.json())

        except httpx.TimeoutException as e:
            logger.warning("Mapbox geocoder timeout")
            raise GeocodingProviderError("mapbox", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Mapbox geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "mapbox",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Mapbox geocoder connection error")
            raise GeocodingProviderError("mapbox", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Mapbox geocoder unexpected error")
            raise GeocodingProviderError("mapbox", f"Unexpected error: {e}") from e

    def _parse_response(self, data: object) -> GeocodingResult | None:
        """Parse Mapbox API response into a GeocodingResult."""
        try:
            parsed = MapboxForwardResponse.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Failed to parse Mapbox response: {e.error_count()} validation errors")
            raise GeocodingProviderError("mapbox", "Malformed response payload") from e

        if not parsed.features:
            return None

        best = parsed.features[0]
        lng, lat = best.geometry.coordinates[0], best.geometry.coordinates[1]
        properties = best.properties
        relevance = properties.relevance if properties.relevance is not None else 0.5

        try:
            return GeocodingResult(
                latitude=lat,
                longitude=lng,
                formatted_address=properties.full_address or properties.place_formatted or properties.name,
                confidence_score=min(max(relevance, 0.0), 1.0),
            )
        except ValueError as e:
            raise GeocodingProviderError("mapbox", f"Invalid coordinates: {e}") from e
