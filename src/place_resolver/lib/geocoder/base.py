"""Abstract base geocoder interface for pluggable provider support."""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from loguru import logger


@dataclass
class GeocodingResult:
    """Coordinates returned by a provider for one location text."""

    latitude: float
    longitude: float
    formatted_address: str | None = None
    # Provider match quality; the cache keeps its own score
    confidence_score: float | None = None

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and -90 <= self.latitude <= 90):
            msg = f"latitude must be between -90 and 90, got {self.latitude}"
            raise ValueError(msg)
        if not (math.isfinite(self.longitude) and -180 <= self.longitude <= 180):
            msg = f"longitude must be between -180 and 180, got {self.longitude}"
            raise ValueError(msg)
        if self.confidence_score is not None and not (0 <= self.confidence_score <= 1):
            msg = f"confidence_score must be between 0 and 1, got {self.confidence_score}"
            raise ValueError(msg)


class GeocodingError(Exception):
    """Base class for a single provider's failure to resolve a location.

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
    """

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        self.message = message
        super().__init__(f"{provider_name}: {message}")


class ProviderUnavailableError(GeocodingError):
    """Raised when a provider lacks required configuration; no request is made."""


class GeocodingProviderError(GeocodingError):
    """Raised when a geocoding provider experiences a transport or service error.

    Covers timeouts, non-2xx responses, connection errors, and payloads that
    fail validation.

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(provider_name, message)


class NoResultsFoundError(GeocodingError):
    """Raised when a provider answered but matched nothing usable."""

    def __init__(self, provider_name: str, message: str = "No results found") -> None:
        super().__init__(provider_name, message)


@dataclass
class ProviderResult:
    """Outcome of one provider attempt, successful or not."""

    provider: str
    result: GeocodingResult | None = None
    error: GeocodingError | None = None

    @property
    def success(self) -> bool:
        return self.result is not None


class BaseGeocoder(ABC):
    """Abstract geocoder interface. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this geocoder provider."""

    @property
    def requires_api_key(self) -> bool:
        """Whether this provider requires an API key to function."""
        return False

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., API keys)."""
        return True

    @property
    def rate_limit_delay(self) -> float:
        """Minimum delay in seconds between requests (for rate-limited providers)."""
        return 0.0

    @abstractmethod
    async def geocode(self, location: str) -> GeocodingResult | None:
        """Geocode a single location text.

        Args:
            location: Free-text place name.

        Returns:
            GeocodingResult or None if the provider found no match.

        Raises:
            GeocodingProviderError: On transport, service, or parse errors.
        """

    async def resolve(self, location: str) -> ProviderResult:
        """Geocode without raising, reporting failures on the result.

        Unconfigured providers fail immediately without any network call.
        """
        if not self.is_configured:
            return ProviderResult(
                provider=self.provider_name,
                error=ProviderUnavailableError(self.provider_name, "API key not configured"),
            )

        try:
            result = await self.geocode(location)
        except GeocodingError as e:
            return ProviderResult(provider=self.provider_name, error=e)

        if result is None:
            logger.debug(f"{self.provider_name} returned no results")
            return ProviderResult(provider=self.provider_name, error=NoResultsFoundError(self.provider_name))
        return ProviderResult(provider=self.provider_name, result=result)
