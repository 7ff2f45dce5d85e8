"""Ordered fallback chain over interchangeable geocoding providers."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from place_resolver.lib.geocoder.base import (
    BaseGeocoder,
    GeocodingError,
    GeocodingProviderError,
    GeocodingResult,
)

DEFAULT_CALL_TIMEOUT = 15.0
NO_PROVIDERS_ERROR = "No geocoding providers configured"


@dataclass
class ChainResult:
    """Outcome of a chain resolution.

    On success ``provider`` names the provider that answered. ``errors`` holds
    every failure seen before that point (or all of them when nothing answered).
    """

    result: GeocodingResult | None = None
    provider: str | None = None
    errors: list[GeocodingError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result is not None

    @property
    def error(self) -> str | None:
        if self.success:
            return None
        if not self.errors:
            return NO_PROVIDERS_ERROR
        return "; ".join(str(e) for e in self.errors)


class ProviderChain:
    """Try providers strictly in priority order until one resolves the text.

    Providers are never called concurrently, so one resolution costs at most
    one outbound request per provider.
    """

    def __init__(
        self,
        providers: Sequence[BaseGeocoder],
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ) -> None:
        self._providers = list(providers)
        self._call_timeout = call_timeout

    @property
    def providers(self) -> list[BaseGeocoder]:
        return list(self._providers)

    @property
    def provider_names(self) -> list[str]:
        return [p.provider_name for p in self._providers]

    async def resolve(self, location: str) -> ChainResult:
        """Resolve a location through the chain.

        Args:
            location: Free-text place name.

        Returns:
            ChainResult tagged with the winning provider, or carrying every
            provider error when all of them failed.
        """
        errors: list[GeocodingError] = []

        for provider in self._providers:
            try:
                async with asyncio.timeout(self._call_timeout):
                    outcome = await provider.resolve(location)
            except TimeoutError:
                logger.warning(f"{provider.provider_name} exceeded {self._call_timeout}s, trying next provider")
                errors.append(
                    GeocodingProviderError(provider.provider_name, f"Timed out after {self._call_timeout}s")
                )
                continue

            if outcome.success:
                if errors:
                    logger.info(
                        f"Resolved via fallback provider {provider.provider_name} after {len(errors)} failure(s)"
                    )
                return ChainResult(result=outcome.result, provider=provider.provider_name, errors=errors)

            if outcome.error is not None:
                logger.debug(f"Provider failed: {outcome.error}")
                errors.append(outcome.error)

        return ChainResult(errors=errors)
