"""Geocoder library — pluggable place-name geocoding with caching.

Public API:
    - BaseGeocoder: Abstract provider interface
    - GeocodingResult: Coordinates returned by a provider
    - ProviderResult: Non-raising outcome of one provider attempt
    - GeocodingError and subclasses: Provider failure taxonomy
    - SerpGeocoder / GoogleMapsGeocoder / MapboxGeocoder / NominatimGeocoder: Providers
    - ProviderChain / ChainResult: Ordered fallback across providers
    - CacheStore / CacheEntry / CacheStats: Durable cache access
    - ValidityPolicy / EvictionPolicy: Cache freshness and capacity rules
    - get_geocoder: Provider factory/registry
    - build_provider_chain: Chain of enabled providers in fallback order
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from place_resolver.lib.geocoder.base import (
    BaseGeocoder,
    GeocodingError,
    GeocodingProviderError,
    GeocodingResult,
    NoResultsFoundError,
    ProviderResult,
    ProviderUnavailableError,
)
from place_resolver.lib.geocoder.cache import (
    CacheEntry,
    CacheReadCorruptedError,
    CacheStats,
    CacheStore,
)
from place_resolver.lib.geocoder.chain import ChainResult, ProviderChain
from place_resolver.lib.geocoder.google_maps import GoogleMapsGeocoder
from place_resolver.lib.geocoder.mapbox import MapboxGeocoder
from place_resolver.lib.geocoder.nominatim import NominatimGeocoder
from place_resolver.lib.geocoder.policy import EvictionPolicy, ValidityPolicy
from place_resolver.lib.geocoder.serp import SerpGeocoder

if TYPE_CHECKING:
    from place_resolver.core.config import Settings

# Provider registry: all known providers
_PROVIDERS: dict[str, type[BaseGeocoder]] = {
    "serp": SerpGeocoder,
    "google": GoogleMapsGeocoder,
    "mapbox": MapboxGeocoder,
    "nominatim": NominatimGeocoder,
}


def get_available_providers() -> list[str]:
    """Return the names of all registered geocoder providers.

    Returns:
        Sorted list of provider name strings.
    """
    return sorted(_PROVIDERS.keys())


def get_geocoder(provider: str, **kwargs: Any) -> BaseGeocoder:
    """Get a geocoder instance by provider name.

    Args:
        provider: Provider name (e.g., "serp").
        **kwargs: Additional arguments forwarded to the provider constructor.

    Returns:
        An instance of the requested geocoder provider.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _PROVIDERS.get(provider)
    if cls is None:
        msg = f"Unknown geocoder provider: {provider!r}. Available: {list(_PROVIDERS.keys())}"
        raise ValueError(msg)
    return cls(**kwargs)


def _provider_configs(settings: Settings) -> dict[str, dict[str, Any]]:
    return {
        "serp": {
            "enabled": settings.geocoder_serp_enabled,
            "kwargs": {
                "api_key": settings.geocoder_serp_api_key or "",
                "timeout": settings.geocoder_serp_timeout,
                "region_name": settings.geocoder_region_name,
            },
        },
        "google": {
            "enabled": settings.geocoder_google_enabled,
            "kwargs": {
                "api_key": settings.geocoder_google_api_key or "",
                "timeout": settings.geocoder_google_timeout,
                "region": settings.geocoder_region_code,
            },
        },
        "mapbox": {
            "enabled": settings.geocoder_mapbox_enabled,
            "kwargs": {
                "api_key": settings.geocoder_mapbox_api_key or "",
                "timeout": settings.geocoder_mapbox_timeout,
                "country": settings.geocoder_region_code,
            },
        },
        "nominatim": {
            "enabled": settings.geocoder_nominatim_enabled,
            "kwargs": {
                "timeout": settings.geocoder_nominatim_timeout,
                "email": settings.geocoder_nominatim_email,
                "country_codes": settings.geocoder_region_code,
            },
        },
    }


def get_enabled_providers(settings: Settings) -> list[BaseGeocoder]:
    """Instantiate every enabled provider in fallback order.

    Providers missing credentials are kept: they report themselves
    unavailable at resolution time without making a request, so the
    missing key shows up in the aggregated chain error.

    Args:
        settings: Application settings.

    Returns:
        List of BaseGeocoder instances, in fallback order, deduplicated.
    """
    provider_configs = _provider_configs(settings)
    providers: list[BaseGeocoder] = []
    seen: set[str] = set()

    for name in settings.geocoder_fallback_order_list:
        if name in seen:
            continue
        seen.add(name)
        config = provider_configs.get(name)
        if config is None or not config.get("enabled", False):
            continue
        providers.append(get_geocoder(name, **config.get("kwargs", {})))

    return providers


def build_provider_chain(settings: Settings) -> ProviderChain:
    """Build the fallback chain described by settings."""
    return ProviderChain(get_enabled_providers(settings), call_timeout=settings.geocoder_call_timeout)


@dataclass
class ProviderMetadata:
    """Metadata about a geocoding provider (configured or not)."""

    name: str
    enabled: bool
    requires_api_key: bool
    is_configured: bool
    rate_limit_delay: float


def get_all_provider_metadata(settings: Settings) -> list[ProviderMetadata]:
    """Return metadata for all registered providers.

    Args:
        settings: Application settings.

    Returns:
        List of ProviderMetadata for every registered provider.
    """
    enabled = {p.provider_name: p for p in get_enabled_providers(settings)}
    provider_configs = _provider_configs(settings)

    metadata: list[ProviderMetadata] = []
    for name in get_available_providers():
        provider = enabled.get(name) or get_geocoder(name, **provider_configs[name]["kwargs"])
        metadata.append(
            ProviderMetadata(
                name=name,
                enabled=name in enabled,
                requires_api_key=provider.requires_api_key,
                is_configured=provider.is_configured,
                rate_limit_delay=provider.rate_limit_delay,
            )
        )
    return metadata


__all__ = [
    "BaseGeocoder",
    "CacheEntry",
    "CacheReadCorruptedError",
    "CacheStats",
    "CacheStore",
    "ChainResult",
    "EvictionPolicy",
    "GeocodingError",
    "GeocodingProviderError",
    "GeocodingResult",
    "GoogleMapsGeocoder",
    "MapboxGeocoder",
    "NoResultsFoundError",
    "NominatimGeocoder",
    "ProviderChain",
    "ProviderMetadata",
    "ProviderResult",
    "ProviderUnavailableError",
    "SerpGeocoder",
    "ValidityPolicy",
    "build_provider_chain",
    "get_all_provider_metadata",
    "get_available_providers",
    "get_enabled_providers",
    "get_geocoder",
]
