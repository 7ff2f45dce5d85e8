"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./place_resolver.db",
        description="Async SQLAlchemy connection string (PostgreSQL via asyncpg or SQLite via aiosqlite)",
    )

    # Geocode cache
    geocode_cache_max_entries: int = Field(
        default=10000,
        description="Maximum number of cached locations before eviction runs",
        gt=0,
    )
    geocode_cache_max_age_days: int = Field(
        default=30,
        description="Days after creation beyond which a cache entry is no longer served",
        gt=0,
    )
    geocode_cache_unused_days: int = Field(
        default=7,
        description="Days without use beyond which a cache entry is no longer served",
        gt=0,
    )
    geocode_cache_evict_fraction: float = Field(
        default=0.2,
        description="Fraction of max entries removed (least recently used first) when the cache is full",
        gt=0,
        le=1,
    )
    geocode_cache_default_confidence: float = Field(
        default=0.9,
        description="Confidence score stored on first insert of a location",
        ge=0,
        le=1,
    )

    # Resolver
    resolver_batch_size: int = Field(
        default=5,
        description="Candidates resolved concurrently per group in batch resolution",
        gt=0,
    )
    resolver_batch_delay: float = Field(
        default=1.0,
        description="Seconds to pause between candidate groups",
        ge=0,
    )

    # Geocoding: general
    geocoder_fallback_order: str = Field(
        default="serp,google,mapbox,nominatim",
        description="Comma-separated provider priority order for the fallback chain",
    )
    geocoder_call_timeout: float = Field(
        default=15.0,
        description="Upper bound in seconds on a single provider call inside the chain",
        gt=0,
    )
    geocoder_region_code: str = Field(
        default="id",
        description="ISO 3166-1 alpha-2 code used to bias provider results",
        min_length=2,
        max_length=2,
    )
    geocoder_region_name: str = Field(
        default="Indonesia",
        description="Region name appended to free-text search queries",
    )

    # Geocoding: SerpApi (Google Maps engine)
    geocoder_serp_enabled: bool = Field(
        default=True,
        description="Enable SerpApi Google Maps search geocoder",
    )
    geocoder_serp_api_key: str | None = Field(
        default=None,
        description="SerpApi API key",
    )
    geocoder_serp_timeout: float = Field(
        default=10.0,
        description="SerpApi request timeout in seconds",
        gt=0,
    )

    # Geocoding: Google Maps
    geocoder_google_enabled: bool = Field(
        default=True,
        description="Enable Google Maps geocoder (requires API key)",
    )
    geocoder_google_api_key: str | None = Field(
        default=None,
        description="Google Maps Geocoding API key",
    )
    geocoder_google_timeout: float = Field(
        default=10.0,
        description="Google Maps request timeout in seconds",
        gt=0,
    )

    # Geocoding: Mapbox
    geocoder_mapbox_enabled: bool = Field(
        default=True,
        description="Enable Mapbox geocoder (requires access token)",
    )
    geocoder_mapbox_api_key: str | None = Field(
        default=None,
        description="Mapbox access token",
    )
    geocoder_mapbox_timeout: float = Field(
        default=10.0,
        description="Mapbox request timeout in seconds",
        gt=0,
    )

    # Geocoding: Nominatim (OpenStreetMap)
    geocoder_nominatim_enabled: bool = Field(
        default=False,
        description="Enable Nominatim (OpenStreetMap) geocoder",
    )
    geocoder_nominatim_email: str = Field(
        default="",
        description="Email for Nominatim usage policy compliance",
    )
    geocoder_nominatim_timeout: float = Field(
        default=10.0,
        description="Nominatim request timeout in seconds",
        gt=0,
    )

    @property
    def geocoder_fallback_order_list(self) -> list[str]:
        """Parse fallback order string into a list of provider names.

        Returns:
            List of provider names in fallback order.
        """
        if not self.geocoder_fallback_order.strip():
            return []
        return [p.strip().lower() for p in self.geocoder_fallback_order.split(",") if p.strip()]

    # Rate gates: internal geocoding traffic
    rate_gate_geocoding_max_calls: int = Field(
        default=50,
        description="Provider calls allowed per window for internal resolution",
        gt=0,
    )
    rate_gate_geocoding_window_seconds: float = Field(
        default=60.0,
        description="Window length in seconds for the internal geocoding gate",
        gt=0,
    )
    rate_gate_geocoding_min_delay: float = Field(
        default=1.0,
        description="Minimum seconds between consecutive internal provider calls",
        ge=0,
    )

    # Rate gates: public API traffic
    rate_gate_public_max_calls: int = Field(
        default=10,
        description="Provider calls allowed per window for public API callers",
        gt=0,
    )
    rate_gate_public_window_seconds: float = Field(
        default=60.0,
        description="Window length in seconds for the public gate",
        gt=0,
    )
    rate_gate_public_min_delay: float = Field(
        default=2.0,
        description="Minimum seconds between consecutive public provider calls",
        ge=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            msg = f"log_level must be one of {sorted(allowed)}"
            raise ValueError(msg)
        return v.upper()

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )
    rate_limit_per_minute: int = Field(
        default=200,
        description="Maximum API requests per minute per IP address",
        gt=0,
    )
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )
    admin_secret: str | None = Field(
        default=None,
        description="Shared secret expected in the X-Admin-Secret header for cache administration",
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        if not self.trusted_proxy_headers.strip():
            return []
        return [h.strip() for h in self.trusted_proxy_headers.split(",") if h.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
