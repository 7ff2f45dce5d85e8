"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from place_resolver.api.middleware import RateLimitMiddleware, SecurityHeadersMiddleware, setup_cors
from place_resolver.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the versioned API router."""
    from place_resolver.api.v1.geocoding import geocoding_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(geocoding_router)
    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register CORS, security headers, and per-IP request limiting."""
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=settings.rate_limit_per_minute,
        trusted_proxy_headers=settings.trusted_proxy_header_list,
    )
