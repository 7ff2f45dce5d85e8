"""Location resolution endpoints — single resolve, batch resolve, and cache admin."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from place_resolver.core.dependencies import get_public_resolver, require_admin
from place_resolver.schemas.geocoding import (
    BatchResolveRequest,
    BatchResolveResponse,
    CacheStatsResponse,
    CandidateResult,
    ClearCacheResponse,
    ResolveResponse,
)
from place_resolver.services.resolver_service import ResolveResult, Resolver

geocoding_router = APIRouter(prefix="/geocoding", tags=["geocoding"])


def _candidate(location: str, result: ResolveResult) -> CandidateResult:
    return CandidateResult(
        location=location,
        success=result.success,
        latitude=result.lat,
        longitude=result.lng,
        formatted_address=result.formatted_address,
        source=result.source,
        cached=result.cached,
        error=result.error,
    )


@geocoding_router.get(
    "/resolve",
    response_model=ResolveResponse,
)
async def resolve_location(
    location: str = Query(  # noqa: B008
        ...,
        min_length=1,
        max_length=500,
        description="Free-text place name to resolve (1-500 characters)",
    ),
    resolver: Resolver = Depends(get_public_resolver),  # noqa: B008
) -> ResolveResponse:
    """Resolve a free-text place name to coordinates."""
    if not location.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Location must not be empty or whitespace-only.",
        )

    result = await resolver.resolve_one(location)
    if not result.success or result.lat is None or result.lng is None or result.source is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=result.error or "Location could not be resolved",
        )

    return ResolveResponse(
        location=location,
        latitude=result.lat,
        longitude=result.lng,
        formatted_address=result.formatted_address,
        source=result.source,
        cached=bool(result.cached),
    )


@geocoding_router.post(
    "/resolve-batch",
    response_model=BatchResolveResponse,
)
async def resolve_batch(
    request: BatchResolveRequest,
    resolver: Resolver = Depends(get_public_resolver),  # noqa: B008
) -> BatchResolveResponse:
    """Resolve every candidate of one content item and select the best.

    Always 200: per-candidate failures and the aggregated error are in the body.
    """
    batch = await resolver.resolve_batch(request.candidates, primary=request.primary)
    return BatchResolveResponse(
        success=batch.best.success,
        best_candidate=batch.best_candidate,
        best=_candidate(batch.best_candidate or batch.primary or "", batch.best),
        results=[_candidate(text, result) for text, result in batch.results.items()],
    )


@geocoding_router.get(
    "/cache/stats",
    response_model=CacheStatsResponse,
    dependencies=[Depends(require_admin)],
)
async def cache_stats(
    resolver: Resolver = Depends(get_public_resolver),  # noqa: B008
) -> CacheStatsResponse:
    """Aggregate geocode cache statistics."""
    stats = await resolver.get_cache_stats()
    return CacheStatsResponse(**asdict(stats))


@geocoding_router.delete(
    "/cache",
    response_model=ClearCacheResponse,
    dependencies=[Depends(require_admin)],
)
async def clear_cache(
    resolver: Resolver = Depends(get_public_resolver),  # noqa: B008
) -> ClearCacheResponse:
    """Remove every geocode cache entry."""
    cleared = await resolver.clear_cache()
    return ClearCacheResponse(cleared=cleared)
