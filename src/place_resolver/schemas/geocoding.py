"""Pydantic v2 schemas for location resolution endpoints."""

from pydantic import BaseModel, Field, field_validator

MAX_BATCH_CANDIDATES = 20


class ResolveResponse(BaseModel):
    """Coordinates resolved for one location text."""

    model_config = {"from_attributes": True}

    location: str
    latitude: float
    longitude: float
    formatted_address: str | None = None
    source: str
    cached: bool


class CandidateResult(BaseModel):
    """Outcome for one candidate of a batch."""

    location: str
    success: bool
    latitude: float | None = None
    longitude: float | None = None
    formatted_address: str | None = None
    source: str | None = None
    cached: bool | None = None
    error: str | None = None


class BatchResolveRequest(BaseModel):
    """Candidates extracted from one content item, in extraction order."""

    candidates: list[str] = Field(..., min_length=1, max_length=MAX_BATCH_CANDIDATES)
    primary: str | None = Field(
        default=None,
        description="Extractor's primary pick; defaults to the first candidate",
    )

    @field_validator("candidates")
    @classmethod
    def require_non_blank(cls, v: list[str]) -> list[str]:
        if not any(c.strip() for c in v):
            msg = "At least one non-blank candidate is required"
            raise ValueError(msg)
        return v


class BatchResolveResponse(BaseModel):
    """Per-candidate results and the selected best location."""

    success: bool
    best_candidate: str | None = None
    best: CandidateResult
    results: list[CandidateResult]


class CacheStatsResponse(BaseModel):
    """Aggregate geocode cache statistics."""

    model_config = {"from_attributes": True}

    total_entries: int
    total_usage: int
    recent_entries: int
    cache_hit_rate: float
    max_entries: int
    utilization_percent: int


class ClearCacheResponse(BaseModel):
    """Number of cache entries removed."""

    cleared: int


class HealthResponse(BaseModel):
    status: str = "ok"
