"""GeocodeCache model — one resolved coordinate per distinct location text."""

from datetime import datetime

from sqlalchemy import DateTime, Double, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from place_resolver.models.base import Base, UUIDMixin


class GeocodeCache(Base, UUIDMixin):
    """Cached resolution keyed by the exact location text."""

    __tablename__ = "geocode_cache"

    location_text: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float] = mapped_column(Double, nullable=False)
    longitude: Mapped[float] = mapped_column(Double, nullable=False)
    formatted_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    confidence_score: Mapped[float | None] = mapped_column(Double, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("location_text", name="uq_geocode_cache_location_text"),
        Index("ix_geocode_cache_last_used_at", "last_used_at"),
    )
