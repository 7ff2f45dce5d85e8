"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from place_resolver.models.base import Base
from place_resolver.models.geocode_cache import GeocodeCache

__all__ = [
    "Base",
    "GeocodeCache",
]
