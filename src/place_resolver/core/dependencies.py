"""FastAPI dependencies for the resolver and admin access control."""

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from place_resolver.core.config import Settings, get_settings
from place_resolver.services.resolver_service import Resolver


def get_public_resolver(request: Request) -> Resolver:
    """Return the resolver bound to the public rate gate.

    Raises:
        HTTPException: 503 if the application has not finished starting.
    """
    resolver: Resolver | None = getattr(request.app.state, "public_resolver", None)
    if resolver is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Resolver is not initialized",
        )
    return resolver


async def require_admin(
    settings: Annotated[Settings, Depends(get_settings)],
    x_admin_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Allow the request only when ``X-Admin-Secret`` matches ``ADMIN_SECRET``.

    Raises:
        HTTPException: 503 when no secret is configured, 401 when the
            header is missing or wrong.
    """
    if not settings.admin_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured",
        )
    if x_admin_secret is None or not secrets.compare_digest(
        x_admin_secret.encode(), settings.admin_secret.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin secret",
        )
