"""Per-IP request limiting, CORS, and security headers middleware."""

import time
from collections import defaultdict, deque
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from place_resolver.core.config import Settings

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request, trusted_headers: list[str] | None = None) -> str:
    """Identify the caller, preferring trusted proxy headers.

    Headers are checked in the given order. ``X-Forwarded-For`` may hold a
    chain of addresses; the leftmost one is the original client.

    Returns:
        The client address, or ``"unknown"`` when nothing identifies it.
    """
    for header in trusted_headers or []:
        value = request.headers.get(header, "").strip()
        if not value:
            continue
        if header.lower() == "x-forwarded-for":
            value = value.split(",")[0].strip()
        if value:
            return value

    return request.client.host if request.client else UNKNOWN_CLIENT


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Attach CORS middleware; nothing is allowed unless origins are configured."""
    kwargs: dict[str, Any] = {
        "allow_credentials": False,
        "allow_methods": ["GET", "POST", "DELETE"],
        "allow_headers": ["Content-Type", "X-Admin-Secret"],
    }
    if settings.cors_origin_list:
        kwargs["allow_origins"] = settings.cors_origin_list
    if settings.cors_origin_regex.strip():
        kwargs["allow_origin_regex"] = settings.cors_origin_regex.strip()
    app.add_middleware(CORSMiddleware, **kwargs)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp defensive response headers on every response."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding-window request limit per client address.

    This bounds inbound HTTP traffic only. Outbound provider calls are
    separately budgeted by the resolver's rate gate.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        trusted_proxy_headers: list[str] | None = None,
        window_seconds: float = 60.0,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.trusted_proxy_headers = trusted_proxy_headers
        self.window_seconds = window_seconds
        self._requests: dict[str, deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = get_client_ip(request, self.trusted_proxy_headers)
        now = time.monotonic()
        history = self._requests[client_ip]

        while history and history[0] <= now - self.window_seconds:
            history.popleft()

        if len(history) >= self.requests_per_minute:
            retry_after = max(1, int(history[0] + self.window_seconds - now) + 1)
            logger.warning(f"Request limit exceeded for client {client_ip}")
            return Response(
                content='{"detail":"Rate limit exceeded"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(retry_after)},
            )

        history.append(now)
        return await call_next(request)
