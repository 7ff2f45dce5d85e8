"""FastAPI application factory.

Creates the FastAPI app with lifespan management (engine, rate gates and
resolvers), exception handlers, and the health probe.
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from place_resolver import __version__
from place_resolver.core.config import get_settings
from place_resolver.core.database import create_schema, dispose_engine, get_session_factory, init_engine
from place_resolver.core.logging import setup_logging
from place_resolver.lib.rate_gate import GateClass, build_rate_gates
from place_resolver.schemas.geocoding import HealthResponse
from place_resolver.services.resolver_service import build_resolver


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Init engine and resolvers on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    engine = init_engine(settings.database_url, echo=False)
    if engine.dialect.name == "sqlite":
        await create_schema(engine)

    gates = build_rate_gates(settings)
    session_factory = get_session_factory()
    write_lock = asyncio.Lock()
    app.state.rate_gates = gates
    app.state.public_resolver = build_resolver(
        settings, session_factory, gates[GateClass.PUBLIC], write_lock=write_lock
    )
    app.state.resolver = build_resolver(
        settings, session_factory, gates[GateClass.GEOCODING], write_lock=write_lock
    )
    logger.info(f"Resolver ready with providers: {', '.join(app.state.resolver.chain.provider_names) or 'none'}")

    yield

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Place Resolver",
        description="Cache-first resolution of free-text place names to coordinates",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse()

    from place_resolver.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
