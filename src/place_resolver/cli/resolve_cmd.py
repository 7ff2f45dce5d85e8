"""Resolution CLI commands for single locations and candidate batches."""

import asyncio
import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from place_resolver.services.resolver_service import Resolver, ResolveResult


@asynccontextmanager
async def open_resolver() -> AsyncGenerator["Resolver"]:
    """Yield a resolver on the internal geocoding gate, disposing the engine afterwards."""
    from place_resolver.core.config import get_settings
    from place_resolver.core.database import create_schema, dispose_engine, get_session_factory, init_engine
    from place_resolver.lib.rate_gate import GateClass, build_rate_gates
    from place_resolver.services.resolver_service import build_resolver

    settings = get_settings()
    engine = init_engine(settings.database_url)

    try:
        if engine.dialect.name == "sqlite":
            await create_schema(engine)
        gate = build_rate_gates(settings)[GateClass.GEOCODING]
        yield build_resolver(settings, get_session_factory(), gate)
    finally:
        await dispose_engine()


def _format(location: str, result: "ResolveResult") -> str:
    if not result.success:
        return f"{location}: FAILED ({result.error})"
    origin = "cache" if result.cached else "provider"
    address = f" | {result.formatted_address}" if result.formatted_address else ""
    return f"{location}: {result.lat}, {result.lng} [{result.source}, {origin}]{address}"


def resolve(
    location: str = typer.Argument(..., help="Free-text place name"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),  # noqa: FBT001
) -> None:
    """Resolve one place name to coordinates."""
    success = asyncio.run(_resolve(location, as_json))
    if not success:
        raise typer.Exit(code=1)


def resolve_batch(
    primary: str = typer.Argument(..., help="Primary candidate"),
    secondary: list[str] | None = typer.Argument(None, help="Secondary candidates in extraction order"),  # noqa: B008
) -> None:
    """Resolve a primary candidate with fallbacks and report the best pick."""
    success = asyncio.run(_resolve_batch(primary, secondary or []))
    if not success:
        raise typer.Exit(code=1)


async def _resolve(location: str, as_json: bool) -> bool:
    """Async implementation of single resolution."""
    async with open_resolver() as resolver:
        result = await resolver.resolve_one(location)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False))
    else:
        typer.echo(_format(location, result))
    return result.success


async def _resolve_batch(primary: str, secondary: list[str]) -> bool:
    """Async implementation of batch resolution."""
    async with open_resolver() as resolver:
        batch = await resolver.resolve_batch([primary, *secondary], primary=primary)

    for location, result in batch.results.items():
        typer.echo(_format(location, result))

    if batch.best_candidate is None:
        typer.echo(f"\nNo candidate resolved: {batch.best.error}")
        return False
    typer.echo(f"\nBest: {batch.best_candidate} ({batch.best.lat}, {batch.best.lng})")
    return True
