"""Geocode cache administration CLI commands."""

import asyncio

import typer

cache_app = typer.Typer()


@cache_app.command("stats")
def stats() -> None:
    """Show geocode cache statistics."""
    asyncio.run(_stats())


@cache_app.command("clear")
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),  # noqa: FBT001
) -> None:
    """Delete every geocode cache entry."""
    if not yes:
        typer.confirm("Delete all cached locations?", abort=True)
    asyncio.run(_clear())


async def _stats() -> None:
    from place_resolver.cli.resolve_cmd import open_resolver

    async with open_resolver() as resolver:
        result = await resolver.get_cache_stats()

    typer.echo("Geocode cache:")
    typer.echo(f"  Entries:        {result.total_entries}/{result.max_entries} ({result.utilization_percent}%)")
    typer.echo(f"  Total usage:    {result.total_usage}")
    typer.echo(f"  Recently used:  {result.recent_entries}")
    typer.echo(f"  Hits per entry: {result.cache_hit_rate}")


async def _clear() -> None:
    from place_resolver.cli.resolve_cmd import open_resolver

    async with open_resolver() as resolver:
        cleared = await resolver.clear_cache()

    typer.echo(f"Cleared {cleared} cache entries")
