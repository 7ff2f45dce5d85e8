"""Typer CLI root application with serve and providers commands."""

import typer

from place_resolver.core.config import get_settings
from place_resolver.core.logging import setup_logging

app = typer.Typer(name="place-resolver", help="Resolve free-text place names to coordinates")


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Start the HTTP API server."""
    import uvicorn

    uvicorn.run(
        "place_resolver.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def providers() -> None:
    """List registered geocoding providers in fallback order."""
    from place_resolver.lib.geocoder import get_all_provider_metadata

    settings = get_settings()
    order = settings.geocoder_fallback_order_list
    metadata = sorted(
        get_all_provider_metadata(settings),
        key=lambda m: order.index(m.name) if m.name in order else len(order),
    )

    typer.echo(f"Fallback order: {', '.join(order) or '(empty)'}")
    for m in metadata:
        state = "enabled" if m.enabled else "disabled"
        configured = "configured" if m.is_configured else "missing API key"
        typer.echo(f"  {m.name:<10} {state:<9} {configured}")


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from place_resolver.cli.cache_cmd import cache_app
    from place_resolver.cli.db_cmd import db_app
    from place_resolver.cli.resolve_cmd import resolve, resolve_batch

    app.add_typer(db_app, name="db", help="Database migration commands")
    app.add_typer(cache_app, name="cache", help="Geocode cache administration")
    app.command("resolve")(resolve)
    app.command("resolve-batch")(resolve_batch)


_register_subcommands()
