"""Database migration CLI commands using Alembic programmatically."""

import typer
from loguru import logger

db_app = typer.Typer()

ALEMBIC_CONFIG = "alembic.ini"


def _alembic_config(database_url: str | None):  # type: ignore[no-untyped-def]
    from alembic.config import Config

    config = Config(ALEMBIC_CONFIG)
    if database_url:
        config.attributes["database_url"] = database_url
    return config


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    database_url: str | None = typer.Option(None, "--database-url", help="Override DATABASE_URL"),
) -> None:
    """Create or migrate the geocode cache schema up to the target revision."""
    from alembic import command

    logger.info(f"Upgrading database to {revision}")
    command.upgrade(_alembic_config(database_url), revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    database_url: str | None = typer.Option(None, "--database-url", help="Override DATABASE_URL"),
) -> None:
    """Roll the schema back to the target revision."""
    from alembic import command

    logger.info(f"Downgrading database to {revision}")
    command.downgrade(_alembic_config(database_url), revision)
    logger.info("Database downgrade complete")


@db_app.command()
def current(
    database_url: str | None = typer.Option(None, "--database-url", help="Override DATABASE_URL"),
) -> None:
    """Show the applied migration revision."""
    from alembic import command

    command.current(_alembic_config(database_url), verbose=True)
