"""CLI for the DZT travel API: run the server and inspect lookups."""

from __future__ import annotations

import logging
import sys

import click
import uvicorn

from dzt_travel import __version__
from dzt_travel.config import ConfigError, load_settings
from dzt_travel.core.logging import configure_logging
from dzt_travel.providers.flights import get_airport_code

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """DZT travel: rail, flight and connection search API."""


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", type=int, default=8000, show_default=True, help="Port to listen on")
@click.option("--reload/--no-reload", default=False, help="Restart on code changes (development)")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the API server."""
    try:
        settings = load_settings()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    configure_logging(settings.logging.level, settings.logging.format)
    logger.info("Starting DZT travel API on %s:%d", host, port)

    if reload:
        # The reloader re-imports the app, so it builds its own settings.
        uvicorn.run(
            "dzt_travel.api.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_config=None,
        )
        return

    from dzt_travel.api.app import create_app

    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


@cli.command("airport-code")
@click.argument("name")
def airport_code(name: str) -> None:
    """Print the IATA code for a German city or airport code."""
    code = get_airport_code(name)
    if code is None:
        click.echo(f"Unknown airport: {name}", err=True)
        sys.exit(1)
    click.echo(code)


if __name__ == "__main__":
    cli()
