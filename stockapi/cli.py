"""
Command-line interface for the Stock API.

Provides commands for running the HTTP server and checking the database.
"""

import os
import sys
from typing import Optional

import click
from loguru import logger

from .config import get_settings, reload_settings
from .db_client import StockDB
from .utils import setup_logging


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
def main(verbose: bool) -> None:
    """Stock API Command Line Interface."""
    if verbose:
        # Exported so uvicorn worker and reload processes inherit it
        os.environ["LOG_LEVEL"] = "DEBUG"
        reload_settings()

    setup_logging()


@main.command()
@click.option('--host', help='Bind address (default: API_HOST)')
@click.option('--port', type=int, help='Bind port (default: API_PORT)')
@click.option('--workers', type=int, help='Worker processes (default: API_WORKERS)')
@click.option('--reload', is_flag=True, help='Reload on code changes (development)')
def serve(host: Optional[str], port: Optional[int], workers: Optional[int], reload: bool) -> None:
    """Run the HTTP API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    workers = workers or settings.api_workers

    logger.info(f"Starting Stock API on {host}:{port} with {workers} worker(s)")
    uvicorn.run(
        "stockapi.fastapi_server:app",
        host=host,
        port=port,
        workers=workers,
        reload=reload
    )


@main.command()
def status() -> None:
    """Check database connectivity and show the stock count."""
    db = StockDB()
    try:
        health = db.health_check()
    finally:
        db.dispose()

    for key, value in health.items():
        click.echo(f"{key}: {value}")

    if health['status'] != 'healthy':
        logger.error("Database is unhealthy")
        sys.exit(1)

    logger.success("Database is healthy")


if __name__ == '__main__':
    main()
