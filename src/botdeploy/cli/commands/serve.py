"""CLI command for running the deployment worker HTTP server.

Implements the 'botdeploy serve' command.
"""

from __future__ import annotations

import asyncio
import sys

import click

from botdeploy.lib.errors import ConfigError, DeploymentError
from botdeploy.lib.logging_config import get_logger, setup_logging
from botdeploy.models.config import WorkerSettings

logger = get_logger(__name__)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file (default: $BOTDEPLOY_CONFIG)",
)
@click.option("--host", "-h", type=str, default=None, help="Host to bind to")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
def serve(
    config_path: str | None,
    host: str | None,
    port: int | None,
    verbose: bool,
) -> None:
    """Start the deployment worker HTTP server.

    The API key is read from BOTDEPLOY_API_KEY (or WORKER_API_KEY) and is
    required.

    Example:

        botdeploy serve --port 3000
    """
    setup_logging(verbose=verbose)

    try:
        from botdeploy.config.loader import load_settings

        settings = load_settings(config_path)
        if host:
            settings = settings.model_copy(update={"host": host})
        if port:
            settings = settings.model_copy(update={"port": port})
        if not settings.api_key:
            raise ConfigError(
                field="api_key",
                message="Set BOTDEPLOY_API_KEY before starting the server",
            )

        asyncio.run(_run_server(settings, verbose))

    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Startup error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except KeyboardInterrupt:
        logger.info("Server interrupted by user (Ctrl+C)")
        click.secho("Server stopped.", fg="yellow")
        sys.exit(130)


async def _run_server(settings: WorkerSettings, verbose: bool) -> None:
    """Wire the worker and serve it with uvicorn."""
    import uvicorn

    from botdeploy.deploy import create_coordinator
    from botdeploy.deploy.docker_client import create_docker_client
    from botdeploy.deploy.logs import ContainerLogReader
    from botdeploy.serve.server import WorkerServer

    client = create_docker_client(settings.docker_base_url)
    coordinator = create_coordinator(settings, client)
    server = WorkerServer(
        coordinator,
        ContainerLogReader(client, docker_timeout=settings.docker_timeout),
        api_key=settings.api_key or "",
    )

    logger.info(f"Worker service running on port {settings.port}")
    config = uvicorn.Config(
        app=server.app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if verbose else "info",
    )
    await uvicorn.Server(config).serve()
