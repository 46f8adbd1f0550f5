"""CLI command for running a single deployment from the terminal.

Implements the 'botdeploy deploy' command, which runs the same pipeline as
the HTTP worker and prints the outcome.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Generator
from contextlib import contextmanager

import click
from ulid import ULID

from botdeploy.deploy.builder import BuildLogEvent
from botdeploy.deploy.coordinator import parse_request
from botdeploy.lib.errors import ConfigError, DeploymentError, ValidationError
from botdeploy.lib.logging_config import get_logger, setup_logging
from botdeploy.models.deployment import DeploymentFailure, DeploymentResult

logger = get_logger(__name__)


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Map botdeploy errors to messages and exit codes.

    Exit codes:
        2: Configuration or request validation error
        3: Deployment error
    """
    try:
        yield
    except (ConfigError, ValidationError) as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Invalid configuration or request", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)


def _echo_build_event(event: BuildLogEvent) -> None:
    if event.kind == "stream" and event.message.strip():
        click.echo(f"  {event.message.rstrip()}")


@click.command()
@click.option("--repository", "-r", required=True, help="Git repository URL")
@click.option("--branch", "-b", required=True, help="Branch to deploy")
@click.option("--bot-id", required=True, help="Bot identifier")
@click.option(
    "--deployment-id",
    default=None,
    help="Deployment identifier (default: generated ULID)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML settings file (default: $BOTDEPLOY_CONFIG)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress build output")
def deploy(
    repository: str,
    branch: str,
    bot_id: str,
    deployment_id: str | None,
    config_path: str | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """Clone, build and start a bot container.

    Example:

        botdeploy deploy -r https://github.com/org/bot.git -b main --bot-id bot1
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        from botdeploy.config.loader import load_settings
        from botdeploy.deploy import create_coordinator
        from botdeploy.deploy.docker_client import create_docker_client

        settings = load_settings(config_path)
        request = parse_request(
            {
                "repository": repository,
                "branch": branch,
                "botId": bot_id,
                "deploymentId": deployment_id or str(ULID()),
            }
        )

        client = create_docker_client(settings.docker_base_url)
        coordinator = create_coordinator(settings, client)
        coordinator.observer = None if quiet else _echo_build_event

        if not quiet:
            click.echo(f"Deploying {repository}@{branch} as bot '{bot_id}'")
            click.echo(f"  Deployment: {request.deployment_id}")

        outcome = asyncio.run(coordinator.deploy(request))
        _report(outcome)


def _report(outcome: DeploymentResult | DeploymentFailure) -> None:
    if isinstance(outcome, DeploymentFailure):
        click.secho("Deployment failed", fg="red", err=True)
        click.echo(f"  {outcome.error}", err=True)
        sys.exit(3)

    click.secho("Deployment completed", fg="green")
    click.echo(f"  Image:      {outcome.image_tag}")
    click.echo(f"  Container:  {outcome.container_id}")
    click.echo(f"  Status:     {outcome.status}")
    click.echo(f"  Started at: {outcome.started_at}")
