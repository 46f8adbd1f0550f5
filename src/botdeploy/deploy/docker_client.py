"""Docker daemon connection helper."""

from __future__ import annotations

import docker
from docker.errors import DockerException

from botdeploy.lib.errors import DockerNotAvailableError


def create_docker_client(base_url: str | None = None) -> docker.DockerClient:
    """Connect to the Docker daemon.

    Args:
        base_url: Daemon socket URL; the environment configuration is used
            when omitted (``DOCKER_HOST`` or the default socket)

    Returns:
        Connected DockerClient

    Raises:
        DockerNotAvailableError: If the daemon cannot be reached
    """
    try:
        if base_url:
            return docker.DockerClient(base_url=base_url)
        return docker.from_env()  # type: ignore[attr-defined]
    except DockerException as e:
        raise DockerNotAvailableError(operation="init") from e
