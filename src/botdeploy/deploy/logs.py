"""Raw container log retrieval for display."""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from botdeploy.config.defaults import DEFAULT_LOG_TAIL
from botdeploy.lib.errors import ContainerNotFoundError, ValidationError

if TYPE_CHECKING:
    import docker

CONTAINER_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
NO_LOGS_MESSAGE = "No logs available"


def format_log_lines(raw: bytes | str, now: datetime | None = None) -> list[str]:
    """Split raw log output into non-empty lines prefixed with a timestamp.

    The timestamp is the retrieval time, for display only.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return [f"[{stamp}] {line.strip()}" for line in text.split("\n") if line.strip()]


class ContainerLogReader:
    """Reads the tail of a container's stdout and stderr."""

    def __init__(self, client: docker.DockerClient, docker_timeout: float = 60.0) -> None:
        self.client = client
        self.docker_timeout = docker_timeout

    def _read(self, container_id: str, tail: int) -> bytes:
        # Running containers only, matched by id prefix.
        for summary in self.client.api.containers():
            full_id = summary.get("Id", "")
            if full_id.startswith(container_id):
                return self.client.api.logs(
                    full_id, stdout=True, stderr=True, tail=tail, stream=False
                )
        raise ContainerNotFoundError(container_id)

    async def tail(self, container_id: str, tail: int = DEFAULT_LOG_TAIL) -> list[str]:
        """Return the last ``tail`` log lines of a running container.

        Raises:
            ValidationError: If ``container_id`` is not alphanumeric
            ContainerNotFoundError: If no running container matches
            docker.errors.DockerException: If the daemon call fails
        """
        if not CONTAINER_ID_PATTERN.match(container_id):
            raise ValidationError("containerId", "Invalid container ID format")
        if tail <= 0:
            tail = DEFAULT_LOG_TAIL
        raw = await asyncio.wait_for(
            asyncio.to_thread(self._read, container_id, tail), self.docker_timeout
        )
        return format_log_lines(raw) or [NO_LOGS_MESSAGE]
