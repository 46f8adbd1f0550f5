"""Container lifecycle management for bot deployments.

Every daemon call runs in a worker thread and is bounded by
``docker_timeout`` seconds.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from docker.errors import DockerException, NotFound

from botdeploy.config.defaults import DEFAULT_RESOURCE_LIMITS
from botdeploy.lib.errors import StartupError
from botdeploy.lib.logging_config import get_logger
from botdeploy.models.deployment import ResourceLimits

if TYPE_CHECKING:
    import docker

logger = get_logger(__name__)

T = TypeVar("T")

MANAGED_LABEL = "com.botdeploy.managed"
BOT_ID_LABEL = "com.botdeploy.bot-id"


def previous_container_name(bot_id: str) -> str:
    """Return the name used to look up a bot's previous container."""
    return f"bot-{bot_id}"


def new_container_name(bot_id: str, now_ms: int | None = None) -> str:
    """Return a unique name for a newly created container.

    Note that this never equals :func:`previous_container_name`, so a
    container created here is not found by the next ``replace_previous``.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"bot-{bot_id}-{now_ms}"


@dataclass(frozen=True)
class ContainerInfo:
    """Runtime information about a started container."""

    container_id: str
    name: str
    started_at: str


class ContainerLifecycleManager:
    """Retires previous bot containers and starts new ones.

    Example:
        >>> manager = ContainerLifecycleManager(docker.from_env())
        >>> await manager.replace_previous("bot1")
        >>> info = await manager.create_and_start(
        ...     "botdeploy-bot1:latest",
        ...     {"BOT_ID": "bot1", "DEPLOYMENT_ID": "d1"},
        ...     bot_id="bot1",
        ... )
    """

    def __init__(
        self,
        client: docker.DockerClient,
        docker_timeout: float = 60.0,
        stop_timeout: int = DEFAULT_RESOURCE_LIMITS.stop_timeout,
    ) -> None:
        """Initialize the manager.

        Args:
            client: Connected Docker client
            docker_timeout: Seconds allowed for each daemon call
            stop_timeout: Grace period in seconds when stopping a container
        """
        self.client = client
        self.docker_timeout = docker_timeout
        self.stop_timeout = stop_timeout

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args, **kwargs), self.docker_timeout
        )

    async def replace_previous(self, bot_id: str) -> None:
        """Stop and remove the previous container for ``bot_id`` if any.

        Idempotent: a missing container is a no-op. Other failures are
        logged and never raised.
        """
        name = previous_container_name(bot_id)
        api = self.client.api
        try:
            # Stop deadline must outlast the grace period.
            await asyncio.wait_for(
                asyncio.to_thread(api.stop, name, timeout=self.stop_timeout),
                self.docker_timeout + self.stop_timeout,
            )
            await self._call(api.remove_container, name)
            logger.info(f"Removed previous container {name}")
        except NotFound:
            logger.info(f"No existing container to remove for bot {bot_id}")
        except asyncio.TimeoutError:
            logger.warning(f"Timed out retiring previous container {name}")
        except Exception as e:
            # Transport errors from the SDK are not always DockerException.
            logger.warning(f"Failed to retire previous container {name}: {e}")

    async def _discard(self, name: str) -> None:
        """Force-remove ``name`` if it exists; errors are logged only."""
        try:
            await self._call(self.client.api.remove_container, name, force=True)
            logger.info(f"Removed container {name} left by a timed out create")
        except NotFound:
            pass
        except Exception as e:
            logger.warning(f"Failed to remove container {name}: {e}")

    async def create_and_start(
        self,
        image_tag: str,
        env: dict[str, str],
        limits: ResourceLimits = DEFAULT_RESOURCE_LIMITS,
        *,
        bot_id: str,
    ) -> ContainerInfo:
        """Create, start and verify a container for ``image_tag``.

        Args:
            image_tag: Image to run
            env: Environment variables for the container
            limits: Resource-limit policy
            bot_id: Bot identifier used for the name and labels

        Returns:
            ContainerInfo for the running container

        Raises:
            StartupError: If any daemon call fails or times out, or the
                container is not running right after start
        """
        api = self.client.api
        name = new_container_name(bot_id)
        container_id: str | None = None
        try:
            logger.info(f"Creating container {name} from {image_tag}")
            host_config = api.create_host_config(**limits.host_config_kwargs())
            created = await self._call(
                api.create_container,
                image_tag,
                name=name,
                environment=env,
                labels={MANAGED_LABEL: "true", BOT_ID_LABEL: bot_id},
                host_config=host_config,
                stop_timeout=limits.stop_timeout,
            )
            container_id = created["Id"]

            logger.info(f"Starting container {name}")
            await self._call(api.start, container_id)
            info = await self._call(api.inspect_container, container_id)
        except asyncio.TimeoutError as e:
            if container_id is None:
                # The daemon may still have created it under this name.
                await self._discard(name)
            raise StartupError(
                f"Container startup timed out after {self.docker_timeout:g}s"
            ) from e
        except DockerException as e:
            raise StartupError(f"Container failed to start: {e}") from e

        state = info.get("State") or {}
        if not state.get("Running"):
            raise StartupError("Container failed to start")

        return ContainerInfo(
            container_id=info.get("Id", container_id),
            name=name,
            started_at=str(state.get("StartedAt", "")),
        )
