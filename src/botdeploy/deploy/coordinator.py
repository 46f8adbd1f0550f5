"""Deployment pipeline coordinator.

Sequences workspace acquisition, image build, previous-container retirement
and container start for one request, recording status transitions and
cleaning up the workspace when a stage fails.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from botdeploy.config.defaults import DEFAULT_RESOURCE_LIMITS
from botdeploy.deploy.builder import BuildLogEvent, BuildObserver, ImageBuilder
from botdeploy.deploy.containers import ContainerLifecycleManager
from botdeploy.deploy.status_store import StatusStore
from botdeploy.deploy.workspace import WorkspaceManager
from botdeploy.lib.errors import DuplicateDeploymentError, ValidationError
from botdeploy.lib.logging_config import get_logger
from botdeploy.models.deployment import (
    DeploymentFailure,
    DeploymentRequest,
    DeploymentResult,
    DeploymentStatus,
    ResourceLimits,
)

logger = get_logger(__name__)

_FIELD_ALIASES = {"bot_id": "botId", "deployment_id": "deploymentId"}


def parse_request(payload: Mapping[str, Any] | DeploymentRequest) -> DeploymentRequest:
    """Validate a raw payload into a DeploymentRequest.

    Raises:
        ValidationError: If a field is missing, blank or malformed
    """
    if isinstance(payload, DeploymentRequest):
        return payload
    try:
        return DeploymentRequest.model_validate(payload)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = first.get("loc", ())
        field = str(loc[0]) if loc else "request"
        field = _FIELD_ALIASES.get(field, field)
        if first.get("type") in ("missing", "string_too_short"):
            message = "Missing required parameters"
        else:
            message = first.get("msg", "Invalid value")
        raise ValidationError(field, message) from exc


def normalize_error(exc: BaseException) -> str:
    """Return a single human-readable message for ``exc``."""
    message = str(exc).strip()
    return message or type(exc).__name__


def log_build_event(event: BuildLogEvent) -> None:
    """Default observer: log build output lines."""
    if event.kind == "stream" and event.message.strip():
        logger.info(event.message.strip())


class DeploymentCoordinator:
    """Runs deployment pipelines and owns their status records.

    At most one pipeline runs per bot id (compared case-insensitively) at a
    time; image builds across all bots are capped at ``max_concurrent_builds``.

    Example:
        >>> coordinator = DeploymentCoordinator(store, workspaces, builder, containers)
        >>> outcome = await coordinator.deploy({
        ...     "repository": "https://example.com/ok.git",
        ...     "branch": "main",
        ...     "botId": "bot1",
        ...     "deploymentId": "d1",
        ... })
        >>> outcome.image_tag
        'botdeploy-bot1:latest'
    """

    def __init__(
        self,
        status_store: StatusStore,
        workspaces: WorkspaceManager,
        builder: ImageBuilder,
        containers: ContainerLifecycleManager,
        *,
        limits: ResourceLimits = DEFAULT_RESOURCE_LIMITS,
        max_concurrent_builds: int = 2,
        keep_workspace_on_success: bool = True,
        image_prefix: str = "botdeploy",
        observer: BuildObserver | None = log_build_event,
    ) -> None:
        """Initialize the coordinator.

        Args:
            status_store: Store receiving status transitions
            workspaces: Workspace manager for fetch and cleanup
            builder: Image builder
            containers: Container lifecycle manager
            limits: Resource-limit policy applied to every container
            max_concurrent_builds: Upper bound on simultaneous builds
            keep_workspace_on_success: Leave build contexts after success
            image_prefix: Prefix of built image names
            observer: Receives every build log event
        """
        self.status_store = status_store
        self.workspaces = workspaces
        self.builder = builder
        self.containers = containers
        self.limits = limits
        self.keep_workspace_on_success = keep_workspace_on_success
        self.image_prefix = image_prefix
        self.observer = observer
        self._build_slots = asyncio.Semaphore(max_concurrent_builds)
        self._bot_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def image_tag_for(self, bot_id: str) -> str:
        """Return the image tag used for ``bot_id``."""
        return f"{self.image_prefix}-{bot_id.lower()}:latest"

    @staticmethod
    def lock_key(bot_id: str) -> str:
        """Return the serialization key for ``bot_id``.

        Case-insensitive, matching :meth:`image_tag_for`, so ids differing
        only in case never build or run the same image concurrently.
        """
        return bot_id.lower()

    def _checkout_lock(self, key: str) -> asyncio.Lock:
        lock = self._bot_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._bot_locks[key] = lock
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        return lock

    def _checkin_lock(self, key: str) -> None:
        remaining = self._lock_users[key] - 1
        if remaining:
            self._lock_users[key] = remaining
        else:
            del self._lock_users[key]
            del self._bot_locks[key]

    @property
    def active_bots(self) -> int:
        """Number of bot keys with a running or queued deployment."""
        return len(self._bot_locks)

    async def deploy(
        self, payload: Mapping[str, Any] | DeploymentRequest
    ) -> DeploymentResult | DeploymentFailure:
        """Run the full pipeline for one request.

        Args:
            payload: Raw request mapping or a DeploymentRequest

        Returns:
            DeploymentResult on success, DeploymentFailure on any stage error

        Raises:
            ValidationError: If the request is incomplete or its deployment id
                was already submitted; no status is recorded in that case
        """
        request = parse_request(payload)
        if self.status_store.contains(request.deployment_id):
            raise DuplicateDeploymentError(request.deployment_id)

        # Recorded before waiting on the bot lock so queued deployments are
        # visible to status queries.
        self.status_store.set(request.deployment_id, DeploymentStatus.STARTED)

        key = self.lock_key(request.bot_id)
        lock = self._checkout_lock(key)
        try:
            try:
                await lock.acquire()
            except asyncio.CancelledError:
                self._mark_cancelled(request)
                raise

            # Workspace cleanup on failure must happen while the bot lock is held.
            try:
                result = await self._run_pipeline(request)
            except asyncio.CancelledError:
                self._mark_cancelled(request)
                await self._release_claimed(request, shielded=True)
                raise
            except Exception as exc:
                return await self._fail(request, exc)
            finally:
                lock.release()
        finally:
            self._checkin_lock(key)

        self.status_store.set(
            request.deployment_id, DeploymentStatus.COMPLETED, result=result
        )
        logger.info(
            f"Deployment {request.deployment_id} completed: "
            f"container {result.container_id}"
        )
        return result

    async def _run_pipeline(self, request: DeploymentRequest) -> DeploymentResult:
        bot_id = request.bot_id
        context_path = await self.workspaces.acquire(
            bot_id, request.repository, request.branch
        )

        image_tag = self.image_tag_for(bot_id)
        async with self._build_slots:
            await self.builder.build(context_path, image_tag, self.observer)

        await self.containers.replace_previous(bot_id)

        info = await self.containers.create_and_start(
            image_tag,
            {"BOT_ID": bot_id, "DEPLOYMENT_ID": request.deployment_id},
            self.limits,
            bot_id=bot_id,
        )

        if not self.keep_workspace_on_success:
            await self.workspaces.release(bot_id)

        return DeploymentResult(
            deployment_id=request.deployment_id,
            image_tag=image_tag,
            container_id=info.container_id,
            started_at=info.started_at,
        )

    def _mark_cancelled(self, request: DeploymentRequest) -> None:
        logger.warning(f"Deployment {request.deployment_id} was cancelled")
        self.status_store.set(
            request.deployment_id,
            DeploymentStatus.FAILED,
            error="Deployment cancelled",
        )

    async def _fail(
        self, request: DeploymentRequest, exc: Exception
    ) -> DeploymentFailure:
        message = normalize_error(exc)
        logger.error(f"Deployment {request.deployment_id} failed: {message}")
        self.status_store.set(
            request.deployment_id, DeploymentStatus.FAILED, error=message
        )
        await self._release_claimed(request)
        return DeploymentFailure(deployment_id=request.deployment_id, error=message)

    async def _release_claimed(
        self, request: DeploymentRequest, *, shielded: bool = False
    ) -> None:
        if not self.workspaces.is_claimed(request.bot_id):
            return
        release = self.workspaces.release(request.bot_id)
        if shielded:
            # Finishes even if the cancelled task is cancelled again.
            await asyncio.shield(release)
        else:
            await release
