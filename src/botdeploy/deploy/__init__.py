"""botdeploy deployment engine.

This package provides the deployment pipeline: workspace fetch, image
build, container replacement and status tracking.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from botdeploy.config.defaults import DEFAULT_RESOURCE_LIMITS
from botdeploy.deploy.builder import BuildLogEvent, BuildResult, ImageBuilder
from botdeploy.deploy.containers import ContainerInfo, ContainerLifecycleManager
from botdeploy.deploy.coordinator import DeploymentCoordinator
from botdeploy.deploy.status_store import StatusStore
from botdeploy.deploy.vcs import GitClient, VersionControlClient
from botdeploy.deploy.workspace import WorkspaceManager

if TYPE_CHECKING:
    import docker

    from botdeploy.models.config import WorkerSettings


def create_coordinator(
    settings: WorkerSettings,
    client: docker.DockerClient,
    status_store: StatusStore | None = None,
    vcs: VersionControlClient | None = None,
) -> DeploymentCoordinator:
    """Wire a DeploymentCoordinator from worker settings."""
    workspaces = WorkspaceManager(
        settings.workspace_root,
        vcs or GitClient(),
        clone_timeout=settings.clone_timeout,
    )
    return DeploymentCoordinator(
        status_store or StatusStore(),
        workspaces,
        ImageBuilder(client, build_timeout=settings.build_timeout),
        ContainerLifecycleManager(
            client,
            docker_timeout=settings.docker_timeout,
            stop_timeout=DEFAULT_RESOURCE_LIMITS.stop_timeout,
        ),
        limits=DEFAULT_RESOURCE_LIMITS,
        max_concurrent_builds=settings.max_concurrent_builds,
        keep_workspace_on_success=settings.keep_workspace_on_success,
        image_prefix=settings.image_prefix,
    )


__all__ = [
    "BuildLogEvent",
    "BuildResult",
    "ContainerInfo",
    "ContainerLifecycleManager",
    "DeploymentCoordinator",
    "GitClient",
    "ImageBuilder",
    "StatusStore",
    "VersionControlClient",
    "WorkspaceManager",
    "create_coordinator",
]
