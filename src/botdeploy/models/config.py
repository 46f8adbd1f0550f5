"""Pydantic model for worker configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class WorkerSettings(BaseModel):
    """Runtime settings for the deployment worker.

    Attributes:
        api_key: Shared secret expected in the ``X-API-Key`` header
        host: Interface the HTTP server binds to
        port: Port the HTTP server listens on
        docker_base_url: Docker daemon socket URL (environment default if unset)
        workspace_root: Directory under which per-bot workspaces are cloned
        clone_timeout: Seconds allowed for a repository fetch
        build_timeout: Seconds allowed for an image build
        docker_timeout: Seconds allowed for each container daemon call
        max_concurrent_builds: Upper bound on simultaneous image builds
        keep_workspace_on_success: Leave the build context on disk after success
        image_prefix: Prefix for built image names
    """

    model_config = ConfigDict(extra="forbid")

    api_key: str | None = Field(default=None)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)
    docker_base_url: str | None = Field(default=None)
    workspace_root: Path = Field(default=Path("/tmp"))  # noqa: S108  # nosec B108
    clone_timeout: float = Field(default=30.0, gt=0)
    build_timeout: float = Field(default=600.0, gt=0)
    docker_timeout: float = Field(default=60.0, gt=0)
    max_concurrent_builds: int = Field(default=2, ge=1)
    keep_workspace_on_success: bool = Field(default=True)
    image_prefix: str = Field(default="botdeploy", min_length=1)
