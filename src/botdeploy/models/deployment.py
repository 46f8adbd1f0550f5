"""Pydantic models for deployment requests, records and payloads.

Field names are snake_case in Python; the wire format used by the HTTP
transport is camelCase and is handled through field aliases.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Docker container names allow [a-zA-Z0-9][a-zA-Z0-9_.-]; bot ids are used
# both as a directory name and as part of the container name.
BOT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class DeploymentStatus(str, Enum):
    """Deployment pipeline status values."""

    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"

    @property
    def is_terminal(self) -> bool:
        """Return True for statuses that can never change again."""
        return self in (DeploymentStatus.COMPLETED, DeploymentStatus.FAILED)


class DeploymentRequest(BaseModel):
    """Immutable request to deploy a repository branch for a bot.

    Attributes:
        repository: Git repository location
        branch: Branch to check out
        bot_id: Logical owner of the deployable unit
        deployment_id: Unique handle for this pipeline execution
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    repository: str = Field(..., min_length=1, description="Repository URL")
    branch: str = Field(..., min_length=1, description="Branch to deploy")
    bot_id: str = Field(..., min_length=1, alias="botId", description="Bot id")
    deployment_id: str = Field(
        ..., min_length=1, alias="deploymentId", description="Deployment id"
    )

    @field_validator("bot_id")
    @classmethod
    def validate_bot_id(cls, v: str) -> str:
        """Ensure the bot id is safe to use in paths and container names."""
        if not BOT_ID_PATTERN.match(v):
            raise ValueError(
                "botId may only contain letters, digits, '_', '.' and '-' "
                "and must start with a letter or digit"
            )
        return v


class ResourceLimits(BaseModel):
    """Fixed resource-limit policy applied to every created container."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    memory_bytes: int = Field(default=512 * 1024 * 1024, gt=0)
    memory_swap_bytes: int = Field(default=1024 * 1024 * 1024, gt=0)
    cpu_quota: int = Field(default=100000, gt=0)
    cpu_period: int = Field(default=100000, gt=0)
    network_mode: str = Field(default="bridge")
    security_opt: tuple[str, ...] = Field(default=("no-new-privileges",))
    restart_policy: str = Field(default="unless-stopped")
    stop_timeout: int = Field(default=10, ge=0, description="Graceful stop (s)")

    def host_config_kwargs(self) -> dict[str, Any]:
        """Return keyword arguments for ``APIClient.create_host_config``."""
        return {
            "mem_limit": self.memory_bytes,
            "memswap_limit": self.memory_swap_bytes,
            "cpu_quota": self.cpu_quota,
            "cpu_period": self.cpu_period,
            "network_mode": self.network_mode,
            "security_opt": list(self.security_opt),
            "restart_policy": {"Name": self.restart_policy},
        }


class DeploymentResult(BaseModel):
    """Success payload returned once a container is verified running."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[True] = True
    deployment_id: str = Field(..., alias="deploymentId")
    image_tag: str = Field(..., alias="imageId")
    container_id: str = Field(..., alias="containerId")
    status: Literal["RUNNING"] = "RUNNING"
    started_at: str = Field(..., alias="startedAt")

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return self.model_dump(by_alias=True)


class DeploymentFailure(BaseModel):
    """Failure payload carrying the normalized error message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[False] = False
    deployment_id: str = Field(..., alias="deploymentId")
    error: str

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase wire representation."""
        return self.model_dump(by_alias=True)


class DeploymentRecord(BaseModel):
    """In-memory status record for one deployment id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    deployment_id: str
    status: DeploymentStatus
    result: DeploymentResult | None = None
    error: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
