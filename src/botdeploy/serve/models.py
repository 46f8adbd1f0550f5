"""Response models for the worker HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from botdeploy.models.deployment import DeploymentStatus


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="ok")
    version: str


class StatusResponse(BaseModel):
    """Deployment status query response."""

    status: DeploymentStatus
