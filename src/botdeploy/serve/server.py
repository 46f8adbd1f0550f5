"""Deployment worker HTTP server.

Provides the FastAPI application exposing the deployment pipeline, status
queries and container logs behind a shared API key.
"""

from __future__ import annotations

import asyncio
import secrets
from typing import Any

from docker.errors import DockerException
from fastapi import Body, Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from botdeploy import __version__
from botdeploy.config.defaults import DEFAULT_LOG_TAIL
from botdeploy.deploy.coordinator import DeploymentCoordinator
from botdeploy.deploy.logs import ContainerLogReader
from botdeploy.lib.errors import (
    ContainerNotFoundError,
    DuplicateDeploymentError,
    ValidationError,
)
from botdeploy.lib.logging_config import get_logger
from botdeploy.models.deployment import DeploymentResult
from botdeploy.serve.middleware import LoggingMiddleware
from botdeploy.serve.models import HealthResponse, StatusResponse

logger = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"


class WorkerServer:
    """HTTP front end for a DeploymentCoordinator.

    Attributes:
        coordinator: Pipeline coordinator handling deploy requests.
        log_reader: Reader used by the container logs endpoint.
        api_key: Shared secret required in the ``X-API-Key`` header.
    """

    def __init__(
        self,
        coordinator: DeploymentCoordinator,
        log_reader: ContainerLogReader,
        api_key: str,
        cors_origins: list[str] | None = None,
    ) -> None:
        """Initialize the worker server.

        Args:
            coordinator: Pipeline coordinator
            log_reader: Container log reader
            api_key: Required API key; must not be empty
            cors_origins: Allowed CORS origins (default: ["*"])

        Raises:
            ValueError: If ``api_key`` is empty
        """
        if not api_key:
            raise ValueError("api_key must not be empty")
        self.coordinator = coordinator
        self.log_reader = log_reader
        self.api_key = api_key
        self.cors_origins = cors_origins or ["*"]
        self._app: FastAPI | None = None

    @property
    def app(self) -> FastAPI:
        """Return the FastAPI application, creating it on first use."""
        if self._app is None:
            self._app = self.create_app()
        return self._app

    def _require_api_key(
        self, x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER)
    ) -> None:
        if x_api_key is None or not secrets.compare_digest(x_api_key, self.api_key):
            raise HTTPException(status_code=401, detail="Unauthorized")

    def create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title="botdeploy worker",
            description="Deploys bot repositories as resource-limited containers",
            version=__version__,
            dependencies=[Depends(self._require_api_key)],
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=self.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        app.add_middleware(LoggingMiddleware)

        self._register_health_endpoints(app)
        self._register_deploy_endpoints(app)
        self._register_log_endpoints(app)
        return app

    def _register_health_endpoints(self, app: FastAPI) -> None:
        @app.get("/health", response_model=HealthResponse, tags=["Health"])
        async def health() -> HealthResponse:
            """Basic health check endpoint."""
            return HealthResponse(status="ok", version=__version__)

    def _register_deploy_endpoints(self, app: FastAPI) -> None:
        coordinator = self.coordinator

        @app.post("/deploy", tags=["Deploy"])
        async def deploy(payload: dict[str, Any] = Body(...)) -> JSONResponse:
            """Run the deployment pipeline and wait for its outcome."""
            deployment_id = payload.get("deploymentId")
            try:
                outcome = await coordinator.deploy(payload)
            except DuplicateDeploymentError as e:
                return _failure_response(409, deployment_id, e.message)
            except ValidationError as e:
                return _failure_response(400, deployment_id, e.message)

            if isinstance(outcome, DeploymentResult):
                return JSONResponse(status_code=200, content=outcome.to_payload())
            return JSONResponse(status_code=500, content=outcome.to_payload())

        @app.get(
            "/status/{deployment_id}", response_model=StatusResponse, tags=["Deploy"]
        )
        async def status(deployment_id: str) -> StatusResponse:
            """Return the recorded status of a deployment."""
            return StatusResponse(
                status=coordinator.status_store.get(deployment_id)
            )

    def _register_log_endpoints(self, app: FastAPI) -> None:
        log_reader = self.log_reader

        @app.get("/containers/{container_id}/logs", tags=["Logs"])
        async def container_logs(
            container_id: str, tail: str = str(DEFAULT_LOG_TAIL)
        ) -> JSONResponse:
            """Return the tail of a running container's output."""
            try:
                lines = await log_reader.tail(container_id, _parse_tail(tail))
            except ValidationError as e:
                return JSONResponse(status_code=400, content=[e.message])
            except ContainerNotFoundError:
                return JSONResponse(status_code=404, content=["Container not found"])
            except (DockerException, asyncio.TimeoutError) as e:
                logger.error(f"Error fetching container logs: {e}")
                return JSONResponse(
                    status_code=500,
                    content=[f"Error fetching logs: {str(e) or 'timed out'}"],
                )
            return JSONResponse(status_code=200, content=lines)


def _parse_tail(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return DEFAULT_LOG_TAIL


def _failure_response(
    status_code: int, deployment_id: Any, message: str
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "deploymentId": deployment_id, "error": message},
    )
