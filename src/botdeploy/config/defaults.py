"""Default configuration values for botdeploy."""

from botdeploy.models.deployment import ResourceLimits

# Worker configuration defaults
DEFAULT_WORKER_CONFIG: dict[str, int | float | bool | str | None] = {
    "api_key": None,
    "host": "127.0.0.1",
    "port": 3000,
    "docker_base_url": None,
    "workspace_root": "/tmp",  # noqa: S108  # nosec B108
    "clone_timeout": 30,  # seconds
    "build_timeout": 600,  # seconds
    "docker_timeout": 60,  # seconds
    "max_concurrent_builds": 2,
    "keep_workspace_on_success": True,
    "image_prefix": "botdeploy",
}

# Applied to every container; not configurable per request.
DEFAULT_RESOURCE_LIMITS = ResourceLimits()

BUILD_FILE_NAME = "Dockerfile"
DEFAULT_LOG_TAIL = 100
