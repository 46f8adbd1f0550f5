"""Custom exception hierarchy for botdeploy configuration and deployments."""


class BotDeployError(Exception):
    """Base exception for all botdeploy errors.

    All botdeploy-specific exceptions inherit from this class, enabling
    centralized exception handling at the CLI and HTTP edges.
    """

    pass


class ConfigError(BotDeployError):
    """Exception raised for configuration errors.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class ValidationError(BotDeployError):
    """Exception raised when a deployment request is incomplete or malformed.

    Raised before any deployment state is recorded.

    Attributes:
        field: The request field that failed validation
        message: Description of the validation failure
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ValidationError.

        Args:
            field: Request field that failed validation
            message: Description of what went wrong
        """
        self.field = field
        self.message = message
        super().__init__(f"Validation error in '{field}': {message}")


class DuplicateDeploymentError(ValidationError):
    """Exception raised when a deployment id already has a recorded status."""

    def __init__(self, deployment_id: str) -> None:
        """Create a duplicate deployment error for ``deployment_id``."""
        self.deployment_id = deployment_id
        super().__init__(
            "deploymentId",
            f"Deployment '{deployment_id}' has already been submitted",
        )


class DeploymentError(BotDeployError):
    """Exception raised when a deployment pipeline stage fails.

    The string form is the bare message so that it can be reported to
    callers as-is.

    Attributes:
        operation: Pipeline stage that failed (clone, build, start, ...)
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize DeploymentError.

        Args:
            operation: Name of the pipeline stage that failed
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(message)


class CloneError(DeploymentError):
    """Raised when the repository fetch times out or exits non-zero."""

    def __init__(self, detail: str) -> None:
        """Create a clone error carrying the underlying error text."""
        self.detail = detail
        super().__init__(
            operation="clone",
            message=f"Failed to clone repository: {detail}",
        )


class MissingBuildFileError(DeploymentError):
    """Raised when the fetched workspace has no Dockerfile at its root."""

    def __init__(self, build_file: str = "Dockerfile") -> None:
        """Create a missing build descriptor error."""
        self.build_file = build_file
        super().__init__(
            operation="workspace",
            message=f"{build_file} not found in repository",
        )


class BuildError(DeploymentError):
    """Raised when the daemon reports a failed image build."""

    def __init__(self, detail: str) -> None:
        """Create a build error carrying the daemon's failure detail."""
        self.detail = detail
        super().__init__(operation="build", message=f"Docker build failed: {detail}")


class StartupError(DeploymentError):
    """Raised when a created container cannot be started or is not running."""

    def __init__(self, message: str = "Container failed to start") -> None:
        """Create a startup error."""
        super().__init__(operation="start", message=message)


class DockerNotAvailableError(DeploymentError):
    """Raised when the Docker daemon cannot be reached."""

    def __init__(self, operation: str) -> None:
        """Create an error for a daemon connection failure during ``operation``."""
        super().__init__(
            operation=operation,
            message=(
                "Docker daemon is not available. "
                "Ensure Docker is running and the socket is accessible."
            ),
        )


class StatusTransitionError(BotDeployError):
    """Raised when a terminal deployment status would be overwritten."""

    def __init__(self, deployment_id: str, current: str, requested: str) -> None:
        """Create a transition error with both statuses for context."""
        self.deployment_id = deployment_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Deployment '{deployment_id}' is {current}; "
            f"cannot transition to {requested}"
        )


class ContainerNotFoundError(BotDeployError):
    """Raised when no container matches a requested id prefix."""

    def __init__(self, container_id: str) -> None:
        """Create a not-found error for ``container_id``."""
        self.container_id = container_id
        super().__init__(f"Container not found: {container_id}")
