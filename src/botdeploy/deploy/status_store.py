"""In-memory deployment status tracking.

Records live for the lifetime of the process; there is no eviction and no
persistence across restarts.
"""

from __future__ import annotations

import threading

from botdeploy.lib.errors import StatusTransitionError
from botdeploy.models.deployment import (
    DeploymentRecord,
    DeploymentResult,
    DeploymentStatus,
)


class StatusStore:
    """Thread-safe key/value store of deployment records.

    Terminal records (COMPLETED or FAILED) are never overwritten.

    Example:
        >>> store = StatusStore()
        >>> store.set("d1", DeploymentStatus.STARTED)
        >>> store.get("d1")
        <DeploymentStatus.STARTED: 'STARTED'>
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._records: dict[str, DeploymentRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def contains(self, deployment_id: str) -> bool:
        """Return True if a record exists for ``deployment_id``."""
        with self._lock:
            return deployment_id in self._records

    def get(self, deployment_id: str) -> DeploymentStatus:
        """Return the recorded status, or NOT_FOUND when there is none."""
        with self._lock:
            record = self._records.get(deployment_id)
        if record is None:
            return DeploymentStatus.NOT_FOUND
        return record.status

    def get_record(self, deployment_id: str) -> DeploymentRecord | None:
        """Return the full record for ``deployment_id`` if present."""
        with self._lock:
            return self._records.get(deployment_id)

    def set(
        self,
        deployment_id: str,
        status: DeploymentStatus,
        *,
        result: DeploymentResult | None = None,
        error: str | None = None,
    ) -> DeploymentRecord:
        """Record a status for ``deployment_id``.

        Args:
            deployment_id: Deployment identifier
            status: New status; NOT_FOUND cannot be stored
            result: Success payload for COMPLETED records
            error: Normalized error message for FAILED records

        Returns:
            The stored record

        Raises:
            ValueError: If ``status`` is NOT_FOUND
            StatusTransitionError: If the existing record is terminal
        """
        if status is DeploymentStatus.NOT_FOUND:
            raise ValueError("NOT_FOUND is a query result and cannot be stored")

        record = DeploymentRecord(
            deployment_id=deployment_id,
            status=status,
            result=result,
            error=error,
        )
        with self._lock:
            current = self._records.get(deployment_id)
            if current is not None and current.status.is_terminal:
                raise StatusTransitionError(
                    deployment_id, current.status.value, status.value
                )
            self._records[deployment_id] = record
        return record
