"""HTTP transport for the botdeploy worker."""

from botdeploy.serve.server import WorkerServer

__all__ = ["WorkerServer"]
