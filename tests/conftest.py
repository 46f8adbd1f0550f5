"""Pytest configuration and shared fixtures for botdeploy tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from botdeploy.deploy.vcs import VersionControlClient
from botdeploy.lib.errors import CloneError


class FakeVersionControlClient(VersionControlClient):
    """In-memory stand-in for git that writes files into the target dir.

    Attributes:
        files: Files (relative path to content) created on each clone
        error: Detail for a CloneError raised instead of cloning
        calls: Recorded (repository, branch, target_dir, timeout) tuples
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        error: str | None = None,
    ) -> None:
        self.files = {"Dockerfile": "FROM alpine\n"} if files is None else files
        self.error = error
        self.calls: list[tuple[str, str, Path, float]] = []

    async def clone(
        self,
        repository: str,
        branch: str,
        target_dir: Path,
        *,
        timeout: float,
    ) -> None:
        self.calls.append((repository, branch, target_dir, timeout))
        if self.error is not None:
            raise CloneError(self.error)
        target_dir.mkdir(parents=True)
        for name, content in self.files.items():
            (target_dir / name).parent.mkdir(parents=True, exist_ok=True)
            (target_dir / name).write_text(content, encoding="utf-8")


@pytest.fixture
def isolated_env() -> Generator[dict[str, str]]:
    """Provide isolated environment variables for testing.

    Yields:
        Dictionary of original environment variables

    Cleanup:
        Restores original environment after test
    """
    original_env = os.environ.copy()
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def fake_vcs() -> FakeVersionControlClient:
    """Version-control client producing a workspace with a Dockerfile."""
    return FakeVersionControlClient()


@pytest.fixture
def vcs_factory() -> type[FakeVersionControlClient]:
    """Return the fake client class for tests needing custom behavior."""
    return FakeVersionControlClient


@pytest.fixture
def mock_docker_client() -> MagicMock:
    """Docker client whose low-level API reports a successful deployment."""
    client = MagicMock()
    api = client.api
    api.build.return_value = iter(
        [
            {"stream": "Step 1/1 : FROM alpine\n"},
            {"stream": " ---> abc123\n"},
            {"aux": {"ID": "sha256:abc123"}},
            {"stream": "Successfully tagged botdeploy-bot1:latest\n"},
        ]
    )
    api.create_host_config.side_effect = lambda **kwargs: dict(kwargs)
    api.create_container.return_value = {"Id": "c0ffee123"}
    api.inspect_container.return_value = {
        "Id": "c0ffee123",
        "State": {"Running": True, "StartedAt": "2026-10-19T12:00:00Z"},
    }
    return client
