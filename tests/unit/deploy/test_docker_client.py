"""Unit tests for the Docker connection helper."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from docker.errors import DockerException

from botdeploy.deploy.docker_client import create_docker_client
from botdeploy.lib.errors import DockerNotAvailableError


class TestCreateDockerClient:
    """Tests for create_docker_client()."""

    def test_uses_environment_by_default(self) -> None:
        """Without a base URL the environment configuration is used."""
        client = MagicMock()
        with patch("docker.from_env", return_value=client) as mock_from_env:
            assert create_docker_client() is client

        mock_from_env.assert_called_once_with()

    def test_explicit_base_url(self) -> None:
        """A configured socket URL is passed through."""
        with patch("docker.DockerClient") as mock_client_cls:
            create_docker_client("tcp://127.0.0.1:2375")

        mock_client_cls.assert_called_once_with(base_url="tcp://127.0.0.1:2375")

    def test_unreachable_daemon(self) -> None:
        """Connection failures raise DockerNotAvailableError."""
        with patch(
            "docker.from_env",
            side_effect=DockerException("Error while fetching server API version"),
        ):
            with pytest.raises(DockerNotAvailableError) as exc_info:
                create_docker_client()

        assert exc_info.value.operation == "init"
