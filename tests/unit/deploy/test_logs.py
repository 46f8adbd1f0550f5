"""Unit tests for container log retrieval."""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from botdeploy.deploy.logs import (
    NO_LOGS_MESSAGE,
    ContainerLogReader,
    format_log_lines,
)
from botdeploy.lib.errors import ContainerNotFoundError, ValidationError

FULL_ID = "c0ffee123456789abcdef"


@pytest.fixture
def log_client() -> MagicMock:
    """Docker client with one running container."""
    client = MagicMock()
    client.api.containers.return_value = [
        {"Id": "deadbeef0000"},
        {"Id": FULL_ID},
    ]
    client.api.logs.return_value = b"starting bot\n\nconnected\n"
    return client


class TestFormatLogLines:
    """Tests for log line formatting."""

    def test_prefixes_each_non_empty_line(self) -> None:
        """Blank lines are dropped and the rest get a timestamp prefix."""
        now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

        lines = format_log_lines(b"one\n\n  \ntwo\n", now=now)

        assert lines == [
            "[2026-10-19T12:00:00+00:00] one",
            "[2026-10-19T12:00:00+00:00] two",
        ]

    def test_accepts_text(self) -> None:
        """Already-decoded text is handled."""
        assert len(format_log_lines("a\nb")) == 2

    def test_empty_output(self) -> None:
        """No output gives no lines."""
        assert format_log_lines(b"") == []


class TestContainerLogReader:
    """Tests for ContainerLogReader.tail()."""

    @pytest.mark.asyncio
    async def test_tail_by_prefix(self, log_client: MagicMock) -> None:
        """A short id prefix resolves to the full container id."""
        reader = ContainerLogReader(log_client)

        lines = await reader.tail("c0ffee", 50)

        assert len(lines) == 2
        assert lines[0].endswith("] starting bot")
        log_client.api.logs.assert_called_once_with(
            FULL_ID, stdout=True, stderr=True, tail=50, stream=False
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tail", [0, -5])
    async def test_non_positive_tail_uses_default(
        self, log_client: MagicMock, tail: int
    ) -> None:
        """Invalid tail values fall back to 100 lines."""
        reader = ContainerLogReader(log_client)

        await reader.tail("c0ffee", tail)

        assert log_client.api.logs.call_args.kwargs["tail"] == 100

    @pytest.mark.asyncio
    async def test_empty_logs_placeholder(self, log_client: MagicMock) -> None:
        """A container with no output reports the placeholder line."""
        log_client.api.logs.return_value = b"\n"
        reader = ContainerLogReader(log_client)

        assert await reader.tail("c0ffee") == [NO_LOGS_MESSAGE]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("container_id", ["", "abc;rm", "../x", "c0 ffee"])
    async def test_invalid_id_rejected(
        self, log_client: MagicMock, container_id: str
    ) -> None:
        """Non-alphanumeric ids are rejected without a daemon call."""
        reader = ContainerLogReader(log_client)

        with pytest.raises(ValidationError, match="Invalid container ID format"):
            await reader.tail(container_id)

        log_client.api.containers.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_container(self, log_client: MagicMock) -> None:
        """No matching running container raises ContainerNotFoundError."""
        reader = ContainerLogReader(log_client)

        with pytest.raises(ContainerNotFoundError):
            await reader.tail("abc999")

        log_client.api.logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_hung_daemon_times_out(self, log_client: MagicMock) -> None:
        """The daemon call is bounded by the configured deadline."""
        release = threading.Event()
        log_client.api.containers.side_effect = lambda: release.wait(5) or []
        reader = ContainerLogReader(log_client, docker_timeout=0.05)

        try:
            with pytest.raises(asyncio.TimeoutError):
                await reader.tail("c0ffee")
        finally:
            release.set()
