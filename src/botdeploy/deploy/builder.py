"""Container image builder for bot deployments.

Build output is exposed as an async sequence of :class:`BuildLogEvent`
objects pulled one daemon chunk at a time, so large builds are never
buffered in memory.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from docker.errors import DockerException

from botdeploy.config.defaults import BUILD_FILE_NAME
from botdeploy.lib.errors import BuildError
from botdeploy.lib.logging_config import get_logger

if TYPE_CHECKING:
    import docker

logger = get_logger(__name__)


@dataclass(frozen=True)
class BuildLogEvent:
    """One decoded chunk of daemon build output.

    Attributes:
        kind: One of ``stream``, ``status``, ``aux`` or ``error``
        message: Text of the chunk (image id for ``aux`` events)
    """

    kind: str
    message: str

    @property
    def is_error(self) -> bool:
        """Return True if the daemon reported a build failure."""
        return self.kind == "error"

    @classmethod
    def from_chunk(cls, chunk: dict[str, Any]) -> BuildLogEvent:
        """Create an event from a decoded daemon JSON chunk."""
        if "error" in chunk:
            detail = chunk.get("errorDetail") or {}
            message = detail.get("message") if isinstance(detail, dict) else None
            return cls("error", str(message or chunk["error"]).strip())
        if "stream" in chunk:
            return cls("stream", str(chunk["stream"]).rstrip("\n"))
        if "aux" in chunk:
            aux = chunk["aux"]
            image_id = aux.get("ID", "") if isinstance(aux, dict) else aux
            return cls("aux", str(image_id))
        if "status" in chunk:
            return cls("status", str(chunk["status"]))
        return cls("status", str(chunk))


BuildObserver = Callable[[BuildLogEvent], None]


@dataclass(frozen=True)
class BuildResult:
    """Result of a successful image build.

    Attributes:
        image_tag: Tag the image was built as
        image_id: Image id reported by the daemon, if any
    """

    image_tag: str
    image_id: str | None = None


def _explain(exc: DockerException) -> str:
    explanation = getattr(exc, "explanation", None)
    return str(explanation or exc)


class ImageBuilder:
    """Builds images from build contexts through the Docker daemon.

    Example:
        >>> builder = ImageBuilder(docker.from_env())
        >>> result = await builder.build(Path("/tmp/bot1"), "botdeploy-bot1:latest")
        >>> result.image_tag
        'botdeploy-bot1:latest'
    """

    def __init__(
        self,
        client: docker.DockerClient,
        build_timeout: float = 600.0,
        build_file: str = BUILD_FILE_NAME,
    ) -> None:
        """Initialize the builder.

        Args:
            client: Connected Docker client
            build_timeout: Seconds allowed for a whole build
            build_file: Build descriptor name relative to the context
        """
        self.client = client
        self.build_timeout = build_timeout
        self.build_file = build_file

    def _start_build(self, context_path: Path, image_tag: str) -> Iterator[Any]:
        return iter(
            self.client.api.build(
                path=str(context_path),
                tag=image_tag,
                dockerfile=self.build_file,
                rm=True,  # Remove intermediate containers
                decode=True,
                # Bounds each read so a thread abandoned by the build
                # deadline drops the connection instead of blocking forever.
                timeout=self.build_timeout,
            )
        )

    async def stream(
        self, context_path: Path, image_tag: str
    ) -> AsyncIterator[BuildLogEvent]:
        """Submit a build and yield its output events as they arrive.

        The sequence is finite and can only be consumed once.

        Raises:
            BuildError: If the daemon rejects the build or reports an error
        """
        try:
            chunks = await asyncio.to_thread(self._start_build, context_path, image_tag)
            while True:
                chunk = await asyncio.to_thread(next, chunks, None)
                if chunk is None:
                    return
                if not isinstance(chunk, dict):
                    continue
                event = BuildLogEvent.from_chunk(chunk)
                if event.is_error:
                    raise BuildError(event.message)
                yield event
        except DockerException as e:
            raise BuildError(_explain(e)) from e

    async def build(
        self,
        context_path: Path,
        image_tag: str,
        observer: BuildObserver | None = None,
    ) -> BuildResult:
        """Build ``context_path`` as ``image_tag``, forwarding each event.

        Args:
            context_path: Directory containing the build descriptor
            image_tag: Tag for the built image
            observer: Called with every build event in arrival order

        Returns:
            BuildResult for the completed build

        Raises:
            BuildError: If the build fails or exceeds the build deadline

        A build past its deadline is abandoned, not stopped: the daemon keeps
        building until the connection read timeout closes the stream, and may
        still tag the image after this call has raised.
        """

        async def consume() -> BuildResult:
            image_id: str | None = None
            async with aclosing(self.stream(context_path, image_tag)) as events:
                async for event in events:
                    if event.kind == "aux" and event.message:
                        image_id = event.message
                    if observer is not None:
                        observer(event)
            return BuildResult(image_tag=image_tag, image_id=image_id)

        logger.info(f"Building Docker image {image_tag} from {context_path}")
        try:
            return await asyncio.wait_for(consume(), self.build_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Abandoned build of {image_tag} after {self.build_timeout:g}s")
            raise BuildError(f"timed out after {self.build_timeout:g}s") from e
