"""Per-bot build workspaces fetched from version control."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from botdeploy.config.defaults import BUILD_FILE_NAME
from botdeploy.deploy.vcs import VersionControlClient
from botdeploy.lib.errors import MissingBuildFileError
from botdeploy.lib.logging_config import get_logger

logger = get_logger(__name__)


class WorkspaceManager:
    """Prepares and removes filesystem build contexts keyed by bot id.

    Each bot owns ``<root>/<bot_id>``. A workspace is *claimed* once the
    purge before a fetch succeeds; only claimed workspaces are released on
    the failure path.

    Example:
        >>> manager = WorkspaceManager(Path("/tmp"), GitClient())
        >>> path = await manager.acquire("bot1", "https://example.com/ok.git", "main")
    """

    def __init__(
        self,
        root: Path,
        vcs: VersionControlClient,
        clone_timeout: float = 30.0,
        build_file: str = BUILD_FILE_NAME,
    ) -> None:
        """Initialize the manager.

        Args:
            root: Parent directory for all workspaces
            vcs: Client used to fetch repositories
            clone_timeout: Seconds allowed for each fetch
            build_file: Build descriptor required at the workspace root
        """
        self.root = Path(root)
        self.vcs = vcs
        self.clone_timeout = clone_timeout
        self.build_file = build_file
        self._claimed: set[str] = set()

    def path_for(self, bot_id: str) -> Path:
        """Return the workspace directory for ``bot_id``."""
        return self.root / bot_id

    def is_claimed(self, bot_id: str) -> bool:
        """Return True if a fetch was attempted into a purged workspace."""
        return bot_id in self._claimed

    async def _remove(self, path: Path) -> None:
        if path.exists():
            await asyncio.to_thread(shutil.rmtree, path)

    async def acquire(self, bot_id: str, repository: str, branch: str) -> Path:
        """Fetch ``branch`` of ``repository`` into a fresh workspace.

        Args:
            bot_id: Bot identifier owning the workspace
            repository: Repository location
            branch: Branch to check out

        Returns:
            Path to the workspace containing the build descriptor

        Raises:
            CloneError: If the fetch times out or fails
            MissingBuildFileError: If the build descriptor is absent
        """
        path = self.path_for(bot_id)
        self._claimed.discard(bot_id)
        try:
            await self._remove(path)
            self._claimed.add(bot_id)
        except OSError as exc:
            logger.error(f"Cleanup error for workspace {path}: {exc}")

        path.parent.mkdir(parents=True, exist_ok=True)
        await self.vcs.clone(repository, branch, path, timeout=self.clone_timeout)

        if not (path / self.build_file).is_file():
            raise MissingBuildFileError(self.build_file)
        return path

    async def release(self, bot_id: str) -> None:
        """Remove the workspace for ``bot_id``; errors are logged only."""
        path = self.path_for(bot_id)
        try:
            await self._remove(path)
        except OSError as exc:
            logger.error(f"Cleanup error for workspace {path}: {exc}")
        finally:
            self._claimed.discard(bot_id)
