"""Version-control clients used to fetch deployable repositories."""

from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from pathlib import Path

from botdeploy.lib.errors import CloneError
from botdeploy.lib.logging_config import get_logger

logger = get_logger(__name__)


class VersionControlClient(ABC):
    """Abstract interface for fetching a branch into a local directory."""

    @abstractmethod
    async def clone(
        self,
        repository: str,
        branch: str,
        target_dir: Path,
        *,
        timeout: float,
    ) -> None:
        """Fetch ``branch`` of ``repository`` into ``target_dir``.

        Args:
            repository: Repository location
            branch: Branch to check out
            target_dir: Destination directory; must not exist yet
            timeout: Seconds before the fetch is abandoned

        Raises:
            CloneError: On timeout or any fetch failure
        """


class GitClient(VersionControlClient):
    """Clone repositories with the ``git`` executable.

    Arguments are passed as an argv list, never through a shell.
    """

    def __init__(self, git_executable: str = "git", depth: int | None = 1) -> None:
        """Initialize the client.

        Args:
            git_executable: Name or path of the git binary
            depth: Shallow clone depth, or None for full history
        """
        self.git_executable = git_executable
        self.depth = depth

    def build_command(self, repository: str, branch: str, target_dir: Path) -> list[str]:
        """Return the argv for a branch-qualified clone."""
        cmd = [self.git_executable, "clone", "--branch", branch, "--single-branch"]
        if self.depth is not None:
            cmd.extend(["--depth", str(self.depth)])
        cmd.extend(["--", repository, str(target_dir)])
        return cmd

    async def clone(
        self,
        repository: str,
        branch: str,
        target_dir: Path,
        *,
        timeout: float,
    ) -> None:
        """Run ``git clone`` and wait for it within ``timeout`` seconds."""
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        cmd = self.build_command(repository, branch, target_dir)
        logger.info(f"Cloning repository: {repository} (branch {branch})")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            raise CloneError(f"cannot run {self.git_executable}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise CloneError(f"timed out after {timeout:g}s") from exc

        if proc.returncode != 0:
            output = (stderr or stdout or b"").decode("utf-8", errors="replace")
            detail = output.strip() or f"git exited with code {proc.returncode}"
            raise CloneError(detail)
