"""Environment variable helpers for botdeploy configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import load_dotenv

from botdeploy.lib.errors import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_env_file(path: str | Path = ".env") -> bool:
    """Load a dotenv file without overriding variables already set.

    Args:
        path: Path to the dotenv file

    Returns:
        True if the file existed and was loaded
    """
    env_path = Path(path)
    if not env_path.is_file():
        return False
    return load_dotenv(env_path, override=False)


def get_env_var(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, treating empty values as unset."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value


def substitute_env_vars(text: str) -> str:
    """Replace ``${VAR_NAME}`` references with environment values.

    Raises:
        ConfigError: If a referenced variable is not set
    """

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        value = os.environ.get(name)
        if value is None:
            raise ConfigError(name, f"Environment variable '{name}' is not set")
        return value

    return _ENV_PATTERN.sub(replace, text)
