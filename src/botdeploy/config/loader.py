"""Configuration loader for the botdeploy worker.

Settings are resolved from, in increasing precedence: built-in defaults,
an optional YAML file, and ``BOTDEPLOY_*`` environment variables (after
loading a ``.env`` file if one is present).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from botdeploy.config.defaults import DEFAULT_WORKER_CONFIG
from botdeploy.config.env_loader import load_env_file, substitute_env_vars
from botdeploy.lib.errors import ConfigError
from botdeploy.models.config import WorkerSettings

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV_VAR = "BOTDEPLOY_CONFIG"

# Field name to environment variables, first match wins. The unprefixed
# names are kept for existing worker deployments.
ENV_VAR_MAP: dict[str, tuple[str, ...]] = {
    "api_key": ("BOTDEPLOY_API_KEY", "WORKER_API_KEY"),
    "host": ("BOTDEPLOY_HOST",),
    "port": ("BOTDEPLOY_PORT", "PORT"),
    "docker_base_url": ("BOTDEPLOY_DOCKER_HOST", "DOCKER_HOST"),
    "workspace_root": ("BOTDEPLOY_WORKSPACE_ROOT",),
    "clone_timeout": ("BOTDEPLOY_CLONE_TIMEOUT",),
    "build_timeout": ("BOTDEPLOY_BUILD_TIMEOUT",),
    "docker_timeout": ("BOTDEPLOY_DOCKER_TIMEOUT",),
    "max_concurrent_builds": ("BOTDEPLOY_MAX_CONCURRENT_BUILDS",),
    "keep_workspace_on_success": ("BOTDEPLOY_KEEP_WORKSPACE_ON_SUCCESS",),
    "image_prefix": ("BOTDEPLOY_IMAGE_PREFIX",),
}

_BOOL_FIELDS = {"keep_workspace_on_success"}


def _parse_env_value(field_name: str, value: str) -> Any:
    """Parse an environment variable value for a settings field.

    Booleans are parsed here; numeric fields are left to pydantic so that
    bad values surface as ConfigError instead of being ignored.
    """
    if field_name in _BOOL_FIELDS:
        return value.strip().lower() in ("true", "1", "yes", "on")
    return value


def _env_overrides(env_vars: Mapping[str, str]) -> dict[str, Any]:
    """Collect settings overrides from environment variables."""
    overrides: dict[str, Any] = {}
    for field_name, names in ENV_VAR_MAP.items():
        for name in names:
            raw = env_vars.get(name)
            if raw is None or not raw.strip():
                continue
            overrides[field_name] = _parse_env_value(field_name, raw)
            break
    return overrides


def _read_yaml_config(path: Path) -> dict[str, Any]:
    """Read a YAML settings file with ``${VAR}`` substitution.

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError("config", f"Cannot read {path}: {exc}") from exc

    try:
        content = yaml.safe_load(substitute_env_vars(raw_text))
    except yaml.YAMLError as exc:
        raise ConfigError("config", f"Invalid YAML in {path}: {exc}") from exc

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError("config", f"{path} must contain a mapping at top level")
    return content


def load_settings(
    config_path: str | Path | None = None,
    env_vars: Mapping[str, str] | None = None,
    env_file: str | Path | None = ".env",
) -> WorkerSettings:
    """Resolve worker settings.

    Args:
        config_path: Optional YAML file; falls back to ``$BOTDEPLOY_CONFIG``
        env_vars: Environment mapping (defaults to ``os.environ``)
        env_file: Dotenv file loaded before reading the environment

    Returns:
        Validated WorkerSettings

    Raises:
        ConfigError: If the file is unreadable or a value is invalid
    """
    if env_file is not None and load_env_file(env_file):
        logger.debug(f"Loaded environment from {env_file}")

    env = os.environ if env_vars is None else env_vars
    data: dict[str, Any] = dict(DEFAULT_WORKER_CONFIG)

    path_value = config_path or env.get(CONFIG_PATH_ENV_VAR)
    if path_value:
        path = Path(path_value)
        if not path.exists():
            raise ConfigError("config", f"Configuration file not found: {path}")
        data.update(_read_yaml_config(path))
        logger.debug(f"Loaded configuration from {path}")

    data.update(_env_overrides(env))

    try:
        return WorkerSettings.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise ConfigError(field, first.get("msg", str(exc))) from exc
