"""Configuration loading for the botdeploy worker.

Main components:
- load_settings: resolve WorkerSettings from defaults, YAML and environment
- Environment variable substitution (${VAR_NAME} pattern)
- Default configuration and the fixed resource-limit policy
"""

from botdeploy.config.defaults import DEFAULT_RESOURCE_LIMITS, DEFAULT_WORKER_CONFIG
from botdeploy.config.env_loader import get_env_var, load_env_file, substitute_env_vars
from botdeploy.config.loader import load_settings

__all__ = [
    "DEFAULT_RESOURCE_LIMITS",
    "DEFAULT_WORKER_CONFIG",
    "get_env_var",
    "load_env_file",
    "load_settings",
    "substitute_env_vars",
]
