"""Logging configuration for botdeploy.

All modules obtain their logger through :func:`get_logger` so that the CLI
can configure verbosity once through :func:`setup_logging`.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
ROOT_LOGGER_NAME = "botdeploy"

# Third-party loggers that are too chatty at INFO.
_NOISY_LOGGERS = ("docker", "urllib3", "asyncio")


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure botdeploy logging.

    Args:
        verbose: Enable DEBUG level output
        quiet: Only emit warnings and errors (ignored when verbose is set)
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(
            logging.DEBUG if verbose else logging.WARNING
        )
