"""Logging setup for the vaultlink package logger.

Modules log through ``logging.getLogger(__name__)``; only the ``vaultlink``
logger gets a handler. The level comes from, in order:

1. The ``level`` argument (the CLI's ``--log-level``)
2. The VAULTLINK_LOG_LEVEL environment variable
3. INFO

What each level shows:
    - DEBUG: Recovered per-note problems (bad frontmatter, unreadable notes,
      dependencies that vanished mid-traversal)
    - INFO: Scan, resolver and share payload summaries
    - WARNING: Ambiguities such as colliding entity names, schema fallback
"""

from __future__ import annotations

import logging
import os
import sys

PACKAGE_LOGGER = "vaultlink"
LOG_LEVEL_ENV = "VAULTLINK_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def resolve_level(level: str | None = None) -> int:
    """Numeric level for ``level`` or the environment; unknown names mean INFO."""
    name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").strip().upper()
    return getattr(logging, name) if name in LOG_LEVELS else logging.INFO


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a stderr handler to the package logger and set its level.

    The handler is attached once. Later calls only change the level, and
    only when ``level`` is given explicitly.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    if package_logger.handlers:
        if level is not None:
            package_logger.setLevel(resolve_level(level))
        return package_logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(resolve_level(level))
    # Root logger handlers never see package records
    package_logger.propagate = False
    return package_logger
