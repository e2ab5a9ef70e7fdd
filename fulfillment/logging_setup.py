"""
Logging for the API, the workers and the CLIs.

Every entry point calls ``setup_logging()`` once before building its
dependency container. Modules log through ``logging.getLogger(__name__)``
with structured context in ``extra``; Temporal workflow code logs through
``temporalio.workflow.logger`` instead, which the same root handler picks
up inside a worker.
"""

import logging
import os
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(name: str) -> Optional[int]:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else None


def setup_logging(environ: Optional[Mapping[str, str]] = None) -> None:
    """Configure the root logger from ``LOG_LEVEL`` and ``LOG_FORMAT``.

    An unknown level falls back to INFO. ``force=True`` replaces handlers
    installed earlier in the process.
    """
    environ = os.environ if environ is None else environ
    log_level = environ.get("LOG_LEVEL", "INFO").upper()
    log_format = environ.get("LOG_FORMAT", DEFAULT_LOG_FORMAT)

    numeric_level = resolve_level(log_level)
    if numeric_level is None:
        print(f"Invalid log level: {log_level}, defaulting to INFO")
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, format=log_format, force=True)
    logger.info(
        "Logging configured",
        extra={"log_level": log_level, "numeric_level": numeric_level},
    )
