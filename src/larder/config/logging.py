"""Shared logging helpers for larder."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "LARDER_LOG_LEVEL"


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: the
    level defaults to ``LARDER_LOG_LEVEL`` (a level name) or INFO, and the
    format is terse enough for CLI output. Pass ``force=True`` to reconfigure
    during tests or specialised entry points.
    """

    if level is None:
        level_name = (os.getenv(LOG_LEVEL_ENV) or "INFO").strip().upper()
        level = logging.getLevelNamesMapping().get(level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # per-request lines from httpx drown out the run report
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
