"""
Centralized logging configuration.
"""

from __future__ import annotations

import logging
import sys

from omnimemory.config import Config

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: Config | None = None, level: str | None = None) -> None:
    """
    Configure the root logger once for CLI and script entry points.

    Args:
        config: Config instance, uses defaults if None
        level: explicit level name, overrides ``config.log_level``
    """
    cfg = config or Config()
    name = (level or cfg.log_level or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format=_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
