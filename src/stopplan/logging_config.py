"""Centralised logging configuration."""

from __future__ import annotations

import logging
import sys


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install a single stdout handler on the root logger."""

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    # httpx logs every request at INFO, which drowns provider warnings.
    logging.getLogger("httpx").setLevel(logging.WARNING)
