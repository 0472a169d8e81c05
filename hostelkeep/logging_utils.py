"""Logging configuration helpers."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def resolve_log_level(level: str | None = None) -> int:
    normalized = (level or os.environ.get("HOSTELKEEP_LOG_LEVEL") or "INFO").upper()
    return getattr(logging, normalized, logging.INFO)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=resolve_log_level(level), format=LOG_FORMAT)
