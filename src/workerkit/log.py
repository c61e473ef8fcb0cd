# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging setup for the CLI and for embedding applications."""

from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any

LOG_LEVEL_ENV = "WORKERKIT_LOG_LEVEL"
# Uploads run on two worker threads, so the thread name is part of every line.
LOG_FORMAT = "%(levelname)s %(threadName)s %(name)s: %(message)s"
# httpx and httpcore log every request at INFO/DEBUG.
TRANSPORT_LOGGERS = ("httpx", "httpcore")


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.WARNING


def build_logging_config(level: str | None = None) -> dict[str, Any]:
    """Return a ``dictConfig`` mapping; transport loggers stay at WARNING unless DEBUG is requested."""
    effective = _resolve_level(level)
    transport_level = logging.DEBUG if effective <= logging.DEBUG else logging.WARNING
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {name: {"level": logging.getLevelName(transport_level)} for name in TRANSPORT_LOGGERS},
        "root": {"level": logging.getLevelName(effective), "handlers": ["console"]},
    }


def setup_logging(level: str | None = None) -> None:
    """Configure logging from ``level`` or ``$WORKERKIT_LOG_LEVEL`` (default WARNING), read at call time."""
    dictConfig(build_logging_config(level))


__all__ = ["build_logging_config", "setup_logging"]
