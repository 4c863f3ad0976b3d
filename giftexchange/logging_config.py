"""Logging configuration for the application."""

from __future__ import annotations

import logging
import logging.config
import sys
from typing import Any


def setup_logging(level: str = "INFO") -> None:
    """Configure console logging for the ``giftexchange`` logger tree."""
    level = (level or "INFO").upper()

    log_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG" if level == "DEBUG" else "INFO",
                "formatter": "detailed" if level == "DEBUG" else "simple",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "giftexchange": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "INFO" if level == "DEBUG" else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(log_config)
    logging.getLogger("giftexchange").debug("Logging initialized at level %s", level)
