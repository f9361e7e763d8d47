"""
Logging Configuration

One stdout handler for the service, uvicorn and the libraries it drives.
The embedding scheduler logs from a background task, so everything goes
through the same handler with the logger name in every line.
"""

import sys
from logging.config import dictConfig
from typing import Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers kept quiet unless debugging them directly
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "asyncpg")


def _console_logger(level: str) -> dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the API process.

    Args:
        level: Level for the ``journal`` loggers (LOG_LEVEL setting).

    Note:
        Called from the lifespan handler, so a reload of LOG_LEVEL takes
        effect on the next process start, not on ``/config/reload``.
    """
    log_level = level.upper()

    loggers = {
        "journal": _console_logger(log_level),
        "uvicorn": _console_logger("INFO"),
        "uvicorn.access": _console_logger("INFO"),
        "uvicorn.error": _console_logger("INFO"),
    }
    loggers.update({name: _console_logger("WARNING") for name in QUIET_LOGGERS})

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
            "loggers": loggers,
        }
    )
