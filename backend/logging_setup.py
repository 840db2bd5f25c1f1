"""Logging for the feedback forms API.

Form writes, rejected submissions and rolled-back transactions are logged by
the domain modules through `logging.getLogger(__name__)`; this module gives
them one stdout handler and keeps uvicorn and SQLAlchemy output in line.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig

from settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_config(level: str) -> dict:
    server = {"level": level, "handlers": ["stdout"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {
            "uvicorn": server,
            "uvicorn.access": dict(server),
            # SQL echo stays off unless asked for explicitly
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Install the service's logging once per process.

    Skipped when the root logger already has handlers, e.g. under pytest's
    log capture or a reloader that configured it first.
    """
    if logging.getLogger().handlers:
        return
    dictConfig(build_config((level or LOG_LEVEL).upper()))
