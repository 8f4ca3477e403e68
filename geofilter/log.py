"""Logging helpers for geofilter."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from .config import LoggingConfig
from .policies import FilterPolicy, Verdict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

BLOCK_MESSAGE = "GeoIP blocked request from IP %s (Country: %s, Mode: %s, AllowUnknown: %s)"

# httpx logs every lookup request at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore")


def logging_dict(config: LoggingConfig) -> dict:
    """Build the ``dictConfig`` mapping for ``config``."""

    level = getattr(logging, config.level.upper(), logging.INFO)

    handler_config = {
        "level": level,
        "formatter": "standard",
    }
    if config.file:
        handler_config.update(
            {
                "class": "logging.handlers.WatchedFileHandler",
                "filename": config.file,
                "encoding": "utf-8",
            }
        )
    else:
        handler_config["class"] = "logging.StreamHandler"

    loggers = {"geofilter": {"level": level}}
    for name in _QUIET_LOGGERS:
        loggers[name] = {"level": max(level, logging.WARNING)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": LOG_FORMAT}},
        "handlers": {"default": handler_config},
        "loggers": loggers,
        "root": {
            "handlers": ["default"],
            "level": level,
        },
    }


def configure_logging(config: LoggingConfig) -> None:
    """Configure global logging based on configuration values."""

    dictConfig(logging_dict(config))
    logging.getLogger("uvicorn.access").disabled = not config.access_log


def log_blocked(logger: logging.Logger, ip: object, verdict: Verdict, policy: FilterPolicy) -> None:
    logger.warning(
        BLOCK_MESSAGE,
        ip,
        verdict.country,
        policy.mode.label,
        str(policy.allow_unknown).lower(),
    )


__all__ = ["BLOCK_MESSAGE", "configure_logging", "log_blocked", "logging_dict"]
