from __future__ import annotations

import logging.config

from chart_sync.core.settings import Settings, settings as default_settings


def build_logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "chart_sync": {"handlers": ["console"], "level": level, "propagate": False},
        },
    }


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or default_settings
    logging.config.dictConfig(build_logging_config(settings.log_level.upper()))
