import logging
import logging.config

import app.settings as settings

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "beatmirror": {
            "handlers": ["console"],
            "level": settings.LOG_LEVEL,
            "propagate": False,
        },
        # httpx logs every request at INFO
        "httpx": {"level": "WARNING"},
    },
}


def configure_logging(level: str | None = None) -> None:
    if level is not None:
        LOGGING_CONFIG["loggers"]["beatmirror"]["level"] = level

    logging.config.dictConfig(LOGGING_CONFIG)


worker_logger = logging.getLogger("beatmirror.worker")
fetcher_logger = logging.getLogger("beatmirror.fetcher")
store_logger = logging.getLogger("beatmirror.store")
api_logger = logging.getLogger("beatmirror.api")
