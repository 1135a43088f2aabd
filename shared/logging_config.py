"""
Logging setup for the CoParent backend.

Modules log through ``logging.getLogger(__name__)``; this module only
installs the handler and format once, from the app factory.
"""

import logging.config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "handlers": ["console"],
                "level": level.upper(),
            },
            "loggers": {
                # Request lines from httpx would otherwise include JWKS and
                # management URLs at INFO on every refresh.
                "httpx": {"level": "WARNING"},
            },
        }
    )
