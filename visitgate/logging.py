import logging
import logging.config

from visitgate.config import settings

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install the process-wide logging configuration.

    Safe to call more than once; only the first call takes effect.
    """
    global _configured
    if _configured:
        return
    logging.config.dictConfig(
        {
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
                "visitgate": {
                    "level": level or settings.log_level,
                    "handlers": ["console"],
                    "propagate": False,
                },
                "sqlalchemy.engine": {"level": "WARNING"},
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
        }
    )
    _configured = True
    logging.getLogger(__name__).debug("Logging configured")
