import logging.config
import os

from peereval.core.config.settings import get_settings

ROTATE_BYTES = 10 * 1024 * 1024
ROTATE_BACKUPS = 5


def _rotating_file(log_dir: str, filename: str, level: str = "NOTSET") -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "json",
        "filename": os.path.join(log_dir, filename),
        "maxBytes": ROTATE_BYTES,
        "backupCount": ROTATE_BACKUPS,
        "level": level,
    }


def setup_logging() -> logging.Logger:
    """
    Configure application logging.

    Service and router modules log under ``peereval.*`` to the console,
    ``app.log`` and (for errors) ``error.log``. One line per HTTP request goes
    to ``peereval.access`` and lands in ``access.log`` only. uvicorn's own
    access log is silenced since the request middleware replaces it.
    """
    settings = get_settings()
    log_dir = settings.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    level = "DEBUG" if settings.DEBUG else "INFO"

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(name)s %(levelname)s %(message)s",
                "rename_fields": {"levelname": "level", "name": "logger"},
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "app_file": _rotating_file(log_dir, "app.log"),
            "error_file": _rotating_file(log_dir, "error.log", level="ERROR"),
            "access_file": _rotating_file(log_dir, "access.log"),
        },
        "loggers": {
            "": {"handlers": ["console", "app_file"], "level": "WARNING"},
            "peereval": {
                "handlers": ["console", "app_file", "error_file"],
                "level": level,
                "propagate": False,
            },
            "peereval.access": {
                "handlers": ["access_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {"handlers": [], "level": "WARNING", "propagate": False},
            "sqlalchemy.engine": {"level": "INFO" if settings.DEBUG else "WARNING"},
        },
    }

    logging.config.dictConfig(logging_config)
    return logging.getLogger("peereval")
