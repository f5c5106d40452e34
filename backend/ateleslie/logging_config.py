"""
Logging Configuration
The API and the Celery worker each log to the console and to their own rotating file.
"""

import os
import sys
import logging
import logging.config
from pathlib import Path

# Libraries that are noisy at INFO
QUIET_LOGGERS = ("aiosmtplib", "multipart", "PIL", "sqlalchemy.engine")


def setup_logging(log_dir: str = "logs", log_level: str = "INFO", process: str = "api"):
    """
    Configure logging for one process.

    Args:
        log_dir: Directory to store log files.
        log_level: Level for the root logger.
        process: ``api`` or ``worker``; names the log file.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_file_path = os.path.join(log_dir, f"{process}.log")

    loggers = {
        "": {"handlers": ["console", "file"], "level": log_level},
        # uvicorn and celery install their own handlers; route them through ours
        "uvicorn": {"handlers": ["console", "file"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["file"], "level": "INFO", "propagate": False},
        "celery": {"handlers": ["console", "file"], "level": "INFO", "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": log_file_path,
                "maxBytes": 10 * 1024 * 1024,  # 10 MB
                "backupCount": 5,
                "formatter": "default",
                "encoding": "utf8",
            },
        },
        "loggers": loggers,
    })

    logging.getLogger("ateleslie").info(f"Logging initialized for {process}. Writing logs to {log_file_path}")
