"""
Logging configuration for Token Price Aggregator.
Console logging through dictConfig, as JSON lines or plain text.
"""

import logging
import logging.config
import sys
from typing import Dict, Any
from pythonjsonlogger import jsonlogger

from .config import settings

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s %(module)s %(lineno)d"


def get_logging_config(level: str, log_format: str) -> Dict[str, Any]:
    """Build the dictConfig for the given level and ``json``/``text`` format."""
    if log_format == "json":
        formatter = {
            "()": jsonlogger.JsonFormatter,
            "format": JSON_FORMAT,
            "datefmt": "%Y-%m-%dT%H:%M:%S"
        }
    else:
        formatter = {
            "format": TEXT_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S"
        }
    
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": sys.stdout
            }
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            # Library noise stays at WARNING whatever the app level is
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"}
        }
    }


def setup_logging() -> None:
    """Apply the configured logging setup."""
    logging.config.dictConfig(get_logging_config(settings.log_level, settings.log_format))


def create_logger(module_name: str) -> logging.Logger:
    """Logger for a module, namespaced under ``app``."""
    return logging.getLogger(f"app.{module_name}")
