# crm_app/utils/logging_config.py

"""
Logging setup for the Flask app and the ``crm_app`` package loggers
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler

from flask import has_request_context, request

PACKAGE_LOGGER_NAME = "crm_app"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class RequestContextFilter(logging.Filter):
    """Attach request path and method to records emitted during a request"""

    def filter(self, record):
        if has_request_context():
            record.path = request.path
            record.method = request.method
        else:
            record.path = None
            record.method = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "path", None):
            payload["path"] = record.path
            payload["method"] = record.method
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(log_format):
    if str(log_format).lower() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def _reset_handlers(logger):
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(app):
    """
    Configure console and rotating file handlers from app config.

    Safe to call repeatedly; existing handlers are replaced.
    """
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app.config.get("LOG_FORMAT", "text"))
    context_filter = RequestContextFilter()

    handlers = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        console_handler = logging.StreamHandler()
        handlers.append(console_handler)

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "crm.log"),
            maxBytes=app.config.get("LOG_FILE_MAX_BYTES", 10485760),
            backupCount=app.config.get("LOG_FILE_BACKUP_COUNT", 10),
        )
        handlers.append(file_handler)

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for logger in (app.logger, package_logger):
        _reset_handlers(logger)
        logger.setLevel(level)
        for handler in handlers:
            logger.addHandler(handler)

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)

    app.logger.info(f"Logging configured (level={level_name}, handlers={len(handlers)})")
