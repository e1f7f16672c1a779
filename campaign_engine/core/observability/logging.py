"""
Structured Logging

Provides structured JSON logging with correlation IDs.

Features:
    - JSON formatted logs
    - Request and campaign correlation fields
    - Context managers for scoped logging

Usage:
    from campaign_engine.core.observability.logging import LogContext

    logger = logging.getLogger(__name__)
    with LogContext(campaign_id=campaign.id):
        logger.info("Dispatch started")
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import UUID


# Attributes every LogRecord carries; anything else came from extra= or LogContext
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
])


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter

    Formats log records as JSON for structured logging.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith('_'):
                continue
            if isinstance(value, UUID):
                log_data[key] = str(value)
            elif isinstance(value, (str, int, float, bool, type(None))):
                log_data[key] = value
            else:
                log_data[key] = str(value)

        return json.dumps(log_data)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
) -> None:
    """
    Setup application logging

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Format (json or text)
        log_file: Optional file that receives a copy of every record
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(str(log_path))
        except OSError as e:
            root_logger.warning(f"Failed to setup file logging at {log_path}: {e}")
        else:
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)


class LogContext:
    """
    Context manager for scoped logging with additional context

    Usage:
        with LogContext(request_id="abc123", campaign_id=campaign_id):
            logger.info("Inside context")  # carries request_id and campaign_id
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token = None

    def __enter__(self):
        _install_record_factory()
        self._token = _log_context.set({**_log_context.get(), **self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


# Per-task context; concurrent requests never see each other's fields
_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})
_factory_installed = False


def _install_record_factory() -> None:
    global _factory_installed
    if _factory_installed:
        return

    base_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True
