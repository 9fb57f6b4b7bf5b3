# 📄 File: app/shared/utils/logging.py

# 🧭 Purpose (Layman Explanation):
# This file sets up a smart logging system that records what happens in the app in a structured way,
# so operators can follow every subscription change and every background sweep.

# 🧪 Purpose (Technical Summary):
# Implements structured logging with JSON formatting, contextual information (request, correlation
# and job identifiers) and business-event helpers for application observability.

# 🔗 Dependencies:
# - python-json-logger: JSON log formatting
# - logging: Python standard logging
# - contextvars: Request and job context tracking
# - datetime: Timestamp handling

# 🔄 Connected Modules / Calls From:
# Used by: app.main (setup), lifecycle services (business events), scheduler (job context),
# unit of work (transaction failures), notification adapters

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from app.shared.config.settings import get_settings

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='')
job_name_var: ContextVar[str] = ContextVar('job_name', default='')

# Global logging configuration
_logging_configured = False
_loggers_cache: Dict[str, "StructuredLogger"] = {}

SERVICE_NAME = 'contributor-subscriptions'


def _attach_context(record: logging.LogRecord, hostname: str) -> None:
    record.request_id = request_id_var.get('')
    record.correlation_id = correlation_id_var.get('')
    record.job_name = job_name_var.get('')
    record.hostname = hostname
    record.service = SERVICE_NAME
    record.timestamp = datetime.now(timezone.utc).isoformat()

    if getattr(record, 'extra_fields', None):
        for key, value in record.extra_fields.items():
            setattr(record, key, value)


class ContextualFormatter(logging.Formatter):
    """
    Custom formatter that adds contextual information to log records.

    Adds request ID, correlation ID and the running job name to every
    log message for better traceability.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.hostname = os.uname().nodename if hasattr(os, 'uname') else 'unknown'

    def format(self, record):
        _attach_context(record, self.hostname)
        return super().format(record)


class JSONFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with consistent structure for
    log aggregation and analysis tools.
    """

    def __init__(self):
        super().__init__('%(timestamp)s %(levelname)s %(name)s %(message)s')
        self.hostname = os.uname().nodename if hasattr(os, 'uname') else 'unknown'

    def add_fields(self, log_record, record, message_dict):
        _attach_context(record, self.hostname)
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno
        log_record['service'] = SERVICE_NAME
        log_record['hostname'] = self.hostname

        for key in ('request_id', 'correlation_id', 'job_name'):
            if not log_record.get(key):
                log_record.pop(key, None)

        # extra_fields were already flattened onto the record
        log_record.pop('extra_fields', None)


class StructuredLogger:
    """
    Enhanced logger with structured logging capabilities.

    Provides methods for logging different types of events with
    consistent structure and contextual information.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, message: str, extra: Dict = None, **kwargs):
        """Log debug message with extra fields."""
        self._log(logging.DEBUG, message, extra, **kwargs)

    def info(self, message: str, extra: Dict = None, **kwargs):
        """Log info message with extra fields."""
        self._log(logging.INFO, message, extra, **kwargs)

    def warning(self, message: str, extra: Dict = None, **kwargs):
        """Log warning message with extra fields."""
        self._log(logging.WARNING, message, extra, **kwargs)

    def error(self, message: str, extra: Dict = None, exc_info: bool = False, **kwargs):
        """Log error message with extra fields."""
        self._log(logging.ERROR, message, extra, exc_info=exc_info, **kwargs)

    def critical(self, message: str, extra: Dict = None, exc_info: bool = False, **kwargs):
        """Log critical message with extra fields."""
        self._log(logging.CRITICAL, message, extra, exc_info=exc_info, **kwargs)

    def _log(self, level: int, message: str, extra: Dict = None, **kwargs):
        """Internal log method with extra fields handling."""
        extra_fields = dict(extra or {})

        # Add any additional kwargs as extra fields
        for key, value in kwargs.items():
            if key not in ['exc_info', 'stack_info', 'stacklevel']:
                extra_fields[key] = value

        # Remove extra fields from kwargs to avoid conflict
        clean_kwargs = {k: v for k, v in kwargs.items()
                        if k in ['exc_info', 'stack_info', 'stacklevel']}

        if extra_fields:
            clean_kwargs['extra'] = {'extra_fields': extra_fields}

        self.logger.log(level, message, **clean_kwargs)

    def log_business_event(
        self,
        event_type: str,
        description: str,
        entity_id: str = None,
        entity_type: str = None,
        extra: Dict = None
    ):
        """Log business events for analytics and audit."""
        extra_fields = {
            'event_type': 'business_event',
            'business_event_type': event_type,
            'description': description,
            **(extra or {})
        }

        if entity_id:
            extra_fields['entity_id'] = entity_id
        if entity_type:
            extra_fields['entity_type'] = entity_type

        self.info(description, extra=extra_fields)


def setup_logging(
    log_level: str = None,
    log_format: str = None,
    log_file: str = None,
    enable_console: bool = True
) -> logging.Logger:
    """
    Setup application logging configuration.

    Args:
        log_level: Logging level name, defaults to settings.LOG_LEVEL
        log_format: "json" or "text", defaults to settings.LOG_FORMAT
        log_file: Optional file path, defaults to settings.LOG_FILE
        enable_console: Whether to log to stdout

    Returns:
        logging.Logger: The "startup" logger
    """
    global _logging_configured

    if _logging_configured:
        return logging.getLogger("startup")

    settings = get_settings()
    log_level = log_level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT
    log_file = log_file or settings.LOG_FILE

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format.lower() == 'json':
        formatter = JSONFormatter()
    else:
        formatter = ContextualFormatter(
            '%(timestamp)s - %(name)s - %(levelname)s - [%(job_name)s] %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('celery').setLevel(logging.WARNING)

    _logging_configured = True
    return logging.getLogger("startup")


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        StructuredLogger instance
    """
    if name in _loggers_cache:
        return _loggers_cache[name]

    logger = StructuredLogger(name)
    _loggers_cache[name] = logger

    return logger


@contextmanager
def log_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    job_name: Optional[str] = None,
):
    """
    Context manager for adding contextual information to logs.

    Args:
        request_id: Request identifier (generated when omitted)
        correlation_id: Correlation identifier for distributed tracing
        job_name: Name of the scheduler job currently running
    """
    if request_id is None:
        request_id = str(uuid4())

    request_token = request_id_var.set(request_id)
    correlation_token = correlation_id_var.set(correlation_id or '')
    job_token = job_name_var.set(job_name or '')

    try:
        yield {
            'request_id': request_id,
            'correlation_id': correlation_id,
            'job_name': job_name,
        }
    finally:
        request_id_var.reset(request_token)
        correlation_id_var.reset(correlation_token)
        job_name_var.reset(job_token)


def log_startup_event(service_name: str, version: str, extra: Dict[str, Any] = None):
    """Log application startup."""
    get_logger('startup').log_business_event(
        'service_started',
        f"{service_name} v{version} started",
        extra=extra,
    )


def log_shutdown_event(service_name: str, extra: Dict[str, Any] = None):
    """Log application shutdown."""
    get_logger('startup').log_business_event(
        'service_stopped',
        f"{service_name} stopped",
        extra=extra,
    )
