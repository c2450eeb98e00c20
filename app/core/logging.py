"""
Logging Utilities

Request-id propagation, a logger adapter that merges its fields into
``extra``, and the execution-time decorator the services use.
"""

import logging
import time
from contextvars import ContextVar
from functools import wraps
from typing import Any, Dict, Optional

# Request id of the HTTP call being served, set by RequestIDMiddleware
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


class RequestContextFilter(logging.Filter):
    """Attach the current request id to every log record"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, 'request_id', None):
            record.request_id = request_id.get()
        return True


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter whose bound fields are merged into each call's ``extra``
    instead of replacing it.
    """

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(fields or {}))

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **(kwargs.get('extra') or {})}
        return msg, kwargs


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """Logger for ``name`` (the ``app`` logger when omitted)."""
    return LoggerAdapter(logging.getLogger(name or 'app'))


def log_execution_time(operation_name: Optional[str] = None):
    """
    Log how long the wrapped service call took.

    Success is logged at DEBUG, failure at WARNING with the exception
    type; the exception itself is re-raised untouched.
    """
    def decorator(func):
        logger = get_logger(func.__module__)
        name = operation_name or func.__name__

        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                logger.warning(
                    f"Operation '{name}' failed after {elapsed:.3f}s",
                    extra={'operation': name, 'execution_time': elapsed, 'error_type': type(e).__name__},
                )
                raise
            elapsed = time.perf_counter() - started
            logger.debug(
                f"Operation '{name}' completed in {elapsed:.3f}s",
                extra={'operation': name, 'execution_time': elapsed},
            )
            return result

        return wrapper

    return decorator


__all__ = [
    'get_logger',
    'log_execution_time',
    'LoggerAdapter',
    'RequestContextFilter',
    'request_id',
]
