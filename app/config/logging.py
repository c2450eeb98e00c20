"""
Logging configuration for the dine-in coordination service.

Console output is plain, colored or JSON depending on LOG_FORMAT; with
LOG_TO_FILE set, JSON and error logs are also written to rotating files.
"""

import logging
import logging.config
import os
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from app.config.settings import Settings
from app.utils.datetime_utils import isoformat_utc, utcnow

_ROTATE_BYTES = 10 * 1024 * 1024
_ROTATE_KEEP = 10


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines with UTC timestamp, level, logger and request id"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=isoformat_utc(utcnow()),
            level=record.levelname,
            logger=record.name,
        )
        rid = getattr(record, 'request_id', None)
        if rid:
            log_record['request_id'] = rid

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            log_record['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': self.formatException(record.exc_info),
            }


def _rotating_file(path: str, level: str, formatter: str) -> Dict[str, Any]:
    return {
        'class': 'logging.handlers.RotatingFileHandler',
        'level': level,
        'filename': path,
        'maxBytes': _ROTATE_BYTES,
        'backupCount': _ROTATE_KEEP,
        'formatter': formatter,
        'filters': ['request_context'],
        'encoding': 'utf-8',
    }


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Create the dictConfig mapping for the given settings."""
    console_formatter = settings.LOG_FORMAT if settings.LOG_FORMAT in ('standard', 'colored', 'json') else 'standard'
    level = settings.LOG_LEVEL.upper()

    config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'filters': {
            'request_context': {
                '()': 'app.core.logging.RequestContextFilter',
            },
        },
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
            },
            'json': {
                '()': CustomJsonFormatter,
                'fmt': '%(timestamp)s %(level)s %(logger)s %(message)s',
                'static_fields': {'environment': settings.ENVIRONMENT},
            },
            'colored': {
                '()': 'colorlog.ColoredFormatter',
                'fmt': '%(log_color)s%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'log_colors': {
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            }
        },
        'handlers': {
            'console': {
                'level': 'DEBUG' if settings.DEBUG else level,
                'class': 'logging.StreamHandler',
                'formatter': console_formatter,
                'filters': ['request_context'],
            },
        },
        'loggers': {
            '': {  # Root logger
                'handlers': ['console'],
                'level': level,
            },
            'sqlalchemy.engine': {
                'level': 'INFO' if settings.DATABASE_ECHO else 'WARNING',
                'propagate': True,
            },
            'httpx': {
                'level': 'WARNING',
                'propagate': True,
            },
            'uvicorn': {  # Uvicorn logger
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False,
            },
            'uvicorn.access': {  # Request lines are logged by TimingMiddleware
                'level': 'WARNING',
                'propagate': True,
            },
        }
    }

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        config['handlers']['file'] = _rotating_file(os.path.join(settings.LOG_DIR, 'app.log'), 'INFO', 'json')
        config['handlers']['error_file'] = _rotating_file(os.path.join(settings.LOG_DIR, 'error.log'), 'ERROR', 'standard')
        config['loggers']['']['handlers'] += ['file', 'error_file']

    return config


def setup_logging(settings: Settings) -> None:
    """Apply the logging configuration"""
    logging.config.dictConfig(build_logging_config(settings))
    logging.getLogger(__name__).info(
        "Logging configured",
        extra={'log_level': settings.LOG_LEVEL, 'log_format': settings.LOG_FORMAT},
    )
