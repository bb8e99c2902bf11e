"""
Structured Logging Implementation using structlog

This module configures structlog on top of the standard library ``logging``
module and provides request correlation for the Flask API.

Key Features:
- JSON log formatting for log aggregation, or a console renderer for local use
- Correlation ID tracking taken from ``X-Correlation-ID`` / ``X-Request-ID``
  request headers, or generated per request
- Request start/completion logging with duration

Modules obtain loggers with ``structlog.get_logger("<area>.<module>")``; the
processors configured here add timestamp, level, logger name and correlation
id to every entry.
"""

import logging
import logging.config
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

import structlog
from flask import Flask, g, request

correlation_id_context: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
request_start_time_context: ContextVar[Optional[float]] = ContextVar('request_start_time', default=None)

CORRELATION_HEADER = 'X-Correlation-ID'

VALID_LOG_FORMATS = ('json', 'console')


class CorrelationManager:
    """Correlation ID management for request tracking."""

    @staticmethod
    def generate_correlation_id() -> str:
        return uuid.uuid4().hex

    def set_correlation_id(self, correlation_id: Optional[str] = None) -> str:
        """
        Set correlation ID in context, generating one if not provided.

        Returns:
            The correlation ID that was set
        """
        if correlation_id is None:
            correlation_id = self.generate_correlation_id()
        correlation_id_context.set(correlation_id)
        return correlation_id

    @staticmethod
    def get_correlation_id() -> Optional[str]:
        return correlation_id_context.get()

    @staticmethod
    def clear_correlation_id() -> None:
        correlation_id_context.set(None)


def create_correlation_processor() -> Callable:
    """
    Create structlog processor for correlation ID enrichment.

    Returns:
        Processor function for structlog
    """

    def processor(logger, method_name, event_dict):
        correlation_id = correlation_id_context.get()
        if correlation_id:
            event_dict.setdefault('correlation_id', correlation_id)
        return event_dict

    return processor


def setup_structured_logging(level: str = 'INFO', log_format: str = 'json') -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and the standard library root logger.

    Args:
        level: Log level name, e.g. 'INFO' or 'DEBUG'
        log_format: 'json' for aggregation-friendly output, 'console' for humans

    Returns:
        Application logger
    """
    level = (level or 'INFO').upper()
    if log_format not in VALID_LOG_FORMATS:
        log_format = 'json'

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        create_correlation_processor(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {'format': '%(message)s'},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': level,
        },
    })

    logger = structlog.get_logger("immigration_admin")
    logger.info("Structured logging initialized", log_level=level, log_format=log_format)
    return logger


def init_request_logging(app: Flask) -> None:
    """
    Register request logging hooks with correlation ID propagation.

    Args:
        app: Flask application instance
    """
    logger = structlog.get_logger("monitoring.requests")
    correlation_manager = CorrelationManager()

    @app.before_request
    def before_request():
        correlation_id = correlation_manager.set_correlation_id(
            request.headers.get(CORRELATION_HEADER) or request.headers.get('X-Request-ID')
        )
        g.correlation_id = correlation_id
        request_start_time_context.set(time.perf_counter())

        logger.info("Request started",
                    event_type="request_start",
                    method=request.method,
                    path=request.path,
                    endpoint=request.endpoint)

    @app.after_request
    def after_request(response):
        start_time = request_start_time_context.get()
        duration_ms = (time.perf_counter() - start_time) * 1000 if start_time else 0.0

        logger.info("Request completed",
                    event_type="request_end",
                    method=request.method,
                    path=request.path,
                    endpoint=request.endpoint,
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2))

        correlation_id = correlation_manager.get_correlation_id()
        if correlation_id:
            response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.teardown_request
    def teardown_request(exc):
        correlation_manager.clear_correlation_id()
        request_start_time_context.set(None)


__all__ = [
    'CorrelationManager',
    'CORRELATION_HEADER',
    'create_correlation_processor',
    'setup_structured_logging',
    'init_request_logging',
]
