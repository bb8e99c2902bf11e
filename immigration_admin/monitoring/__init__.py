"""Structured logging and Prometheus metrics."""

from .logging import init_request_logging, setup_structured_logging
from .metrics import metrics_response, record_linked_fields_lookup, record_validation

__all__ = [
    'init_request_logging',
    'setup_structured_logging',
    'metrics_response',
    'record_linked_fields_lookup',
    'record_validation',
]
