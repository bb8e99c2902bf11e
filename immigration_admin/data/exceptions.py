"""
Database Exception Handling and Error Management

This module implements the exception hierarchy for document store access,
PyMongo error classification, retry with exponential backoff for transient
connection failures (tenacity) and a circuit breaker around store calls
(pybreaker). Database errors are counted through prometheus_client and logged
through structlog.

Classes:
    DatabaseException: Base class for document store failures
    ConnectionException: Network and server selection failures
    TimeoutException: Query and network timeouts
    QueryException: Invalid queries, identifiers and write errors
    CircuitBreakerException: Store calls blocked by an open circuit
"""

import time
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, Type

import pybreaker
import pymongo.errors
import structlog
from flask import jsonify
from prometheus_client import Counter
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential
)

logger = structlog.get_logger("data.exceptions")

database_errors_total = Counter(
    'immigration_admin_database_errors_total',
    'Total document store errors by type and operation',
    ['error_type', 'operation']
)

database_retry_attempts = Counter(
    'immigration_admin_database_retry_attempts_total',
    'Total document store retry attempts',
    ['operation']
)


class DatabaseErrorSeverity(Enum):
    """Database error severity levels for monitoring and alerting"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DatabaseOperationType(Enum):
    READ = "read"
    WRITE = "write"
    CONNECTION = "connection"


class DatabaseErrorCategory(Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    QUERY = "query"
    UNKNOWN = "unknown"


# ============================================================================
# EXCEPTION HIERARCHY
# ============================================================================

class DatabaseException(Exception):
    """
    Base exception class for all document store errors.

    Provides structured error information (severity, category, operation and
    collection) and emits a metric and a structured log entry on creation.
    """

    def __init__(
        self,
        message: str,
        severity: DatabaseErrorSeverity = DatabaseErrorSeverity.MEDIUM,
        category: DatabaseErrorCategory = DatabaseErrorCategory.UNKNOWN,
        operation: Optional[DatabaseOperationType] = None,
        database: Optional[str] = None,
        collection: Optional[str] = None,
        original_error: Optional[Exception] = None,
        retry_recommended: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.category = category
        self.operation = operation
        self.database = database
        self.collection = collection
        self.original_error = original_error
        self.retry_recommended = retry_recommended
        self.timestamp = datetime.now(timezone.utc)

        database_errors_total.labels(
            error_type=self.__class__.__name__,
            operation=operation.value if operation else "unknown"
        ).inc()

        logger.error(
            "Database exception occurred",
            error_type=self.__class__.__name__,
            message=message,
            severity=severity.value,
            category=category.value,
            operation=operation.value if operation else None,
            database=database,
            collection=collection,
            original_error=str(original_error) if original_error else None
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "operation": self.operation.value if self.operation else None,
            "collection": self.collection,
            "retry_recommended": self.retry_recommended,
            "timestamp": self.timestamp.isoformat(),
        }


class ConnectionException(DatabaseException):
    """Exception for document store connection failures."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', DatabaseErrorSeverity.HIGH)
        kwargs.setdefault('category', DatabaseErrorCategory.NETWORK)
        kwargs.setdefault('retry_recommended', True)
        super().__init__(message, **kwargs)


class TimeoutException(DatabaseException):

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', DatabaseErrorSeverity.MEDIUM)
        kwargs.setdefault('category', DatabaseErrorCategory.TIMEOUT)
        kwargs.setdefault('retry_recommended', True)
        super().__init__(message, **kwargs)


class QueryException(DatabaseException):
    """
    Exception for query execution failures.

    Covers invalid filters, malformed document identifiers, write errors and
    duplicate keys. Not retried.
    """

    def __init__(self, message: str, query: Optional[Dict] = None, **kwargs):
        kwargs.setdefault('severity', DatabaseErrorSeverity.MEDIUM)
        kwargs.setdefault('category', DatabaseErrorCategory.QUERY)
        kwargs.setdefault('retry_recommended', False)
        self.query = query
        super().__init__(message, **kwargs)


class CircuitBreakerException(DatabaseException):
    """Exception raised while the store circuit breaker is open."""

    def __init__(self, message: str, circuit_name: str, **kwargs):
        kwargs.setdefault('severity', DatabaseErrorSeverity.HIGH)
        kwargs.setdefault('retry_recommended', False)
        self.circuit_name = circuit_name
        super().__init__(message, **kwargs)


# ============================================================================
# PYMONGO ERROR CLASSIFICATION
# ============================================================================

# Most specific PyMongo classes first; lookup walks the error's MRO
PYMONGO_ERROR_MAPPING: Dict[Type[Exception], Type[DatabaseException]] = {
    pymongo.errors.NetworkTimeout: TimeoutException,
    pymongo.errors.ExecutionTimeout: TimeoutException,
    pymongo.errors.ServerSelectionTimeoutError: ConnectionException,
    pymongo.errors.AutoReconnect: ConnectionException,
    pymongo.errors.ConnectionFailure: ConnectionException,
    pymongo.errors.DuplicateKeyError: QueryException,
    pymongo.errors.WriteError: QueryException,
    pymongo.errors.OperationFailure: QueryException,
    pymongo.errors.InvalidOperation: QueryException,
    pymongo.errors.PyMongoError: DatabaseException,
}

# Transient PyMongo failures worth retrying
RETRYABLE_PYMONGO_ERRORS = (
    pymongo.errors.AutoReconnect,
    pymongo.errors.ConnectionFailure,
)


def classify_pymongo_error(error: Exception) -> Type[DatabaseException]:
    """
    Classify a PyMongo error into the matching custom exception type.

    Args:
        error: The original PyMongo exception

    Returns:
        Custom exception class for the nearest mapped PyMongo class
    """
    for klass in type(error).__mro__:
        if klass in PYMONGO_ERROR_MAPPING:
            return PYMONGO_ERROR_MAPPING[klass]
    return DatabaseException


def handle_database_error(
    error: Exception,
    operation: DatabaseOperationType,
    database: Optional[str] = None,
    collection: Optional[str] = None
) -> DatabaseException:
    """
    Convert an arbitrary error raised by the driver into a DatabaseException.

    Args:
        error: The original exception
        operation: Type of database operation
        database: Database name
        collection: Collection name (optional)

    Returns:
        Appropriate custom database exception (not raised)
    """
    if isinstance(error, DatabaseException):
        return error

    exception_class = classify_pymongo_error(error)
    return exception_class(
        f"Database operation failed: {error}",
        operation=operation,
        database=database,
        collection=collection,
        original_error=error
    )


# ============================================================================
# CIRCUIT BREAKER
# ============================================================================

class _CircuitStateLogger(pybreaker.CircuitBreakerListener):
    """Log circuit breaker state transitions."""

    def state_change(self, cb, old_state, new_state):
        logger.warning(
            "Database circuit breaker state changed",
            circuit_name=cb.name,
            old_state=old_state.name if old_state else None,
            new_state=new_state.name
        )


class DatabaseCircuitBreaker:
    """
    Circuit breaker for document store operations.

    Query errors (bad filters, invalid identifiers) do not count as failures;
    only connection level problems open the circuit.
    """

    def __init__(self, name: str, failure_threshold: int = 5, reset_timeout: int = 60):
        self.name = name
        self.circuit_breaker = pybreaker.CircuitBreaker(
            fail_max=failure_threshold,
            reset_timeout=reset_timeout,
            exclude=[QueryException],
            listeners=[_CircuitStateLogger()],
            name=name
        )

    @property
    def current_state(self) -> str:
        return self.circuit_breaker.current_state

    def __call__(self, func: Callable) -> Callable:
        """Decorator to apply circuit breaker to function"""
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return self.circuit_breaker.call(func, *args, **kwargs)
            except pybreaker.CircuitBreakerError as e:
                raise CircuitBreakerException(
                    f"Circuit breaker '{self.name}' is open: {e}",
                    circuit_name=self.name
                )
        return wrapper


mongodb_circuit_breaker = DatabaseCircuitBreaker("mongodb", failure_threshold=5, reset_timeout=60)


# ============================================================================
# RETRY WITH EXPONENTIAL BACKOFF
# ============================================================================

class DatabaseRetryConfig:
    """Configuration for database operation retry logic"""

    def __init__(self, max_attempts: int = 3, min_wait: float = 0.5,
                 max_wait: float = 5.0, multiplier: float = 2.0):
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self.multiplier = multiplier


READ_RETRY_CONFIG = DatabaseRetryConfig(max_attempts=3, min_wait=0.5, max_wait=5.0)
WRITE_RETRY_CONFIG = DatabaseRetryConfig(max_attempts=2, min_wait=1.0, max_wait=8.0)


def with_database_retry(
    operation_type: DatabaseOperationType = DatabaseOperationType.READ,
    custom_config: Optional[DatabaseRetryConfig] = None
) -> Callable:
    """
    Decorator adding retry and error conversion to a store operation.

    Transient PyMongo connection errors are retried with exponential
    backoff. Whatever PyMongo error remains is converted through
    ``handle_database_error``. The decorated function must take the
    collection name as its first argument after ``self``.

    Args:
        operation_type: Type of database operation, selects the retry config
        custom_config: Custom retry configuration if provided
    """
    if custom_config:
        config = custom_config
    elif operation_type == DatabaseOperationType.WRITE:
        config = WRITE_RETRY_CONFIG
    else:
        config = READ_RETRY_CONFIG

    def before_sleep(retry_state):
        database_retry_attempts.labels(operation=operation_type.value).inc()
        logger.warning(
            "Database operation retry attempt",
            attempt=retry_state.attempt_number,
            max_attempts=config.max_attempts,
            exception_type=type(retry_state.outcome.exception()).__name__
        )

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, collection_name, *args, **kwargs):
            start_time = time.perf_counter()
            retrying = Retrying(
                stop=stop_after_attempt(config.max_attempts),
                wait=wait_exponential(
                    multiplier=config.multiplier,
                    min=config.min_wait,
                    max=config.max_wait
                ),
                retry=retry_if_exception_type(RETRYABLE_PYMONGO_ERRORS),
                before_sleep=before_sleep,
                reraise=True
            )
            try:
                for attempt in retrying:
                    with attempt:
                        return func(self, collection_name, *args, **kwargs)
            except pymongo.errors.PyMongoError as e:
                raise handle_database_error(
                    e,
                    operation_type,
                    getattr(self, 'database_name', None),
                    collection_name
                )
            finally:
                logger.debug(
                    "Database operation finished",
                    operation=func.__name__,
                    collection=collection_name,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2)
                )
        return wrapper
    return decorator


# ============================================================================
# FLASK INTEGRATION
# ============================================================================

def register_database_error_handlers(app):
    """
    Register Flask error handlers for database exceptions.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(DatabaseException)
    def handle_database_exception(error: DatabaseException):
        response_data = {
            "error": {
                "type": "database_error",
                "message": "The document store is unavailable. Please try again later.",
                "code": error.__class__.__name__,
                "severity": error.severity.value,
                "retry_recommended": error.retry_recommended,
                "timestamp": error.timestamp.isoformat()
            }
        }

        if isinstance(error, QueryException):
            status_code = 400
            response_data["error"]["message"] = "The document store rejected the query."
        else:
            status_code = 503

        return jsonify(response_data), status_code


__all__ = [
    'DatabaseException',
    'ConnectionException',
    'TimeoutException',
    'QueryException',
    'CircuitBreakerException',
    'DatabaseErrorSeverity',
    'DatabaseOperationType',
    'DatabaseErrorCategory',
    'PYMONGO_ERROR_MAPPING',
    'classify_pymongo_error',
    'handle_database_error',
    'DatabaseCircuitBreaker',
    'mongodb_circuit_breaker',
    'DatabaseRetryConfig',
    'with_database_retry',
    'register_database_error_handlers',
]
