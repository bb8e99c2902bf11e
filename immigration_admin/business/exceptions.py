"""
Business Exception Classes for the Immigration Admin Validation Service

This module provides the exception hierarchy used by the validation layer, the
field-linking lookup and the Flask API. Expected invalid user input is never
raised from a validator; it is returned as structured data. The exceptions
below cover the cases where a caller explicitly asks for an exception
(``ValidationResult.raise_for_errors``), where a resource cannot be found, or
where the validator definitions themselves are misconfigured.

The exception hierarchy follows these patterns:
- Error categorisation by severity and category for log filtering
- Security-conscious error messaging (credentials and connection strings
  are redacted before they reach a client)
- Structured logging on construction through structlog
- Flask error handler integration producing a uniform JSON error body

Classes:
    BaseBusinessException: Base class for all business exceptions
    DataProcessingError: Input sanitation or transformation failures
    DataValidationError: Field-level validation failures raised on request
    ResourceNotFoundError: Unknown entity type or missing stored record
    ConfigurationError: Invalid application or validator configuration
"""

import re
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import structlog
from flask import has_request_context, jsonify, request
from werkzeug.exceptions import HTTPException

logger = structlog.get_logger("business.exceptions")


class ErrorSeverity(Enum):
    """
    Error severity classification for business exceptions.

    Provides standardized severity levels so that log processing can route
    exceptions to the right alerting threshold.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error category classification for business exception types."""
    DATA_PROCESSING = "data_processing"
    DATA_VALIDATION = "data_validation"
    RESOURCE_ACCESS = "resource_access"
    CONFIGURATION = "configuration"


_SENSITIVE_MESSAGE_PATTERNS = [
    r"password\s*[:=]\s*['\"][^'\"]*['\"]",
    r"token\s*[:=]\s*['\"][^'\"]*['\"]",
    r"secret\s*[:=]\s*['\"][^'\"]*['\"]",
    r"mongodb(\+srv)?://[^/\s]*",
    r"Bearer\s+[A-Za-z0-9\-_]*",
]

_SENSITIVE_CONTEXT_KEYS = {
    'password', 'token', 'secret', 'auth', 'credential', 'cpf', 'passport_number'
}


class BaseBusinessException(Exception):
    """
    Base exception class for all business failures.

    Provides sanitised messaging, context filtering, a structured log entry
    emitted on construction and conversion helpers for JSON responses.

    Example:
        try:
            result = validate_record('company', form_data)
            result.raise_for_errors()
        except BaseBusinessException as e:
            return e.to_flask_response()
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        http_status_code: int = 400,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.DATA_VALIDATION,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ) -> None:
        """
        Initialize base business exception with error context.

        Args:
            message: User-facing error message (will be sanitized)
            error_code: Unique error identifier for client handling
            http_status_code: HTTP status code for the JSON response
            severity: Error severity level for log routing
            category: Error category for classification
            context: Additional error context (sensitive keys redacted)
            cause: Original exception that caused this business exception
        """
        super().__init__(message)

        self.message = self._sanitize_message(message)
        self.error_code = error_code
        self.http_status_code = http_status_code
        self.severity = severity
        self.category = category
        self.context = self._filter_sensitive_context(context or {})
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        self.request_id = self._get_request_id()

        self._log_exception()

    def _sanitize_message(self, message: str) -> str:
        """
        Sanitize error message to prevent information disclosure.

        Args:
            message: Raw error message potentially containing sensitive data

        Returns:
            Sanitized error message safe for client exposure
        """
        sanitized = message
        for pattern in _SENSITIVE_MESSAGE_PATTERNS:
            sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

        max_length = 500
        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length] + "... [TRUNCATED]"

        return sanitized

    def _filter_sensitive_context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Redact sensitive keys and truncate oversized values in error context."""
        filtered_context = {}
        for key, value in context.items():
            key_lower = key.lower()

            if any(sensitive_key in key_lower for sensitive_key in _SENSITIVE_CONTEXT_KEYS):
                filtered_context[key] = "[REDACTED]"
            elif isinstance(value, str) and len(value) > 100:
                filtered_context[key] = value[:100] + "... [TRUNCATED]"
            elif isinstance(value, dict):
                filtered_context[key] = self._filter_sensitive_context(value)
            else:
                filtered_context[key] = value

        return filtered_context

    def _get_request_id(self) -> Optional[str]:
        """Extract the correlation id from the active Flask request, if any."""
        if not has_request_context():
            return None
        return (request.headers.get('X-Request-ID') or
                request.headers.get('X-Correlation-ID'))

    def _log_exception(self) -> None:
        """Emit a structured log entry with a level derived from severity."""
        log_data = {
            'event_type': 'business_exception',
            'exception_class': self.__class__.__name__,
            'error_code': self.error_code,
            'severity': self.severity.value,
            'category': self.category.value,
            'http_status_code': self.http_status_code,
            'request_id': self.request_id,
            'context': self.context,
        }

        if self.cause is not None:
            log_data['cause_exception'] = {
                'type': type(self.cause).__name__,
                'message': str(self.cause),
                'traceback': traceback.format_exception(
                    type(self.cause), self.cause, self.cause.__traceback__
                )[-3:]
            }

        if self.severity in (ErrorSeverity.CRITICAL, ErrorSeverity.HIGH):
            logger.error("Business exception occurred", **log_data)
        elif self.severity == ErrorSeverity.MEDIUM:
            logger.warning("Business exception occurred", **log_data)
        else:
            logger.info("Business exception occurred", **log_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary representation safe for client exposure
        """
        return {
            'error': {
                'message': self.message,
                'code': self.error_code,
                'severity': self.severity.value,
                'category': self.category.value,
                'timestamp': self.timestamp.isoformat(),
                'request_id': self.request_id,
                'context': self.context,
            }
        }

    def to_flask_response(self) -> tuple:
        """
        Convert exception to Flask JSON response tuple.

        Returns:
            Tuple of (JSON response, HTTP status code)
        """
        return jsonify(self.to_dict()), self.http_status_code


class DataProcessingError(BaseBusinessException):
    """
    Exception for input sanitation and transformation failures.

    Raised when incoming data cannot be processed at all, for example when a
    validator receives something that is not a mapping. Field-level problems
    are not processing errors; they are reported through ``ValidationResult``.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        processing_stage: Optional[str] = None,
        data_type: Optional[str] = None,
        **kwargs
    ) -> None:
        """
        Initialize data processing exception.

        Args:
            message: User-facing error message describing processing failure
            error_code: Unique error identifier for client handling
            processing_stage: Stage where the failure occurred
            data_type: Type of data being processed when failure occurred
            **kwargs: Additional arguments passed to BaseBusinessException
        """
        kwargs.setdefault('http_status_code', 400)
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)
        kwargs.setdefault('category', ErrorCategory.DATA_PROCESSING)

        context = kwargs.get('context', {})
        if processing_stage:
            context['processing_stage'] = processing_stage
        if data_type:
            context['data_type'] = data_type
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)

        self.processing_stage = processing_stage
        self.data_type = data_type


class DataValidationError(BaseBusinessException):
    """
    Exception for field-level validation failures.

    Only raised when a caller opts in, e.g. through
    ``ValidationResult.raise_for_errors()``. Carries the same field path to
    message mapping that the validator returned.

    Example:
        result = validate_record('cboCode', {'code': '25-2105', 'title': 'Analyst'})
        if not result.is_valid:
            raise DataValidationError(
                message="CBO code validation failed",
                error_code="CBO_CODE_VALIDATION_FAILED",
                field_errors=result.errors
            )
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs
    ) -> None:
        """
        Initialize data validation exception.

        Args:
            message: User-facing error message describing validation failure
            error_code: Unique error identifier for client handling
            field_errors: Field path to ordered error messages
            **kwargs: Additional arguments passed to BaseBusinessException
        """
        kwargs.setdefault('http_status_code', 422)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        kwargs.setdefault('category', ErrorCategory.DATA_VALIDATION)

        context = kwargs.get('context', {})
        if field_errors:
            context['field_errors'] = field_errors
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)

        self.field_errors = field_errors or {}


class ResourceNotFoundError(BaseBusinessException):
    """
    Exception for unknown entity types and missing stored records.

    Example:
        process = store.find_one_by_id('individualProcesses', process_id)
        if process is None:
            raise ResourceNotFoundError(
                message="Individual process not found",
                error_code="INDIVIDUAL_PROCESS_NOT_FOUND",
                resource_type="individualProcess",
                resource_id=process_id
            )
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[Union[str, int]] = None,
        **kwargs
    ) -> None:
        """
        Initialize resource not found exception.

        Args:
            message: User-facing error message describing the missing resource
            error_code: Unique error identifier for client handling
            resource_type: Type of resource that was not found
            resource_id: Identifier of the resource that was not found
            **kwargs: Additional arguments passed to BaseBusinessException
        """
        kwargs.setdefault('http_status_code', 404)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        kwargs.setdefault('category', ErrorCategory.RESOURCE_ACCESS)

        context = kwargs.get('context', {})
        if resource_type:
            context['resource_type'] = resource_type
        if resource_id is not None:
            context['resource_id'] = str(resource_id)
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)

        self.resource_type = resource_type
        self.resource_id = resource_id


class ConfigurationError(BaseBusinessException):
    """
    Exception for application and validator configuration failures.

    A configuration error indicates a programming defect (for example asking
    for a validator that was never registered) rather than bad user input.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        config_key: Optional[str] = None,
        **kwargs
    ) -> None:
        """
        Initialize configuration exception.

        Args:
            message: Error message describing the configuration failure
            error_code: Unique error identifier
            config_key: Configuration key or registry name that is invalid
            **kwargs: Additional arguments passed to BaseBusinessException
        """
        kwargs.setdefault('http_status_code', 500)
        kwargs.setdefault('severity', ErrorSeverity.CRITICAL)
        kwargs.setdefault('category', ErrorCategory.CONFIGURATION)

        context = kwargs.get('context', {})
        if config_key:
            context['config_key'] = config_key
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)

        self.config_key = config_key


BUSINESS_EXCEPTION_REGISTRY = {
    BaseBusinessException: 'base_business_exception',
    DataProcessingError: 'data_processing_error',
    DataValidationError: 'data_validation_error',
    ResourceNotFoundError: 'resource_not_found',
    ConfigurationError: 'configuration_error',
}


def create_flask_error_handlers(app) -> None:
    """
    Register Flask error handlers for business exceptions.

    Every ``BaseBusinessException`` is rendered through ``to_flask_response``.
    Werkzeug HTTP errors keep their status code but use the same JSON body
    shape; anything else becomes a 500 ``INTERNAL_ERROR``.

    Args:
        app: Flask application instance for error handler registration
    """

    def handle_business_exception(error: BaseBusinessException):
        return error.to_flask_response()

    for exception_class in BUSINESS_EXCEPTION_REGISTRY:
        app.errorhandler(exception_class)(handle_business_exception)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        body = {
            'error': {
                'message': error.description,
                'code': (error.name or 'HTTP_ERROR').upper().replace(' ', '_'),
                'timestamp': datetime.now(timezone.utc).isoformat(),
            }
        }
        return jsonify(body), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_exception(error: Exception):
        business_error = BaseBusinessException(
            message="An unexpected error occurred. Please try again later.",
            error_code="INTERNAL_ERROR",
            http_status_code=500,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            cause=error,
            context={'unexpected_error': True}
        )
        return handle_business_exception(business_error)


__all__ = [
    'ErrorSeverity',
    'ErrorCategory',
    'BaseBusinessException',
    'DataProcessingError',
    'DataValidationError',
    'ResourceNotFoundError',
    'ConfigurationError',
    'BUSINESS_EXCEPTION_REGISTRY',
    'create_flask_error_handlers',
]
