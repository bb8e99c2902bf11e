"""
Business Logic Package

Business Package Components:
    Entity Validators (validators.py):
        - marshmallow schemas per administrative entity
        - validate_record entry point returning ValidationResult
    Business Data Models (models.py):
        - pydantic models for accepted records and their store representation
    Localization (localization.py):
        - en/pt message catalogs and LocalizationContext
    Field Linking (field_links.py, field_registry.py):
        - Linked fields map builder, cache and indicator
        - Static registry of linkable fields
    Utilities (utils.py):
        - Input cleaning, phone/email/date helpers
    Exceptions (exceptions.py):
        - Business exception hierarchy and Flask error handlers

Usage:
    from immigration_admin.business import validate_record, LocalizationContext

    result = validate_record('personCompany', form_data, LocalizationContext('pt'))
    if not result.is_valid:
        show_errors(result.errors)
"""

from .exceptions import (
    BaseBusinessException,
    ConfigurationError,
    DataProcessingError,
    DataValidationError,
    ErrorCategory,
    ErrorSeverity,
    ResourceNotFoundError
)
from .field_links import (
    LinkedDocIndicator,
    LinkedDocument,
    LinkedFieldsCache,
    LinkedFieldsMapBuilder
)
from .field_registry import FIELD_REGISTRY, get_entity_type_options, get_field_entry
from .localization import LocalizationContext
from .models import BUSINESS_MODEL_REGISTRY, EntityType, get_model_by_name
from .validators import VALIDATOR_REGISTRY, ValidationResult, get_validator, validate_record

__all__ = [
    'BaseBusinessException',
    'ConfigurationError',
    'DataProcessingError',
    'DataValidationError',
    'ErrorCategory',
    'ErrorSeverity',
    'ResourceNotFoundError',
    'LinkedDocIndicator',
    'LinkedDocument',
    'LinkedFieldsCache',
    'LinkedFieldsMapBuilder',
    'FIELD_REGISTRY',
    'get_entity_type_options',
    'get_field_entry',
    'LocalizationContext',
    'BUSINESS_MODEL_REGISTRY',
    'EntityType',
    'get_model_by_name',
    'VALIDATOR_REGISTRY',
    'ValidationResult',
    'get_validator',
    'validate_record',
]
