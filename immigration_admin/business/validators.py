"""
Entity Validation Engine for the Immigration Admin Dashboard

This module provides the marshmallow 3.20+ schemas that validate form input
for each administrative entity, the reusable field types they are built from
and the ``validate_record`` entry point that turns a load into a structured
``ValidationResult``.

Validation flow:
    Form Input -> clean_data (strip strings) -> per-field rules ->
    cross-field rules -> ValidationResult (typed record or field errors)

Expected invalid input never raises. Errors are returned as a mapping of
field path to an ordered list of messages; a record is valid iff that mapping
is empty. Field paths are the camelCase form field names, or a dotted index
path for list items (``fillableFields.2``).

Validation Categories:
    Field Types:
        BlankableString: Empty string is treated as "not provided"
        BlankableDate, BlankableInteger, BlankableEnum, BlankableBoolean:
            Same, for other types
        EntityReference: Opaque identifier of another record
        PhoneField: International phone number
        EmailField: Email address, normalised
        OptionalUrl: Absolute URL
        NormalizedCode: Code field with case/whitespace normalisation

    Schema Validators:
        CityValidator, QuickCityValidator, ConsulateValidator,
        CboCodeValidator, CompanyValidator, PersonCompanyValidator,
        LegalFrameworkInfoRequirementValidator, PassportValidator,
        DocumentCategoryValidator, EconomicActivityValidator,
        CaseStatusValidator

    Entry Points:
        validate_record: Validate a mapping for an entity type
        get_validator: Registry lookup raising ConfigurationError
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

import structlog
from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    missing,
    pre_load,
    validate,
    validates_schema
)

from .exceptions import ConfigurationError, DataValidationError, ErrorSeverity
from .field_registry import INDIVIDUAL_PROCESS_FILLABLE_FIELDS
from .localization import LocalizationContext
from .models import (
    BUSINESS_MODEL_REGISTRY,
    BaseBusinessModel,
    CaseStatusCategory,
    EntityType,
    ResponsibleParty
)
from .utils import (
    clean_data,
    generate_category_code_from_name,
    is_blank,
    validate_email,
    validate_phone
)

logger = structlog.get_logger("business.validators")


# ============================================================================
# FIELD TYPES
# ============================================================================

class BlankToNoneMixin:
    """
    Treat empty and whitespace-only strings as "not provided".

    Optional fields turn a blank value into ``None`` and skip their
    validators. Required fields reject it with their ``null`` message, so a
    blank required field reports the same message as a missing one.
    """

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('allow_none', not kwargs.get('required', False))
        super().__init__(*args, **kwargs)

    def deserialize(self, value, attr=None, data=None, **kwargs):
        if is_blank(value):
            value = None
        return super().deserialize(value, attr, data, **kwargs)


class BlankableString(BlankToNoneMixin, fields.String):
    pass


class BlankableDate(BlankToNoneMixin, fields.Date):
    """ISO 8601 date (``YYYY-MM-DD``)."""

    default_error_messages = {'invalid': "Invalid date"}


class BlankableInteger(BlankToNoneMixin, fields.Integer):
    pass


class BlankableEnum(BlankToNoneMixin, fields.Enum):
    pass


class BlankableBoolean(BlankToNoneMixin, fields.Boolean):
    """Optional boolean; a blank value falls back to the field's load default when it has one."""

    def deserialize(self, value, attr=None, data=None, **kwargs):
        if is_blank(value) and not self.required and self.load_default is not missing:
            value = self.load_default() if callable(self.load_default) else self.load_default
        return super().deserialize(value, attr, data, **kwargs)


class EntityReference(BlankableString):
    """
    Opaque identifier of another record.

    Only shape is checked (a non-empty string); existence of the referenced
    record is never verified here.
    """


class PhoneField(BlankableString):
    """International phone number in "+<country code> <number>" form."""

    def _deserialize(self, value, attr, data, **kwargs):
        phone = super()._deserialize(value, attr, data, **kwargs)
        try:
            validate_phone(phone)
        except DataValidationError as e:
            raise ValidationError(e.message) from e
        return phone


class EmailField(BlankableString):
    """Email address; the normalised form is returned."""

    def _deserialize(self, value, attr, data, **kwargs):
        email = super()._deserialize(value, attr, data, **kwargs)
        try:
            return validate_email(email)
        except DataValidationError as e:
            raise ValidationError(e.message) from e


class OptionalUrl(BlankToNoneMixin, fields.Url):
    default_error_messages = {'invalid': "Invalid URL format"}


class NormalizedCode(BlankableString):
    """
    Code field normalised before its validators run.

    Args:
        case: 'upper' or 'lower'
        spaces_to_underscores: Replace whitespace runs with '_'
    """

    def __init__(self, case: str = 'upper', spaces_to_underscores: bool = False, **kwargs):
        self.case = case
        self.spaces_to_underscores = spaces_to_underscores
        super().__init__(**kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        code = super()._deserialize(value, attr, data, **kwargs).strip()
        if self.spaces_to_underscores:
            code = '_'.join(code.split())
        return code.upper() if self.case == 'upper' else code.lower()


def required_message(message: str) -> Dict[str, str]:
    """Error messages making a missing, null and blank value report ``message``."""
    return {'required': message, 'null': message}


def enum_messages(message: str) -> Dict[str, str]:
    """Error messages making every enum membership failure report ``message``."""
    return {'required': message, 'null': message, 'unknown': message}


# ============================================================================
# CROSS-FIELD RULES AND BASE SCHEMA
# ============================================================================

@dataclass(frozen=True)
class CrossFieldRule:
    """
    A constraint over several fields of a loaded record.

    ``predicate`` receives the loaded data (attribute names as keys) and
    returns True when the rule holds. Fields that failed their own validation
    are absent from that data, so predicates must hold whenever a value they
    read is missing. A failure is reported at ``field``.
    """
    field: str
    message: str
    predicate: Callable[[Dict[str, Any]], bool]


class BaseBusinessValidator(Schema):
    """
    Base validation schema for all entity validators.

    Subclasses declare their fields and may list ``cross_field_rules``. Every
    rule is evaluated; failures for the same field path are merged in
    declaration order after any per-field errors for that path.

    Example:
        class RangeValidator(BaseBusinessValidator):
            low = fields.Integer(required=True)
            high = fields.Integer(required=True)

            cross_field_rules = (
                CrossFieldRule(
                    'high', "High must be above low",
                    lambda d: 'low' not in d or 'high' not in d or d['high'] > d['low']
                ),
            )
    """

    # Entity type name used by the registry and the model lookup
    registry_name: str = ''

    cross_field_rules: Tuple[CrossFieldRule, ...] = ()

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def sanitize_input_data(self, data, **kwargs):
        """Strip string values, then apply entity specific input preparation."""
        if not isinstance(data, Mapping):
            return data

        sanitized = clean_data(dict(data), strip_strings=True)
        return self.prepare_input(sanitized)

    def prepare_input(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for subclasses to derive input values before field validation."""
        return data

    @validates_schema(skip_on_field_errors=False)
    def check_cross_field_rules(self, data, **kwargs):
        errors: Dict[str, List[str]] = {}
        for rule in self.cross_field_rules:
            if not rule.predicate(data):
                errors.setdefault(rule.field, []).append(rule.message)

        if errors:
            raise ValidationError(errors)


def _both_present(data: Dict[str, Any], first: str, second: str) -> bool:
    return data.get(first) is not None and data.get(second) is not None


# ============================================================================
# REFERENCE DATA VALIDATORS
# ============================================================================

class CityValidator(BaseBusinessValidator):
    registry_name = 'city'

    name = BlankableString(required=True, error_messages=required_message("City name is required"))
    state_id = EntityReference(data_key='stateId')
    country_id = EntityReference(data_key='countryId')
    has_federal_police = BlankableBoolean(data_key='hasFederalPolice')


class QuickCityValidator(BaseBusinessValidator):
    """Inline city creation from a city picker: name plus optional state and country."""
    registry_name = 'quickCity'

    name = BlankableString(required=True, error_messages=required_message("City name is required"))
    state_id = EntityReference(data_key='stateId')
    country_id = EntityReference(data_key='countryId')


class ConsulateValidator(BaseBusinessValidator):
    registry_name = 'consulate'

    name = BlankableString(
        required=True,
        error_messages=required_message("Consulate name is required")
    )
    city_id = EntityReference(data_key='cityId')
    address = BlankableString()
    phone_number = PhoneField(data_key='phoneNumber')
    email = EmailField()
    website = OptionalUrl()


class CboCodeValidator(BaseBusinessValidator):
    """
    Brazilian occupation classification codes.

    The code is optional. When provided it must look like ``2521-05``; an
    empty code is accepted as "not provided".
    """
    registry_name = 'cboCode'

    code = BlankableString(
        validate=validate.Regexp(
            r'^\d{4}-\d{2}$',
            error="CBO code must be in the format XXXX-XX (e.g., 2521-05)"
        )
    )
    title = BlankableString(required=True, error_messages=required_message("Title is required"))
    description = BlankableString()


class EconomicActivityValidator(BaseBusinessValidator):
    registry_name = 'economicActivity'

    name = BlankableString(required=True, error_messages=required_message("Name is required"))
    code = BlankableString()
    description = BlankableString()
    is_active = BlankableBoolean(data_key='isActive')


class DocumentCategoryValidator(BaseBusinessValidator):
    """
    Document categories.

    When no code is supplied it is derived from the name, e.g.
    "Documentos Pessoais" becomes ``DOCUMENTOS_PESSOAIS``.
    """
    registry_name = 'documentCategory'

    name = BlankableString(
        required=True,
        validate=[
            validate.Length(min=2, error="Name must be at least 2 characters"),
            validate.Length(max=100, error="Name must be at most 100 characters"),
        ],
        error_messages=required_message("Name must be at least 2 characters")
    )
    code = NormalizedCode(
        case='upper',
        spaces_to_underscores=True,
        required=True,
        validate=[
            validate.Length(min=2, error="Code must be at least 2 characters"),
            validate.Length(max=50, error="Code must be at most 50 characters"),
            validate.Regexp(
                r'^[A-Z0-9_]+$',
                error="Code must contain only uppercase letters, numbers and underscores"
            ),
        ],
        error_messages=required_message("Code is required")
    )
    description = BlankableString(
        validate=validate.Length(max=500, error="Description must be at most 500 characters")
    )
    is_active = fields.Boolean(
        data_key='isActive',
        required=True,
        error_messages={'required': "Must be a boolean", 'null': "Must be a boolean",
                        'invalid': "Must be a boolean"}
    )

    def prepare_input(self, data: Dict[str, Any]) -> Dict[str, Any]:
        name = data.get('name')
        if is_blank(data.get('code')) and isinstance(name, str) and name:
            data['code'] = generate_category_code_from_name(name)
        return data


class CaseStatusValidator(BaseBusinessValidator):
    """Case statuses of individual processes, including their fillable fields."""
    registry_name = 'caseStatus'

    name = BlankableString(
        required=True,
        validate=validate.Length(max=100, error="Name must be at most 100 characters"),
        error_messages=required_message("Name is required")
    )
    name_en = BlankableString(
        data_key='nameEn',
        validate=validate.Length(max=100, error="Name must be at most 100 characters")
    )
    code = NormalizedCode(
        case='lower',
        required=True,
        validate=[
            validate.Length(max=50, error="Code must be at most 50 characters"),
            validate.Regexp(
                r'^[a-z0-9_]+$',
                error="Code must contain only lowercase letters, numbers and underscores"
            ),
        ],
        error_messages=required_message("Code is required")
    )
    description = BlankableString(
        validate=validate.Length(max=500, error="Description must be at most 500 characters")
    )
    category = BlankableEnum(
        CaseStatusCategory,
        by_value=True,
        error_messages={'unknown': "Invalid category"}
    )
    color = BlankableString(
        validate=validate.Regexp(
            r'^#([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$',
            error="Color must be a valid hex color (e.g., #FF0000)"
        )
    )
    sort_order = BlankableInteger(
        data_key='sortOrder',
        required=True,
        validate=validate.Range(min=1, max=9999, error="Sort order must be between 1 and 9999"),
        error_messages={'required': "Sort order must be between 1 and 9999",
                        'null': "Sort order must be between 1 and 9999",
                        'invalid': "Must be a number"}
    )
    order_number = BlankableInteger(
        data_key='orderNumber',
        validate=validate.Range(min=1, max=99, error="Order number must be between 1 and 99"),
        error_messages={'invalid': "Must be a number"}
    )
    fillable_fields = fields.List(
        fields.String(
            validate=validate.OneOf(INDIVIDUAL_PROCESS_FILLABLE_FIELDS,
                                    error="Unknown fillable field")
        ),
        data_key='fillableFields',
        allow_none=True
    )


# ============================================================================
# CORE RECORD VALIDATORS
# ============================================================================

class CompanyValidator(BaseBusinessValidator):
    registry_name = 'company'

    name = BlankableString(required=True, error_messages=required_message("Company name is required"))
    tax_id = BlankableString(
        data_key='taxId',
        required=True,
        error_messages=required_message("Tax ID is required")
    )
    website = OptionalUrl()
    address = BlankableString(required=True, error_messages=required_message("Address is required"))
    city_id = EntityReference(
        data_key='cityId',
        required=True,
        error_messages=required_message("City is required")
    )
    phone_number = PhoneField(
        data_key='phoneNumber',
        required=True,
        error_messages=required_message("Phone number is required")
    )
    email = EmailField(required=True, error_messages=required_message("Email is required"))
    contact_person_id = EntityReference(
        data_key='contactPersonId',
        error_messages={'invalid': "Invalid contact person"}
    )
    is_active = fields.Boolean(
        data_key='isActive',
        required=True,
        error_messages={'required': "Must be a boolean", 'null': "Must be a boolean",
                        'invalid': "Must be a boolean"}
    )
    notes = BlankableString()


class PersonCompanyValidator(BaseBusinessValidator):
    """
    Employment relationship between a person and a company.

    A current relationship has no end date, and an end date must fall strictly
    after the start date. Both failures are reported on ``endDate``.
    """
    registry_name = 'personCompany'

    person_id = EntityReference(
        data_key='personId',
        required=True,
        error_messages=required_message("Person is required")
    )
    company_id = EntityReference(
        data_key='companyId',
        required=True,
        error_messages=required_message("Company is required")
    )
    role = BlankableString(
        required=True,
        validate=validate.Length(min=2, error="Role must be at least 2 characters"),
        error_messages=required_message("Role must be at least 2 characters")
    )
    start_date = BlankableDate(
        data_key='startDate',
        required=True,
        error_messages=required_message("Start date is required")
    )
    end_date = BlankableDate(data_key='endDate')
    is_current = BlankableBoolean(data_key='isCurrent', load_default=False)

    cross_field_rules = (
        CrossFieldRule(
            'endDate',
            "Current employment cannot have an end date",
            lambda d: not (d.get('is_current') and d.get('end_date') is not None)
        ),
        CrossFieldRule(
            'endDate',
            "End date must be after start date",
            lambda d: (not _both_present(d, 'start_date', 'end_date')
                       or d['end_date'] > d['start_date'])
        ),
    )


class PassportValidator(BaseBusinessValidator):
    registry_name = 'passport'

    person_id = EntityReference(
        data_key='personId',
        required=True,
        error_messages=required_message("Person ID is required")
    )
    passport_number = BlankableString(
        data_key='passportNumber',
        required=True,
        validate=validate.Length(min=3, error="Passport number must be at least 3 characters"),
        error_messages=required_message("Passport number must be at least 3 characters")
    )
    issuing_country_id = EntityReference(
        data_key='issuingCountryId',
        required=True,
        error_messages=required_message("Issuing country is required")
    )
    issue_date = BlankableDate(
        data_key='issueDate',
        required=True,
        error_messages=required_message("Issue date is required")
    )
    expiry_date = BlankableDate(
        data_key='expiryDate',
        required=True,
        error_messages=required_message("Expiry date is required")
    )
    file_url = OptionalUrl(data_key='fileUrl')
    is_active = BlankableBoolean(data_key='isActive')

    cross_field_rules = (
        CrossFieldRule(
            'expiryDate',
            "Expiry date must be after issue date",
            lambda d: (not _both_present(d, 'issue_date', 'expiry_date')
                       or d['expiry_date'] > d['issue_date'])
        ),
        CrossFieldRule(
            'issueDate',
            "Issue date cannot be in the future",
            lambda d: d.get('issue_date') is None or d['issue_date'] <= date.today()
        ),
    )


class LegalFrameworkInfoRequirementValidator(BaseBusinessValidator):
    """Information a legal framework requires about a field of an entity."""
    registry_name = 'legalFrameworkInfoRequirement'

    legal_framework_id = EntityReference(
        data_key='legalFrameworkId',
        required=True,
        error_messages=required_message("Legal framework is required")
    )
    entity_type = fields.Enum(
        EntityType,
        by_value=True,
        data_key='entityType',
        required=True,
        error_messages=enum_messages("Entity type is required")
    )
    field_path = BlankableString(
        data_key='fieldPath',
        required=True,
        error_messages=required_message("Field is required")
    )
    label = BlankableString(required=True, error_messages=required_message("Label is required"))
    label_en = BlankableString(data_key='labelEn')
    field_type = BlankableString(data_key='fieldType')
    responsible_party = fields.Enum(
        ResponsibleParty,
        by_value=True,
        data_key='responsibleParty',
        required=True,
        error_messages=enum_messages("Responsible party is required")
    )
    is_required = fields.Boolean(
        data_key='isRequired',
        required=True,
        error_messages={'required': "Must be a boolean", 'null': "Must be a boolean",
                        'invalid': "Must be a boolean"}
    )
    sort_order = fields.Float(
        data_key='sortOrder',
        required=True,
        validate=validate.Range(min=0, error="Sort order must be zero or greater"),
        error_messages={'required': "Must be a number", 'null': "Must be a number",
                        'invalid': "Must be a number"}
    )


# ============================================================================
# VALIDATION RESULT AND ENTRY POINTS
# ============================================================================

@dataclass
class ValidationResult:
    """
    Outcome of validating one record.

    Attributes:
        entity_type: Registry name of the validated entity
        is_valid: True iff ``errors`` is empty
        errors: Field path to ordered, non-empty list of messages
        record: Typed model of the accepted record, None when invalid
        data: Loaded values keyed by attribute name, None when invalid
    """
    entity_type: str
    is_valid: bool = True
    errors: Dict[str, List[str]] = field(default_factory=dict)
    record: Optional[BaseBusinessModel] = None
    data: Optional[Dict[str, Any]] = None

    def add_error(self, path: str, message: str) -> None:
        self.errors.setdefault(path, []).append(message)
        self.is_valid = False

    def raise_for_errors(self) -> None:
        """
        Raise when the record was rejected.

        Raises:
            DataValidationError: Carrying ``errors`` as ``field_errors``
        """
        if self.is_valid:
            return
        raise DataValidationError(
            message=f"Validation failed for {self.entity_type}",
            error_code="VALIDATION_FAILED",
            field_errors=self.errors,
            context={'entity_type': self.entity_type}
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.is_valid:
            return {
                'valid': True,
                'record': self.record.to_document() if self.record is not None else None,
            }
        return {'valid': False, 'errors': self.errors}


VALIDATOR_REGISTRY: Dict[str, Type[BaseBusinessValidator]] = {
    validator.registry_name: validator
    for validator in (
        CityValidator,
        QuickCityValidator,
        ConsulateValidator,
        CboCodeValidator,
        CompanyValidator,
        PersonCompanyValidator,
        LegalFrameworkInfoRequirementValidator,
        PassportValidator,
        DocumentCategoryValidator,
        EconomicActivityValidator,
        CaseStatusValidator,
    )
}


def get_validator(entity_type: str) -> Type[BaseBusinessValidator]:
    """
    Get the validator class registered for an entity type.

    Raises:
        ConfigurationError: If no validator is registered under that name
    """
    validator_class = VALIDATOR_REGISTRY.get(entity_type)
    if validator_class is None:
        raise ConfigurationError(
            message=f"No validator registered for entity type: {entity_type}",
            error_code="UNKNOWN_ENTITY_TYPE",
            config_key=entity_type,
            context={'available_entity_types': sorted(VALIDATOR_REGISTRY)},
            severity=ErrorSeverity.HIGH
        )
    return validator_class


def flatten_errors(messages: Any, prefix: str = '') -> Dict[str, List[str]]:
    """
    Flatten marshmallow error messages into field path to message list.

    Nested dictionaries (list items, nested schemas) become dotted paths.
    """
    if isinstance(messages, dict):
        flat: Dict[str, List[str]] = {}
        for key, value in messages.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            for nested_path, nested_messages in flatten_errors(value, path).items():
                flat.setdefault(nested_path, []).extend(nested_messages)
        return flat

    if isinstance(messages, (list, tuple)):
        flat = {}
        for item in messages:
            if isinstance(item, dict):
                for nested_path, nested_messages in flatten_errors(item, prefix).items():
                    flat.setdefault(nested_path, []).extend(nested_messages)
            else:
                flat.setdefault(prefix or '_schema', []).append(str(item))
        return flat

    return {prefix or '_schema': [str(messages)]}


def validate_record(entity_type: str, data: Any,
                    localization: Optional[LocalizationContext] = None) -> ValidationResult:
    """
    Validate form input for an entity type.

    Args:
        entity_type: Registry name, e.g. 'personCompany'
        data: Mapping of camelCase field name to raw value
        localization: Optional context translating the error messages

    Returns:
        ValidationResult with the typed record or the field errors

    Raises:
        ConfigurationError: If ``entity_type`` has no registered validator

    Example:
        result = validate_record('cboCode', {'code': '2521-05', 'title': 'Analyst'})
        result.is_valid  # True
    """
    validator_class = get_validator(entity_type)
    schema = validator_class()

    try:
        loaded = schema.load(data)
    except ValidationError as err:
        errors = flatten_errors(err.messages)
        if localization is not None:
            errors = localization.translate_errors(errors)

        logger.warning("Record validation failed",
                       entity_type=entity_type,
                       invalid_fields=sorted(errors),
                       error_count=sum(len(messages) for messages in errors.values()))
        return ValidationResult(entity_type=entity_type, is_valid=False, errors=errors)

    model_class = BUSINESS_MODEL_REGISTRY[entity_type]
    record = model_class(**loaded)

    logger.debug("Record validation succeeded",
                 entity_type=entity_type,
                 field_count=len(loaded))
    return ValidationResult(entity_type=entity_type, is_valid=True, record=record, data=loaded)


__all__ = [
    'BlankableString',
    'BlankableDate',
    'BlankableInteger',
    'BlankableEnum',
    'BlankableBoolean',
    'EntityReference',
    'PhoneField',
    'EmailField',
    'OptionalUrl',
    'NormalizedCode',
    'CrossFieldRule',
    'BaseBusinessValidator',
    'CityValidator',
    'QuickCityValidator',
    'ConsulateValidator',
    'CboCodeValidator',
    'EconomicActivityValidator',
    'DocumentCategoryValidator',
    'CaseStatusValidator',
    'CompanyValidator',
    'PersonCompanyValidator',
    'PassportValidator',
    'LegalFrameworkInfoRequirementValidator',
    'ValidationResult',
    'VALIDATOR_REGISTRY',
    'get_validator',
    'flatten_errors',
    'validate_record',
]
