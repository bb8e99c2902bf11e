"""
Business Utility Functions for the Immigration Admin Validation Service

This module provides the reusable helpers that the entity validators are built
from: input cleaning, blank-value detection, international phone number and
email checks, locale-aware manual date entry parsing and document category
code generation.

Functions:
    Data Manipulation:
        clean_data: Strip string values in (nested) input mappings
        is_blank: Treat None and empty/whitespace strings as "not provided"

    Contact Validation:
        clean_phone_number: Reduce a formatted phone number to '+' and digits
        is_valid_phone_length: Digit-count check for phone numbers
        validate_phone: International phone number validation
        validate_email: Email syntax validation and normalisation

    Date Processing:
        parse_manual_date_entry: Parse dd/MM/yyyy (pt) or MM/dd/yyyy (en)
        validate_date_string: Same as above, returning an i18n message key
        is_date_in_range: Year range guard (1900..2100)

    Codes:
        generate_category_code_from_name: Derive an UPPER_SNAKE code from a name
"""

import calendar
import re
import unicodedata
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

import phonenumbers
import structlog
from email_validator import EmailNotValidError, validate_email as email_validate
from phonenumbers import NumberParseException

from .exceptions import (
    BaseBusinessException,
    DataProcessingError,
    DataValidationError,
    ErrorSeverity
)

logger = structlog.get_logger("business.utils")


# ============================================================================
# DATA MANIPULATION
# ============================================================================

def clean_data(
    data: Union[Dict[str, Any], List[Any]],
    remove_empty: bool = False,
    remove_none: bool = False,
    strip_strings: bool = True
) -> Union[Dict[str, Any], List[Any]]:
    """
    Clean input data structures before validation.

    Args:
        data: Input data structure to clean (dict or list)
        remove_empty: Remove empty strings and empty collections
        remove_none: Remove None values from data
        strip_strings: Strip whitespace from string values

    Returns:
        Cleaned data structure with same type as input

    Raises:
        DataProcessingError: If an unsupported data type is provided

    Example:
        clean_data({'name': '  Sao Paulo  ', 'stateId': ''})
        # {'name': 'Sao Paulo', 'stateId': ''}
    """
    try:
        if isinstance(data, dict):
            return _clean_dict(data, remove_empty, remove_none, strip_strings)
        elif isinstance(data, list):
            return _clean_list(data, remove_empty, remove_none, strip_strings)
        raise DataProcessingError(
            message="Unsupported data type for cleaning operation",
            error_code="UNSUPPORTED_DATA_TYPE",
            processing_stage="data_cleaning",
            data_type=type(data).__name__,
            context={'supported_types': ['dict', 'list']},
            severity=ErrorSeverity.MEDIUM
        )
    except BaseBusinessException:
        raise
    except Exception as e:
        raise DataProcessingError(
            message="Failed to clean data structure",
            error_code="DATA_CLEANING_FAILED",
            processing_stage="data_cleaning",
            data_type=type(data).__name__,
            cause=e
        )


def _clean_value(value: Any, remove_empty: bool, remove_none: bool,
                 strip_strings: bool) -> Tuple[bool, Any]:
    """Return (keep, cleaned_value) for a single value."""
    if isinstance(value, (dict, list)):
        cleaned = clean_data(value, remove_empty, remove_none, strip_strings)
        return (not remove_empty or bool(cleaned)), cleaned
    if isinstance(value, str):
        processed = value.strip() if strip_strings else value
        return (not remove_empty or bool(processed)), processed
    if value is None:
        return not remove_none, value
    return True, value


def _clean_dict(data: Dict[str, Any], remove_empty: bool, remove_none: bool,
                strip_strings: bool) -> Dict[str, Any]:
    """Internal helper for cleaning dictionary data structures."""
    cleaned = {}
    for key, value in data.items():
        keep, processed = _clean_value(value, remove_empty, remove_none, strip_strings)
        if keep:
            cleaned[key] = processed
    return cleaned


def _clean_list(data: List[Any], remove_empty: bool, remove_none: bool,
                strip_strings: bool) -> List[Any]:
    """Internal helper for cleaning list data structures."""
    cleaned = []
    for item in data:
        keep, processed = _clean_value(item, remove_empty, remove_none, strip_strings)
        if keep:
            cleaned.append(processed)
    return cleaned


def is_blank(value: Any) -> bool:
    """Return True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


# ============================================================================
# CONTACT VALIDATION
# ============================================================================

# '+' and a 1-4 digit country code, then 6-20 digits or formatting characters
PHONE_REGEX = re.compile(r'^\+\d{1,4}[\s\-\(\)\.]*[\d\s\-\(\)\.]{6,20}$')

PHONE_MIN_LENGTH = 8
PHONE_MAX_LENGTH = 30
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 25

PHONE_FORMAT_MESSAGE = (
    "Invalid international phone number format. "
    "Must start with country code (e.g., +55)"
)


def clean_phone_number(phone: Optional[str]) -> str:
    """Keep the '+' prefix and digits, drop all formatting characters."""
    if not phone:
        return ""
    return re.sub(r'[^\d+]', '', phone)


def is_valid_phone_length(phone: Optional[str]) -> bool:
    """Return True when the phone number has between 7 and 25 digits."""
    digit_count = len(re.sub(r'\D', '', clean_phone_number(phone)))
    return PHONE_MIN_DIGITS <= digit_count <= PHONE_MAX_DIGITS


def validate_phone(phone: str) -> bool:
    """
    Validate an international phone number as stored by the phone input.

    Numbers are kept in the "+<dial code> <number>" display form, e.g.
    "+55 11 98765-4321" or "+1 (555) 123-4567". The checks run in order and
    the first violated rule is reported.

    Args:
        phone: Phone number string to validate

    Returns:
        True if the phone number is valid

    Raises:
        DataValidationError: With a message naming the violated rule

    Example:
        validate_phone("+55 11 98765-4321")  # True
        validate_phone("11 98765-4321")      # raises, missing country code
    """
    if not isinstance(phone, str) or not phone:
        raise DataValidationError(
            message="Phone number is required",
            error_code="PHONE_REQUIRED",
            context={'phone_type': type(phone).__name__}
        )

    if len(phone) < PHONE_MIN_LENGTH:
        raise DataValidationError(
            message="Phone number is too short",
            error_code="PHONE_TOO_SHORT",
            context={'phone_length': len(phone)}
        )

    if len(phone) > PHONE_MAX_LENGTH:
        raise DataValidationError(
            message="Phone number is too long",
            error_code="PHONE_TOO_LONG",
            context={'phone_length': len(phone)}
        )

    if not PHONE_REGEX.match(phone):
        raise DataValidationError(
            message=PHONE_FORMAT_MESSAGE,
            error_code="INVALID_PHONE_FORMAT"
        )

    if not is_valid_phone_length(phone):
        raise DataValidationError(
            message="Phone number must have between 7 and 25 digits",
            error_code="INVALID_PHONE_LENGTH",
            context={'digit_count': len(re.sub(r'\D', '', phone))}
        )

    try:
        phonenumbers.parse(clean_phone_number(phone), None)
    except NumberParseException as e:
        raise DataValidationError(
            message=PHONE_FORMAT_MESSAGE,
            error_code="INVALID_COUNTRY_CODE",
            cause=e
        )

    return True


def validate_email(email: str) -> str:
    """
    Validate email syntax and return the normalised address.

    Deliverability (DNS) checks are disabled; validation must stay free of
    I/O.

    Args:
        email: Email address to validate

    Returns:
        Normalised email address

    Raises:
        DataValidationError: If the address is not syntactically valid
    """
    if not isinstance(email, str) or not email.strip():
        raise DataValidationError(
            message="Email is required",
            error_code="EMAIL_REQUIRED"
        )

    try:
        result = email_validate(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise DataValidationError(
            message="Invalid email format",
            error_code="INVALID_EMAIL_FORMAT",
            cause=e
        )

    return result.normalized


# ============================================================================
# DATE PROCESSING
# ============================================================================

class DateValidationErrors:
    """Message keys for manual date entry errors, resolved through i18n catalogs."""
    INVALID_FORMAT = "Common.datePicker.invalidFormat"
    INVALID_DATE = "Common.datePicker.invalidDate"
    DATE_OUT_OF_RANGE = "Common.datePicker.dateOutOfRange"
    INVALID_DAY = "Common.datePicker.invalidDay"
    INVALID_MONTH = "Common.datePicker.invalidMonth"


MIN_YEAR = 1900
MAX_YEAR = 2100

_MANUAL_DATE_REGEX = re.compile(r'^\d{1,2}/\d{1,2}/\d{4}$')


def _split_manual_date(text: str, locale: str) -> Tuple[int, int, int]:
    """Return (day, month, year) from a slash-separated date for the locale."""
    first, second, year = (int(part) for part in text.split('/'))
    if locale == 'pt':
        return first, second, year
    return second, first, year


def parse_manual_date_entry(text: Optional[str], locale: str) -> Optional[date]:
    """
    Parse a manually typed date in the locale's format.

    Portuguese uses dd/MM/yyyy, every other locale MM/dd/yyyy. Impossible
    calendar dates (31/02/2024) and years outside 1900..2100 yield None.

    Args:
        text: Date string to parse
        locale: Locale code ('pt' or 'en')

    Returns:
        Parsed date, or None when the text is not a valid date
    """
    if not text or not isinstance(text, str):
        return None

    normalized = text.strip()
    if not _MANUAL_DATE_REGEX.match(normalized):
        return None

    day, month, year = _split_manual_date(normalized, locale)
    if not MIN_YEAR <= year <= MAX_YEAR:
        return None

    try:
        return date(year, month, day)
    except ValueError:
        return None


def validate_date_string(text: Optional[str], locale: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a manually typed date and report why it is invalid.

    Args:
        text: Date string to validate
        locale: Locale code ('pt' or 'en')

    Returns:
        Tuple of (valid, message_key); message_key is None when valid
    """
    if not text or not isinstance(text, str):
        return False, DateValidationErrors.INVALID_DATE

    normalized = text.strip()
    if not _MANUAL_DATE_REGEX.match(normalized):
        return False, DateValidationErrors.INVALID_FORMAT

    day, month, year = _split_manual_date(normalized, locale)

    if not 1 <= month <= 12:
        return False, DateValidationErrors.INVALID_MONTH

    if not MIN_YEAR <= year <= MAX_YEAR:
        return False, DateValidationErrors.DATE_OUT_OF_RANGE

    if day < 1 or day > calendar.monthrange(year, month)[1]:
        return False, DateValidationErrors.INVALID_DAY

    if parse_manual_date_entry(normalized, locale) is None:
        return False, DateValidationErrors.INVALID_DATE

    return True, None


def is_date_in_range(value: date) -> bool:
    """Return True when the date's year is within 1900..2100."""
    return MIN_YEAR <= value.year <= MAX_YEAR


# ============================================================================
# CODES
# ============================================================================

def generate_category_code_from_name(name: str) -> str:
    """
    Derive a document category code from its display name.

    Accents are removed, the result is upper-cased, whitespace and hyphens
    become underscores and anything outside A-Z, 0-9 and '_' is dropped.

    Example:
        generate_category_code_from_name("Documentos Pessoais - Série A")
        # 'DOCUMENTOS_PESSOAIS_SERIE_A'
    """
    decomposed = unicodedata.normalize('NFD', name)
    without_accents = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    code = without_accents.upper()
    code = re.sub(r'[\s-]+', '_', code)
    code = re.sub(r'[^A-Z0-9_]', '', code)
    code = re.sub(r'_+', '_', code)
    return code.strip('_')


__all__ = [
    'clean_data',
    'is_blank',
    'PHONE_REGEX',
    'PHONE_FORMAT_MESSAGE',
    'clean_phone_number',
    'is_valid_phone_length',
    'validate_phone',
    'validate_email',
    'DateValidationErrors',
    'parse_manual_date_entry',
    'validate_date_string',
    'is_date_in_range',
    'generate_category_code_from_name',
]
