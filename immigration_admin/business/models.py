"""
Business Data Models for the Immigration Admin Validation Service

This module provides the Pydantic models that represent accepted records. A
marshmallow validator (see ``validators.py``) decides whether form input is
acceptable; once it is, the loaded data becomes one of the typed models below.
Models use snake_case attributes and the camelCase aliases of the form fields
and of the document store.

Model Categories:
    Enumerations:
        EntityType: Entity tags used by information requirements and field links
        ResponsibleParty: Who must provide a piece of information
        CaseStatusCategory: Workflow bucket of a case status

    Reference Data:
        City, Consulate, CboCode, EconomicActivity, DocumentCategory, CaseStatus

    Core Records:
        Company, PersonCompany, Passport, LegalFrameworkInfoRequirement

Store representation:
    ``to_document()`` produces the camelCase dict persisted by the document
    store (absent optional fields omitted, dates as ISO strings, enums as
    their values). ``from_document()`` accepts such a dict and ignores store
    metadata such as ``_id`` and ``_creationTime``.
"""

from datetime import date
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError
)
from pydantic.alias_generators import to_camel

from .exceptions import DataProcessingError, DataValidationError, ErrorSeverity

logger = structlog.get_logger("business.models")

# Keys the document store adds to every stored document
STORE_METADATA_KEYS = frozenset({'_id', '_creationTime'})


# ============================================================================
# BASE CLASS
# ============================================================================

class BaseBusinessModel(BaseModel):
    """
    Base class for accepted business records.

    Example:
        city = City(name="Campinas", state_id="st_sp")
        city.to_document()  # {'name': 'Campinas', 'stateId': 'st_sp'}
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
        str_strip_whitespace=True,
        extra='forbid',
        hide_input_in_errors=True,
    )

    # Document store collection for the entity
    collection_name: ClassVar[str] = ''

    def __init__(self, **data):
        """
        Initialize the model, converting Pydantic errors to business errors.

        Raises:
            DataValidationError: If the data does not fit the model types
        """
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            field_errors: Dict[str, List[str]] = {}
            for error in e.errors():
                path = '.'.join(str(loc) for loc in error['loc']) or '_schema'
                field_errors.setdefault(path, []).append(error['msg'])

            raise DataValidationError(
                message=f"Record does not match the {self.__class__.__name__} model",
                error_code="MODEL_VALIDATION_FAILED",
                field_errors=field_errors,
                context={'model_type': self.__class__.__name__},
                cause=e,
                severity=ErrorSeverity.MEDIUM
            )

    def to_document(self) -> Dict[str, Any]:
        """
        Convert the record to its document store representation.

        Returns:
            camelCase dictionary without absent optional fields
        """
        return self.model_dump(by_alias=True, exclude_none=True, mode='json')

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> 'BaseBusinessModel':
        """
        Create a record from a stored document.

        Args:
            document: Document as returned by the store

        Returns:
            Validated model instance

        Raises:
            DataProcessingError: If the document is not a mapping
            DataValidationError: If the document does not fit the model
        """
        if not isinstance(document, dict):
            raise DataProcessingError(
                message=f"Cannot build {cls.__name__} from a non-mapping document",
                error_code="INVALID_DOCUMENT",
                processing_stage="document_loading",
                data_type=type(document).__name__
            )

        payload = {
            key: value for key, value in document.items()
            if key not in STORE_METADATA_KEYS
        }
        return cls(**payload)


# ============================================================================
# ENUMERATION TYPES
# ============================================================================

class EntityType(str, Enum):
    """Entity tags a field path can belong to."""
    PERSON = "person"
    INDIVIDUAL_PROCESS = "individualProcess"
    PASSPORT = "passport"
    COMPANY = "company"


class ResponsibleParty(str, Enum):
    """Party responsible for providing a required piece of information."""
    CLIENT = "client"
    ADMIN = "admin"
    COMPANY = "company"


class CaseStatusCategory(str, Enum):
    PREPARATION = "preparation"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ============================================================================
# REFERENCE DATA MODELS
# ============================================================================

class City(BaseBusinessModel):
    """City record; state and country are optional references."""
    collection_name: ClassVar[str] = 'cities'

    name: str = Field(..., min_length=1)
    state_id: Optional[str] = None
    country_id: Optional[str] = None
    has_federal_police: Optional[bool] = None


class Consulate(BaseBusinessModel):
    collection_name: ClassVar[str] = 'consulates'

    name: str = Field(..., min_length=1)
    city_id: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class CboCode(BaseBusinessModel):
    """Brazilian occupation classification (CBO) entry."""
    collection_name: ClassVar[str] = 'cboCodes'

    code: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None


class EconomicActivity(BaseBusinessModel):
    collection_name: ClassVar[str] = 'economicActivities'

    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class DocumentCategory(BaseBusinessModel):
    collection_name: ClassVar[str] = 'documentCategories'

    name: str = Field(..., min_length=2, max_length=100)
    code: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool


class CaseStatus(BaseBusinessModel):
    """Workflow status of an individual process."""
    collection_name: ClassVar[str] = 'caseStatuses'

    name: str = Field(..., min_length=1, max_length=100)
    name_en: Optional[str] = Field(default=None, max_length=100)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[CaseStatusCategory] = None
    color: Optional[str] = None
    sort_order: int = Field(..., ge=1, le=9999)
    order_number: Optional[int] = Field(default=None, ge=1, le=99)
    fillable_fields: Optional[List[str]] = None


# ============================================================================
# CORE RECORD MODELS
# ============================================================================

class Company(BaseBusinessModel):
    collection_name: ClassVar[str] = 'companies'

    name: str = Field(..., min_length=1)
    tax_id: str = Field(..., min_length=1)
    website: Optional[str] = None
    address: str = Field(..., min_length=1)
    city_id: str = Field(..., min_length=1)
    phone_number: str
    email: str
    contact_person_id: Optional[str] = None
    is_active: bool
    notes: Optional[str] = None


class PersonCompany(BaseBusinessModel):
    """Employment relationship between a person and a company."""
    collection_name: ClassVar[str] = 'peopleCompanies'

    person_id: str = Field(..., min_length=1)
    company_id: str = Field(..., min_length=1)
    role: str = Field(..., min_length=2)
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False


class Passport(BaseBusinessModel):
    collection_name: ClassVar[str] = 'passports'

    person_id: str = Field(..., min_length=1)
    passport_number: str = Field(..., min_length=3)
    issuing_country_id: str = Field(..., min_length=1)
    issue_date: date
    expiry_date: date
    file_url: Optional[str] = None
    is_active: Optional[bool] = None


class LegalFrameworkInfoRequirement(BaseBusinessModel):
    """
    Information a legal framework requires about an entity field.

    ``entity_type`` and ``field_path`` together identify the field; the pair
    matches the keys used by the field registry and the linked fields map.
    """
    collection_name: ClassVar[str] = 'legalFrameworkInfoRequirements'

    legal_framework_id: str = Field(..., min_length=1)
    entity_type: EntityType
    field_path: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    label_en: Optional[str] = None
    field_type: Optional[str] = None
    responsible_party: ResponsibleParty
    is_required: bool
    sort_order: float = Field(..., ge=0)


# ============================================================================
# MODEL REGISTRY
# ============================================================================

BUSINESS_MODEL_REGISTRY: Dict[str, Type[BaseBusinessModel]] = {
    'city': City,
    'quickCity': City,
    'consulate': Consulate,
    'cboCode': CboCode,
    'company': Company,
    'personCompany': PersonCompany,
    'legalFrameworkInfoRequirement': LegalFrameworkInfoRequirement,
    'passport': Passport,
    'documentCategory': DocumentCategory,
    'economicActivity': EconomicActivity,
    'caseStatus': CaseStatus,
}


def get_model_by_name(entity_type: str) -> Optional[Type[BaseBusinessModel]]:
    """
    Get the business model class registered for an entity type.

    Args:
        entity_type: Entity type name, e.g. 'personCompany'

    Returns:
        Model class if found, None otherwise
    """
    return BUSINESS_MODEL_REGISTRY.get(entity_type)


__all__ = [
    'STORE_METADATA_KEYS',
    'BaseBusinessModel',
    'EntityType',
    'ResponsibleParty',
    'CaseStatusCategory',
    'City',
    'Consulate',
    'CboCode',
    'EconomicActivity',
    'DocumentCategory',
    'CaseStatus',
    'Company',
    'PersonCompany',
    'Passport',
    'LegalFrameworkInfoRequirement',
    'BUSINESS_MODEL_REGISTRY',
    'get_model_by_name',
]
