"""
Entity validation testing module.

Covers the marshmallow validators behind ``validate_record``: required and
optional fields, pattern and length rules, enum membership, cross-field rules,
localisation of messages, and the typed record produced for accepted input
including its document store representation.
"""

from datetime import date, timedelta

import pytest

from immigration_admin.business.exceptions import ConfigurationError, DataValidationError
from immigration_admin.business.localization import LocalizationContext
from immigration_admin.business.models import (
    CboCode,
    LegalFrameworkInfoRequirement,
    PersonCompany
)
from immigration_admin.business.utils import PHONE_FORMAT_MESSAGE
from immigration_admin.business.validators import (
    VALIDATOR_REGISTRY,
    CboCodeValidator,
    flatten_errors,
    get_validator,
    validate_record
)

CBO_FORMAT_MESSAGE = "CBO code must be in the format XXXX-XX (e.g., 2521-05)"


@pytest.fixture
def person_company_data():
    return {
        'personId': 'person_1',
        'companyId': 'company_1',
        'role': 'Engenheira de software',
        'startDate': '2023-01-01',
        'endDate': '2024-01-01',
        'isCurrent': False,
    }


@pytest.fixture
def legal_framework_requirement_data():
    return {
        'legalFrameworkId': 'lf_1',
        'entityType': 'passport',
        'fieldPath': 'passportNumber',
        'label': 'Número do passaporte',
        'labelEn': 'Passport number',
        'responsibleParty': 'client',
        'isRequired': True,
        'sortOrder': 1,
    }


@pytest.fixture
def company_data():
    return {
        'name': 'Acme Consultoria',
        'taxId': '12.345.678/0001-90',
        'website': 'https://acme.com.br',
        'address': 'Av. Paulista, 1000',
        'cityId': 'city_sp',
        'phoneNumber': '+55 11 98765-4321',
        'email': 'contato@Acme.com.br',
        'isActive': True,
    }


@pytest.fixture
def passport_data():
    return {
        'personId': 'person_1',
        'passportNumber': 'FX123456',
        'issuingCountryId': 'country_br',
        'issueDate': '2020-05-10',
        'expiryDate': '2030-05-09',
    }


class TestCboCodeValidation:
    """Test suite for the optional CBO code pattern."""

    def test_well_formed_code_accepted(self):
        result = validate_record('cboCode', {'code': '2521-05', 'title': 'Administrador'})

        assert result.is_valid
        assert result.errors == {}
        assert isinstance(result.record, CboCode)
        assert result.record.code == '2521-05'

    @pytest.mark.parametrize('code', ['25-2105', '2521-5', 'abcd-ef'])
    def test_malformed_code_rejected(self, code):
        result = validate_record('cboCode', {'code': code, 'title': 'Administrador'})

        assert not result.is_valid
        assert result.errors == {'code': [CBO_FORMAT_MESSAGE]}
        assert result.record is None

    def test_empty_code_accepted_as_not_provided(self):
        """Empty optional identifiers are stored as absent."""
        result = validate_record('cboCode', {'code': '', 'title': 'Administrador'})

        assert result.is_valid
        assert result.record.code is None
        assert 'code' not in result.record.to_document()

    def test_whitespace_is_stripped_before_pattern_check(self):
        result = validate_record('cboCode', {'code': ' 2521-05 ', 'title': ' Administrador '})

        assert result.is_valid
        assert result.record.code == '2521-05'
        assert result.record.title == 'Administrador'

    def test_missing_title_reported(self):
        result = validate_record('cboCode', {'code': '2521-05'})

        assert result.errors == {'title': ['Title is required']}

    def test_blank_title_reports_required_message(self):
        result = validate_record('cboCode', {'code': '2521-05', 'title': '   '})

        assert result.errors == {'title': ['Title is required']}


class TestPersonCompanyValidation:
    """Test suite for employment relationship cross-field rules."""

    def test_current_employment_with_end_date_rejected_on_end_date(self):
        result = validate_record('personCompany', {'isCurrent': True, 'endDate': '2024-01-01'})

        assert not result.is_valid
        assert result.errors['endDate'] == ["Current employment cannot have an end date"]

    def test_end_date_before_start_date_rejected(self, person_company_data):
        person_company_data.update(startDate='2024-01-01', endDate='2023-01-01')

        result = validate_record('personCompany', person_company_data)

        assert result.errors == {'endDate': ["End date must be after start date"]}

    def test_end_date_equal_to_start_date_rejected(self, person_company_data):
        person_company_data.update(startDate='2024-01-01', endDate='2024-01-01')

        result = validate_record('personCompany', person_company_data)

        assert result.errors == {'endDate': ["End date must be after start date"]}

    def test_end_date_after_start_date_accepted(self, person_company_data):
        result = validate_record('personCompany', person_company_data)

        assert result.is_valid
        assert isinstance(result.record, PersonCompany)
        assert result.record.start_date == date(2023, 1, 1)
        assert result.record.end_date == date(2024, 1, 1)

    def test_every_cross_field_rule_is_reported(self, person_company_data):
        person_company_data.update(isCurrent=True, startDate='2024-01-01', endDate='2023-01-01')

        result = validate_record('personCompany', person_company_data)

        assert result.errors == {'endDate': [
            "Current employment cannot have an end date",
            "End date must be after start date",
        ]}

    def test_cross_field_rule_skipped_when_date_is_invalid(self, person_company_data):
        person_company_data.update(endDate='not-a-date')

        result = validate_record('personCompany', person_company_data)

        assert result.errors == {'endDate': ["Invalid date"]}

    def test_current_employment_without_end_date_accepted(self, person_company_data):
        person_company_data.update(isCurrent=True, endDate='')

        result = validate_record('personCompany', person_company_data)

        assert result.is_valid
        assert result.record.is_current is True
        assert result.record.end_date is None

    def test_is_current_defaults_to_false(self, person_company_data):
        del person_company_data['isCurrent']

        result = validate_record('personCompany', person_company_data)

        assert result.record.is_current is False

    def test_required_fields_reported(self):
        result = validate_record('personCompany', {})

        assert result.errors == {
            'personId': ["Person is required"],
            'companyId': ["Company is required"],
            'role': ["Role must be at least 2 characters"],
            'startDate': ["Start date is required"],
        }

    def test_short_role_rejected(self, person_company_data):
        person_company_data['role'] = 'X'

        result = validate_record('personCompany', person_company_data)

        assert result.errors == {'role': ["Role must be at least 2 characters"]}


class TestLegalFrameworkInfoRequirementValidation:
    """Test suite for enum membership of legal framework requirements."""

    def test_valid_requirement_accepted(self, legal_framework_requirement_data):
        result = validate_record('legalFrameworkInfoRequirement', legal_framework_requirement_data)

        assert result.is_valid
        assert isinstance(result.record, LegalFrameworkInfoRequirement)
        assert result.record.entity_type == 'passport'
        assert result.record.responsible_party == 'client'
        assert result.record.sort_order == 1

    @pytest.mark.parametrize('entity_type', ['vehicle', 'Person', ''])
    def test_entity_type_outside_closed_set_rejected(self, legal_framework_requirement_data,
                                                      entity_type):
        legal_framework_requirement_data['entityType'] = entity_type

        result = validate_record('legalFrameworkInfoRequirement', legal_framework_requirement_data)

        assert result.errors == {'entityType': ["Entity type is required"]}

    @pytest.mark.parametrize('responsible_party', ['lawyer', 'CLIENT'])
    def test_responsible_party_outside_closed_set_rejected(self, legal_framework_requirement_data,
                                                            responsible_party):
        legal_framework_requirement_data['responsibleParty'] = responsible_party

        result = validate_record('legalFrameworkInfoRequirement', legal_framework_requirement_data)

        assert result.errors == {'responsibleParty': ["Responsible party is required"]}

    def test_negative_sort_order_rejected(self, legal_framework_requirement_data):
        legal_framework_requirement_data['sortOrder'] = -1

        result = validate_record('legalFrameworkInfoRequirement', legal_framework_requirement_data)

        assert result.errors == {'sortOrder': ["Sort order must be zero or greater"]}

    def test_non_numeric_sort_order_rejected(self, legal_framework_requirement_data):
        legal_framework_requirement_data['sortOrder'] = 'first'

        result = validate_record('legalFrameworkInfoRequirement', legal_framework_requirement_data)

        assert result.errors == {'sortOrder': ["Must be a number"]}

    def test_missing_is_required_rejected(self, legal_framework_requirement_data):
        del legal_framework_requirement_data['isRequired']

        result = validate_record('legalFrameworkInfoRequirement', legal_framework_requirement_data)

        assert result.errors == {'isRequired': ["Must be a boolean"]}


class TestCompanyValidation:
    """Test suite for company contact fields."""

    def test_valid_company_accepted_with_normalised_email(self, company_data):
        result = validate_record('company', company_data)

        assert result.is_valid
        assert result.record.email == 'contato@acme.com.br'
        assert result.record.phone_number == '+55 11 98765-4321'

    def test_phone_without_country_code_rejected(self, company_data):
        company_data['phoneNumber'] = '11 98765-4321'

        result = validate_record('company', company_data)

        assert result.errors == {'phoneNumber': [PHONE_FORMAT_MESSAGE]}

    def test_short_phone_rejected(self, company_data):
        company_data['phoneNumber'] = '+55 11'

        result = validate_record('company', company_data)

        assert result.errors == {'phoneNumber': ["Phone number is too short"]}

    def test_invalid_email_rejected(self, company_data):
        company_data['email'] = 'contato@'

        result = validate_record('company', company_data)

        assert result.errors == {'email': ["Invalid email format"]}

    def test_invalid_website_rejected(self, company_data):
        company_data['website'] = 'acme'

        result = validate_record('company', company_data)

        assert result.errors == {'website': ["Invalid URL format"]}

    def test_empty_website_accepted(self, company_data):
        company_data['website'] = ''

        result = validate_record('company', company_data)

        assert result.is_valid
        assert result.record.website is None


class TestPassportValidation:

    def test_valid_passport_accepted(self, passport_data):
        result = validate_record('passport', passport_data)

        assert result.is_valid
        assert result.record.expiry_date == date(2030, 5, 9)

    def test_expiry_before_issue_rejected(self, passport_data):
        passport_data['expiryDate'] = '2019-01-01'

        result = validate_record('passport', passport_data)

        assert result.errors == {'expiryDate': ["Expiry date must be after issue date"]}

    def test_future_issue_date_rejected(self, passport_data):
        issue_date = date.today() + timedelta(days=30)
        passport_data['issueDate'] = issue_date.isoformat()
        passport_data['expiryDate'] = (issue_date + timedelta(days=3650)).isoformat()

        result = validate_record('passport', passport_data)

        assert result.errors == {'issueDate': ["Issue date cannot be in the future"]}


class TestReferenceDataValidation:
    """Test suite for cities, consulates, categories and case statuses."""

    def test_city_name_required(self):
        result = validate_record('city', {'name': '', 'stateId': 'st_sp'})

        assert result.errors == {'name': ["City name is required"]}

    def test_quick_city_accepts_name_only(self):
        result = validate_record('quickCity', {'name': 'Campinas'})

        assert result.is_valid
        assert result.record.to_document() == {'name': 'Campinas'}

    def test_consulate_optional_contacts_accept_blanks(self):
        result = validate_record('consulate', {
            'name': 'Consulado Geral em Lisboa',
            'cityId': '',
            'phoneNumber': '',
            'email': '',
            'website': '',
        })

        assert result.is_valid
        assert result.record.to_document() == {'name': 'Consulado Geral em Lisboa'}

    def test_document_category_code_derived_from_name(self):
        result = validate_record('documentCategory', {
            'name': 'Certidões Pessoais',
            'isActive': True,
        })

        assert result.is_valid
        assert result.record.code == 'CERTIDOES_PESSOAIS'

    def test_document_category_code_normalised(self):
        result = validate_record('documentCategory', {
            'name': 'Pessoais',
            'code': 'doc pessoal',
            'isActive': True,
        })

        assert result.record.code == 'DOC_PESSOAL'

    def test_document_category_code_characters_checked(self):
        result = validate_record('documentCategory', {
            'name': 'Pessoais',
            'code': 'DOC-1',
            'isActive': True,
        })

        assert result.errors == {
            'code': ["Code must contain only uppercase letters, numbers and underscores"]
        }

    def test_case_status_code_lowercased(self):
        result = validate_record('caseStatus', {
            'name': 'Em andamento',
            'code': 'IN_PROGRESS',
            'category': 'in_progress',
            'color': '#FFAA00',
            'sortOrder': 2,
        })

        assert result.is_valid
        assert result.record.code == 'in_progress'
        assert result.record.category == 'in_progress'

    def test_case_status_invalid_category_and_color(self):
        result = validate_record('caseStatus', {
            'name': 'Em andamento',
            'code': 'in_progress',
            'category': 'archived',
            'color': 'orange',
            'sortOrder': 2,
        })

        assert result.errors == {
            'category': ["Invalid category"],
            'color': ["Color must be a valid hex color (e.g., #FF0000)"],
        }

    def test_case_status_sort_order_range(self):
        result = validate_record('caseStatus', {
            'name': 'Em andamento',
            'code': 'in_progress',
            'sortOrder': 10000,
        })

        assert result.errors == {'sortOrder': ["Sort order must be between 1 and 9999"]}

    def test_unknown_fillable_field_reported_at_item_path(self):
        result = validate_record('caseStatus', {
            'name': 'Em andamento',
            'code': 'in_progress',
            'sortOrder': 2,
            'fillableFields': ['passportId', 'cboId', 'favouriteColour'],
        })

        assert result.errors == {'fillableFields.2': ["Unknown fillable field"]}


class TestValidationResult:
    """Test suite for ValidationResult and the validator registry."""

    def test_registry_contains_every_entity(self):
        assert set(VALIDATOR_REGISTRY) == {
            'city', 'quickCity', 'consulate', 'cboCode', 'company', 'personCompany',
            'legalFrameworkInfoRequirement', 'passport', 'documentCategory',
            'economicActivity', 'caseStatus',
        }
        assert get_validator('cboCode') is CboCodeValidator

    def test_unknown_entity_type_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_record('vehicle', {})

        assert exc_info.value.error_code == "UNKNOWN_ENTITY_TYPE"

    def test_unknown_input_keys_ignored(self):
        result = validate_record('cboCode', {'title': 'Administrador', 'legacyField': 'x'})

        assert result.is_valid
        assert 'legacyField' not in result.record.to_document()

    def test_raise_for_errors_carries_field_errors(self):
        result = validate_record('cboCode', {'code': '2521-5'})

        with pytest.raises(DataValidationError) as exc_info:
            result.raise_for_errors()

        assert exc_info.value.field_errors == result.errors
        assert exc_info.value.http_status_code == 422

    def test_raise_for_errors_noop_when_valid(self):
        validate_record('cboCode', {'title': 'Administrador'}).raise_for_errors()

    def test_to_dict_shapes(self):
        accepted = validate_record('cboCode', {'code': '2521-05', 'title': 'Administrador'})
        rejected = validate_record('cboCode', {'code': '2521-5', 'title': 'Administrador'})

        assert accepted.to_dict() == {
            'valid': True,
            'record': {'code': '2521-05', 'title': 'Administrador'},
        }
        assert rejected.to_dict() == {'valid': False, 'errors': {'code': [CBO_FORMAT_MESSAGE]}}

    def test_flatten_errors_builds_dotted_paths(self):
        messages = {'fillableFields': {0: ['Unknown fillable field']}, 'name': ['Name is required']}

        assert flatten_errors(messages) == {
            'fillableFields.0': ['Unknown fillable field'],
            'name': ['Name is required'],
        }


class TestOptionalBooleans:
    """Blank optional booleans are treated as not provided."""

    @pytest.mark.parametrize('entity_type, data, field_name, attribute', [
        ('city', {'name': 'Campinas'}, 'hasFederalPolice', 'has_federal_police'),
        ('economicActivity', {'name': 'Consultoria'}, 'isActive', 'is_active'),
        ('passport', {'personId': 'person_1', 'passportNumber': 'FX123456',
                      'issuingCountryId': 'country_br', 'issueDate': '2020-05-10',
                      'expiryDate': '2030-05-09'}, 'isActive', 'is_active'),
    ])
    @pytest.mark.parametrize('blank', ['', '   '])
    def test_blank_value_accepted_as_absent(self, entity_type, data, field_name, attribute, blank):
        result = validate_record(entity_type, {**data, field_name: blank})

        assert result.is_valid, result.errors
        assert getattr(result.record, attribute) is None
        assert field_name not in result.record.to_document()

    def test_blank_is_current_falls_back_to_false(self, person_company_data):
        person_company_data['isCurrent'] = ''

        result = validate_record('personCompany', person_company_data)

        assert result.is_valid, result.errors
        assert result.record.is_current is False

    def test_blank_is_current_still_checks_end_date(self, person_company_data):
        person_company_data['isCurrent'] = ''
        person_company_data['endDate'] = '2022-01-01'

        result = validate_record('personCompany', person_company_data)

        assert result.errors == {'endDate': ["End date must be after start date"]}

    def test_non_boolean_still_rejected(self):
        result = validate_record('city', {'name': 'Campinas', 'hasFederalPolice': 'maybe'})

        assert result.errors == {'hasFederalPolice': ["Not a valid boolean."]}


class TestIdempotenceAndRoundTrip:
    """Accepted records stay accepted when re-validated or stored and reloaded."""

    @pytest.mark.parametrize('entity_type, fixture_name', [
        ('personCompany', 'person_company_data'),
        ('legalFrameworkInfoRequirement', 'legal_framework_requirement_data'),
        ('company', 'company_data'),
        ('passport', 'passport_data'),
    ])
    def test_revalidation_and_store_round_trip(self, request, entity_type, fixture_name):
        data = request.getfixturevalue(fixture_name)

        first = validate_record(entity_type, data)
        second = validate_record(entity_type, data)
        assert first.is_valid and second.is_valid
        assert first.record == second.record

        document = first.record.to_document()
        stored = dict(document, _id='65a1f0c2e4b0a1b2c3d4e5f6', _creationTime=1700000000000.0)

        assert validate_record(entity_type, document).is_valid
        assert type(first.record).from_document(stored) == first.record

    def test_input_mapping_not_mutated(self, person_company_data):
        person_company_data['role'] = '  Engenheira  '
        snapshot = dict(person_company_data)

        validate_record('personCompany', person_company_data)

        assert person_company_data == snapshot


class TestLocalizedValidation:

    def test_portuguese_messages(self, person_company_data):
        person_company_data.update(startDate='2024-01-01', endDate='2023-01-01')

        result = validate_record('personCompany', person_company_data,
                                 localization=LocalizationContext('pt'))

        assert result.errors == {
            'endDate': ["A data de término deve ser posterior à data de início"]
        }

    def test_regional_locale_uses_language_catalog(self):
        result = validate_record('city', {}, localization=LocalizationContext('pt-BR'))

        assert result.errors == {'name': ["Nome da cidade é obrigatório"]}

    def test_english_context_keeps_source_text(self):
        result = validate_record('city', {}, localization=LocalizationContext('en'))

        assert result.errors == {'name': ["City name is required"]}
