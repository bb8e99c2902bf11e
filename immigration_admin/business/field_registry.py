"""
Field Registry

Static catalogue of the entity fields that legal framework information
requirements and document type field mappings can point at. Each entry carries
the field path, its Portuguese and English labels and the kind of input that
edits it. The ``(entity_type, field_path)`` pair is the key shared with the
linked fields map (see ``field_links.py``).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .models import EntityType

FIELD_TYPES = ('text', 'date', 'number', 'select', 'city', 'country')


@dataclass(frozen=True)
class FieldRegistryEntry:
    field_path: str
    label: str
    label_en: str
    field_type: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'fieldPath': self.field_path,
            'label': self.label,
            'labelEn': self.label_en,
            'fieldType': self.field_type,
        }


ENTITY_TYPE_LABELS: Dict[EntityType, Tuple[str, str]] = {
    EntityType.PERSON: ("Pessoa", "Person"),
    EntityType.INDIVIDUAL_PROCESS: ("Processo Individual", "Individual Process"),
    EntityType.PASSPORT: ("Passaporte", "Passport"),
    EntityType.COMPANY: ("Empresa", "Company"),
}

FIELD_REGISTRY: Dict[EntityType, Tuple[FieldRegistryEntry, ...]] = {
    EntityType.PERSON: (
        FieldRegistryEntry("givenNames", "Nome(s)", "Given name(s)", "text"),
        FieldRegistryEntry("middleName", "Nome do meio", "Middle name", "text"),
        FieldRegistryEntry("surname", "Sobrenome", "Surname", "text"),
        FieldRegistryEntry("email", "E-mail", "Email", "text"),
        FieldRegistryEntry("cpf", "CPF", "CPF", "text"),
        FieldRegistryEntry("birthDate", "Data de nascimento", "Date of birth", "date"),
        FieldRegistryEntry("birthCityId", "Cidade de nascimento", "City of birth", "city"),
        FieldRegistryEntry("nationalityId", "Nacionalidade", "Nationality", "country"),
        FieldRegistryEntry("maritalStatus", "Estado civil", "Marital status", "select"),
        FieldRegistryEntry("profession", "Profissão", "Profession", "text"),
        FieldRegistryEntry("cargo", "Cargo", "Position", "text"),
        FieldRegistryEntry("currentCityId", "Cidade de residência", "City of residence", "city"),
        FieldRegistryEntry("residenceSince", "Desde quando reside", "Residing since", "date"),
        FieldRegistryEntry("motherName", "Nome da mãe", "Mother's name", "text"),
        FieldRegistryEntry("fatherName", "Nome do pai", "Father's name", "text"),
        FieldRegistryEntry("phoneNumber", "Telefone", "Phone number", "text"),
        FieldRegistryEntry("address", "Endereço", "Address", "text"),
    ),
    EntityType.INDIVIDUAL_PROCESS: (
        FieldRegistryEntry("funcao", "Função / Duty", "Function / Duty", "text"),
        FieldRegistryEntry("monthlyAmountToReceive", "Salário mensal (BRL)",
                           "Monthly salary (BRL)", "number"),
        FieldRegistryEntry("firstEntryDate", "Data do 1º ingresso no Brasil",
                           "Date of 1st entry in Brazil", "date"),
        FieldRegistryEntry("qualification", "Qualificação", "Qualification", "select"),
        FieldRegistryEntry("professionalExperienceSince", "Experiência profissional desde",
                           "Professional experience since", "date"),
    ),
    EntityType.PASSPORT: (
        FieldRegistryEntry("passportNumber", "Número do passaporte", "Passport number", "text"),
        FieldRegistryEntry("issueDate", "Data de expedição", "Issue date", "date"),
        FieldRegistryEntry("expiryDate", "Válido até", "Valid until", "date"),
        FieldRegistryEntry("issuingCountryId", "País emissor", "Issuing country", "country"),
    ),
    EntityType.COMPANY: (
        FieldRegistryEntry("taxId", "CNPJ", "Tax ID (CNPJ)", "text"),
        FieldRegistryEntry("name", "Razão social", "Company name", "text"),
        FieldRegistryEntry("email", "E-mail da empresa", "Company email", "text"),
        FieldRegistryEntry("phoneNumber", "Telefone da empresa", "Company phone", "text"),
    ),
}

RESPONSIBLE_PARTY_OPTIONS: Tuple[Dict[str, str], ...] = (
    {'value': 'client', 'label': "Cliente", 'labelEn': "Client"},
    {'value': 'admin', 'label': "Admin", 'labelEn': "Admin"},
    {'value': 'company', 'label': "Empresa", 'labelEn': "Company"},
)

# Individual process fields a case status may mark as fillable
INDIVIDUAL_PROCESS_FILLABLE_FIELDS: Tuple[str, ...] = (
    'passportId',
    'applicantId',
    'processTypeId',
    'legalFrameworkId',
    'cboId',
    'mreOfficeNumber',
    'douNumber',
    'douSection',
    'douPage',
    'douDate',
    'protocolNumber',
    'rnmNumber',
    'rnmDeadline',
    'appointmentDateTime',
    'deadlineDate',
)


def _coerce_entity_type(entity_type: Union[EntityType, str]) -> Optional[EntityType]:
    if isinstance(entity_type, EntityType):
        return entity_type
    try:
        return EntityType(entity_type)
    except ValueError:
        return None


def get_field_entry(entity_type: Union[EntityType, str],
                    field_path: str) -> Optional[FieldRegistryEntry]:
    """
    Get the registry entry of a field.

    Args:
        entity_type: Entity tag, as enum member or its value
        field_path: Field path within the entity

    Returns:
        Matching entry, or None for unknown entity types and fields
    """
    resolved = _coerce_entity_type(entity_type)
    if resolved is None:
        return None
    for entry in FIELD_REGISTRY[resolved]:
        if entry.field_path == field_path:
            return entry
    return None


def get_fields_for_entity(entity_type: Union[EntityType, str]) -> List[FieldRegistryEntry]:
    resolved = _coerce_entity_type(entity_type)
    if resolved is None:
        return []
    return list(FIELD_REGISTRY[resolved])


def get_entity_type_options() -> List[Dict[str, str]]:
    """Return every entity type as a ``{value, label, labelEn}`` option."""
    return [
        {'value': entity_type.value, 'label': label, 'labelEn': label_en}
        for entity_type, (label, label_en) in ENTITY_TYPE_LABELS.items()
    ]


def field_label(entry: FieldRegistryEntry, locale: str) -> str:
    """Label of an entry for the given locale; Portuguese unless 'en'."""
    return entry.label_en if locale == 'en' else entry.label


__all__ = [
    'FIELD_TYPES',
    'FieldRegistryEntry',
    'ENTITY_TYPE_LABELS',
    'FIELD_REGISTRY',
    'RESPONSIBLE_PARTY_OPTIONS',
    'INDIVIDUAL_PROCESS_FILLABLE_FIELDS',
    'get_field_entry',
    'get_fields_for_entity',
    'get_entity_type_options',
    'field_label',
]
