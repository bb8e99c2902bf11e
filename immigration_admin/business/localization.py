"""
Message Localization for Validation Errors

Validators produce English source messages. A ``LocalizationContext`` is
passed explicitly to ``validate_record`` (or created by the API from the
``locale`` query parameter) and translates each message through a static
catalog. Messages without a catalog entry fall back to the source text.

Supported locales are ``en`` (identity) and ``pt``.
"""

from typing import Dict, List, Optional

import structlog

logger = structlog.get_logger("business.localization")

DEFAULT_LOCALE = 'en'

# English source text for message keys that are not plain sentences
_EN_CATALOG: Dict[str, str] = {
    "Common.datePicker.invalidFormat": "Invalid date format",
    "Common.datePicker.invalidDate": "Invalid date",
    "Common.datePicker.dateOutOfRange": "Date must be between 1900 and 2100",
    "Common.datePicker.invalidDay": "Invalid day for the selected month",
    "Common.datePicker.invalidMonth": "Invalid month",
}

_PT_CATALOG: Dict[str, str] = {
    # Cities and consulates
    "City name is required": "Nome da cidade é obrigatório",
    "Consulate name is required": "Nome do consulado é obrigatório",

    # CBO codes
    "CBO code must be in the format XXXX-XX (e.g., 2521-05)":
        "O código CBO deve estar no formato XXXX-XX (ex.: 2521-05)",
    "Title is required": "Título é obrigatório",

    # Companies
    "Company name is required": "Nome da empresa é obrigatório",
    "Tax ID is required": "CNPJ é obrigatório",
    "Invalid URL format": "Formato de URL inválido",
    "Address is required": "Endereço é obrigatório",
    "City is required": "Cidade é obrigatória",
    "Phone number is required": "Telefone é obrigatório",
    "Email is required": "E-mail é obrigatório",
    "Invalid email format": "Formato de e-mail inválido",
    "Invalid contact person": "Pessoa de contato inválida",

    # Phone numbers
    "Phone number is too short": "Telefone muito curto",
    "Phone number is too long": "Telefone muito longo",
    "Phone number must have between 7 and 25 digits":
        "O telefone deve ter entre 7 e 25 dígitos",
    "Invalid international phone number format. Must start with country code (e.g., +55)":
        "Formato de telefone internacional inválido. Deve começar com o código do país (ex.: +55)",

    # Person/company relationships
    "Person is required": "Pessoa é obrigatória",
    "Company is required": "Empresa é obrigatória",
    "Role must be at least 2 characters": "O cargo deve ter pelo menos 2 caracteres",
    "Start date is required": "Data de início é obrigatória",
    "Invalid date": "Data inválida",
    "Current employment cannot have an end date":
        "Emprego atual não pode ter data de término",
    "End date must be after start date": "A data de término deve ser posterior à data de início",

    # Legal framework information requirements
    "Legal framework is required": "Amparo legal é obrigatório",
    "Entity type is required": "Tipo de entidade é obrigatório",
    "Field is required": "Campo é obrigatório",
    "Label is required": "Rótulo é obrigatório",
    "Responsible party is required": "Responsável é obrigatório",
    "Must be a boolean": "Deve ser verdadeiro ou falso",
    "Must be a number": "Deve ser um número",
    "Sort order must be zero or greater": "A ordem deve ser zero ou maior",

    # Passports
    "Person ID is required": "Pessoa é obrigatória",
    "Passport number must be at least 3 characters":
        "O número do passaporte deve ter pelo menos 3 caracteres",
    "Issuing country is required": "País emissor é obrigatório",
    "Issue date is required": "Data de emissão é obrigatória",
    "Expiry date is required": "Data de validade é obrigatória",
    "Expiry date must be after issue date":
        "A data de validade deve ser posterior à data de emissão",
    "Issue date cannot be in the future": "A data de emissão não pode estar no futuro",

    # Document categories, economic activities and case statuses
    "Name must be at least 2 characters": "O nome deve ter pelo menos 2 caracteres",
    "Name must be at most 100 characters": "O nome deve ter no máximo 100 caracteres",
    "Name is required": "Nome é obrigatório",
    "Code is required": "Código é obrigatório",
    "Code must be at least 2 characters": "O código deve ter pelo menos 2 caracteres",
    "Code must be at most 50 characters": "O código deve ter no máximo 50 caracteres",
    "Code must contain only uppercase letters, numbers and underscores":
        "O código deve conter apenas letras maiúsculas, números e sublinhados",
    "Code must contain only lowercase letters, numbers and underscores":
        "O código deve conter apenas letras minúsculas, números e sublinhados",
    "Description must be at most 500 characters":
        "A descrição deve ter no máximo 500 caracteres",
    "Invalid category": "Categoria inválida",
    "Color must be a valid hex color (e.g., #FF0000)":
        "A cor deve ser um hexadecimal válido (ex.: #FF0000)",
    "Sort order must be between 1 and 9999": "A ordem deve estar entre 1 e 9999",
    "Order number must be between 1 and 99": "O número de ordem deve estar entre 1 e 99",
    "Unknown fillable field": "Campo preenchível desconhecido",

    # Manual date entry
    "Common.datePicker.invalidFormat": "Formato de data inválido",
    "Common.datePicker.invalidDate": "Data inválida",
    "Common.datePicker.dateOutOfRange": "A data deve estar entre 1900 e 2100",
    "Common.datePicker.invalidDay": "Dia inválido para o mês selecionado",
    "Common.datePicker.invalidMonth": "Mês inválido",

    # Built-in marshmallow field messages
    "Not a valid string.": "Não é um texto válido.",
    "Not a valid boolean.": "Não é um valor verdadeiro ou falso válido.",
    "Not a valid list.": "Não é uma lista válida.",
    "Not a valid integer.": "Não é um número inteiro válido.",
    "Not a valid number.": "Não é um número válido.",
    "Special numeric values (nan or infinity) are not permitted.":
        "Valores numéricos especiais (nan ou infinito) não são permitidos.",
    "Not a valid date.": "Não é uma data válida.",
    "Not a valid URL.": "Não é uma URL válida.",
    "Invalid input type.": "Tipo de entrada inválido.",
    "Field may not be null.": "O campo não pode ser nulo.",
    "Missing data for required field.": "Campo obrigatório ausente.",
}

MESSAGE_CATALOGS: Dict[str, Dict[str, str]] = {
    'en': _EN_CATALOG,
    'pt': _PT_CATALOG,
}


class LocalizationContext:
    """
    Translate validator messages for a single locale.

    Example:
        ctx = LocalizationContext('pt')
        ctx.gettext("City name is required")  # 'Nome da cidade é obrigatório'
        ctx.gettext("Something new")          # 'Something new'
    """

    def __init__(self, locale: Optional[str] = None):
        requested = (locale or DEFAULT_LOCALE).split('-')[0].split('_')[0].lower()
        if requested not in MESSAGE_CATALOGS:
            logger.debug("Unsupported locale requested, using default",
                         requested_locale=locale,
                         default_locale=DEFAULT_LOCALE)
            requested = DEFAULT_LOCALE
        self.locale = requested
        self._catalog = MESSAGE_CATALOGS[requested]

    def gettext(self, message: str) -> str:
        """Return the translated message, or the source text when uncatalogued."""
        return self._catalog.get(message, message)

    def translate_errors(self, errors: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """Translate every message of a field path to messages mapping."""
        return {
            path: [self.gettext(message) for message in messages]
            for path, messages in errors.items()
        }

    def __repr__(self) -> str:
        return f"LocalizationContext(locale={self.locale!r})"


def supported_locales() -> List[str]:
    return sorted(MESSAGE_CATALOGS)


__all__ = [
    'DEFAULT_LOCALE',
    'MESSAGE_CATALOGS',
    'LocalizationContext',
    'supported_locales',
]
