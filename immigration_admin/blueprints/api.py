"""
Validation and Field-Linking API Blueprint

REST endpoints consumed by the administrative dashboard:

- GET  /api/v1/entities
    Registered entity validators and the linkable entity types.
- POST /api/v1/validate/<entity_type>
    Validate a form payload. 200 ``{valid: true, record}`` when accepted,
    422 ``{valid: false, errors}`` when rejected. ``?locale=pt`` selects the
    message catalog; unknown entity types answer 404.
- GET  /api/v1/individual-processes/<process_id>/linked-fields
    Linked fields map of a process (pulled from the store on first use,
    cached with a size and age bound; unknown processes are not cached).
- GET  /api/v1/individual-processes/<process_id>/linked-fields/indicator
    Indicator for one field: ``{tooltip, links}``; both empty when the field
    is not linked.

The document store and linked fields cache are held in ``app.extensions``
by ``create_app``.
"""

import time
from typing import Any, Dict

import structlog
from flask import Blueprint, current_app, jsonify, request

from immigration_admin.business.exceptions import DataProcessingError, ResourceNotFoundError
from immigration_admin.business.field_links import (
    LinkedDocIndicator,
    LinkedFieldsCache,
    serialize_linked_fields
)
from immigration_admin.business.field_registry import get_entity_type_options
from immigration_admin.business.localization import LocalizationContext
from immigration_admin.business.validators import VALIDATOR_REGISTRY, validate_record
from immigration_admin.monitoring.metrics import (
    linked_fields_build_seconds,
    record_linked_fields_lookup,
    record_validation
)

logger = structlog.get_logger("blueprints.api")

api_bp = Blueprint('api', __name__, url_prefix='/api/v1')

LINKED_FIELDS_CACHE_EXTENSION = 'linked_fields_cache'


def _linked_fields_cache() -> LinkedFieldsCache:
    return current_app.extensions[LINKED_FIELDS_CACHE_EXTENSION]


def _request_localization() -> LocalizationContext:
    locale = request.args.get('locale') or current_app.config.get('DEFAULT_LOCALE')
    return LocalizationContext(locale)


def _request_payload() -> Dict[str, Any]:
    """
    Parse the JSON object sent with the request.

    Raises:
        DataProcessingError: If the body is not a JSON object
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise DataProcessingError(
            message="Request body must be a JSON object",
            error_code="INVALID_REQUEST_BODY",
            processing_stage="request_parsing",
            data_type=type(payload).__name__
        )
    return payload


def _load_linked_fields(process_id: str):
    cache = _linked_fields_cache()
    cached = cache.get(process_id)
    record_linked_fields_lookup(cached is not None)
    if cached is not None:
        return cached

    start_time = time.perf_counter()
    linked_fields = cache.refresh(process_id)
    linked_fields_build_seconds.observe(time.perf_counter() - start_time)
    return linked_fields


@api_bp.route('/entities', methods=['GET'])
def list_entities():
    """
    List the entity types that can be validated or linked.

    Returns:
        JSON with ``validators`` (registry names) and ``linkableEntityTypes``
    """
    return jsonify({
        'validators': sorted(VALIDATOR_REGISTRY),
        'linkableEntityTypes': get_entity_type_options(),
    })


@api_bp.route('/validate/<entity_type>', methods=['POST'])
def validate_entity(entity_type: str):
    """
    Validate a form payload for an entity type.

    Parameters:
        entity_type (str): Validator registry name, e.g. ``personCompany``

    Returns:
        200 with the normalised record, or 422 with the field errors
    """
    if entity_type not in VALIDATOR_REGISTRY:
        raise ResourceNotFoundError(
            message=f"Unknown entity type: {entity_type}",
            error_code="ENTITY_TYPE_NOT_FOUND",
            resource_type="validator",
            resource_id=entity_type
        )

    payload = _request_payload()
    localization = _request_localization()

    result = validate_record(entity_type, payload, localization=localization)
    record_validation(entity_type, result.is_valid, result.errors.keys())

    status_code = 200 if result.is_valid else 422
    return jsonify(result.to_dict()), status_code


@api_bp.route('/individual-processes/<process_id>/linked-fields', methods=['GET'])
def get_linked_fields(process_id: str):
    """
    Linked fields map of an individual process.

    ``?refresh=true`` discards the cached map and rebuilds it.
    """
    if request.args.get('refresh', '').lower() == 'true':
        _linked_fields_cache().invalidate(process_id)

    linked_fields = _load_linked_fields(process_id)
    return jsonify({
        'individualProcessId': process_id,
        'linkedFields': serialize_linked_fields(linked_fields),
    })


@api_bp.route('/individual-processes/<process_id>/linked-fields/indicator', methods=['GET'])
def get_linked_field_indicator(process_id: str):
    """
    Indicator for one form field of an individual process.

    Query Parameters:
        entityType (str): Entity type tag, e.g. ``passport``
        fieldPath (str): Field path within the entity, e.g. ``passportNumber``

    Returns:
        JSON ``{tooltip, links}``; ``tooltip`` is null when nothing is linked
    """
    entity_type = request.args.get('entityType', '').strip()
    field_path = request.args.get('fieldPath', '').strip()
    missing = [name for name, value in (('entityType', entity_type), ('fieldPath', field_path))
               if not value]
    if missing:
        raise DataProcessingError(
            message=f"Missing query parameters: {', '.join(missing)}",
            error_code="MISSING_QUERY_PARAMETERS",
            processing_stage="request_parsing",
            context={'missing_parameters': missing}
        )

    _load_linked_fields(process_id)
    indicator = LinkedDocIndicator(_linked_fields_cache())
    links = indicator.links(process_id, entity_type, field_path) or []

    logger.debug("Linked field indicator resolved",
                 process_id=process_id,
                 entity_type=entity_type,
                 field_path=field_path,
                 link_count=len(links))

    return jsonify({
        'tooltip': indicator.render(process_id, entity_type, field_path),
        'links': [link.to_dict() for link in links],
    })


__all__ = [
    'api_bp',
    'LINKED_FIELDS_CACHE_EXTENSION',
]
