"""
Prometheus Metrics for the Immigration Admin API

Counters for validation outcomes and linked fields lookups, plus the
``/metrics`` exposition helper. Metrics live in the default
``prometheus_client`` registry together with the document store error
counters from ``immigration_admin.data.exceptions``.
"""

from typing import Tuple

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

validation_records_total = Counter(
    'immigration_admin_validation_records_total',
    'Records validated through the API by entity type and outcome',
    ['entity_type', 'outcome']
)

validation_field_errors_total = Counter(
    'immigration_admin_validation_field_errors_total',
    'Field errors reported by entity type and field path',
    ['entity_type', 'field_path']
)

linked_fields_lookups_total = Counter(
    'immigration_admin_linked_fields_lookups_total',
    'Linked fields map lookups by cache outcome',
    ['outcome']
)

linked_fields_build_seconds = Histogram(
    'immigration_admin_linked_fields_build_seconds',
    'Time spent rebuilding a linked fields map from the document store'
)


def record_validation(entity_type: str, is_valid: bool, field_paths=()) -> None:
    """
    Record the outcome of one validation request.

    Args:
        entity_type: Registry name of the validated entity
        is_valid: Whether the record was accepted
        field_paths: Paths that carried errors, for rejected records
    """
    validation_records_total.labels(
        entity_type=entity_type,
        outcome='accepted' if is_valid else 'rejected'
    ).inc()
    for field_path in field_paths:
        # list item paths collapse onto their field
        validation_field_errors_total.labels(
            entity_type=entity_type,
            field_path=field_path.split('.')[0]
        ).inc()


def record_linked_fields_lookup(cache_hit: bool) -> None:
    linked_fields_lookups_total.labels(outcome='hit' if cache_hit else 'miss').inc()


def metrics_response() -> Tuple[bytes, int, dict]:
    """Flask response tuple with the Prometheus text exposition."""
    return generate_latest(), 200, {'Content-Type': CONTENT_TYPE_LATEST}


__all__ = [
    'validation_records_total',
    'validation_field_errors_total',
    'linked_fields_lookups_total',
    'linked_fields_build_seconds',
    'record_validation',
    'record_linked_fields_lookup',
    'metrics_response',
]
