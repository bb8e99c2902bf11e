"""
Field-Linking Indicator

Form fields of an individual process can be linked to document types through
document type field mappings. When a field is linked, the form shows a small
indicator whose tooltip names the linked document types.

This module provides three pieces:

    LinkedFieldsMapBuilder: Recomputes, from the document store, the map of
        ``"<entityType>:<fieldPath>"`` to the document types linked to that
        field for one individual process.
    LinkedFieldsCache: Explicit cache-or-null holder for those maps. A process
        whose map has not been pulled yet is "not yet available" (``None``).
    LinkedDocIndicator: Read-through lookup answering "what should be shown
        next to this field", which is nothing when the process id is absent,
        the map is not yet available or no entry exists for the key.

The builder is the only part performing I/O; the indicator never raises for a
missing map.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog
from cachetools import TTLCache

from .exceptions import DataProcessingError

logger = structlog.get_logger("business.field_links")

# Document store collections read by the builder
INDIVIDUAL_PROCESSES = 'individualProcesses'
DOCUMENT_TYPES = 'documentTypes'
DOCUMENT_TYPES_LEGAL_FRAMEWORKS = 'documentTypesLegalFrameworks'
DOCUMENTS_DELIVERED = 'documentsDelivered'
DOCUMENT_TYPE_FIELD_MAPPINGS = 'documentTypeFieldMappings'

TOOLTIP_SEPARATOR = ", "

DEFAULT_CACHE_MAX_ENTRIES = 1024
DEFAULT_CACHE_TTL_SECONDS = 300


def field_key(entity_type: str, field_path: str) -> str:
    """Compose the linked fields map key for a field."""
    return f"{entity_type}:{field_path}"


def _document_id(document: Dict[str, Any]) -> str:
    return str(document['_id'])


@dataclass(frozen=True)
class LinkedDocument:
    """A document type linked to a field, with the latest delivered document of that type."""
    document_type_id: str
    document_type_name: str
    delivered_document_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'documentTypeId': self.document_type_id,
            'documentTypeName': self.document_type_name,
        }
        if self.delivered_document_id is not None:
            data['deliveredDocumentId'] = self.delivered_document_id
        return data


LinkedFieldsMap = Dict[str, List[LinkedDocument]]


class LinkedFieldsMapBuilder:
    """
    Build the linked fields map of an individual process from the document store.

    Document types are collected from the process's legal framework
    associations and from the documents delivered for the process, in that
    order. Inactive document types and inactive field mappings are skipped,
    and each document type appears at most once per key.

    Args:
        store: Object exposing ``find_one_by_id(collection, id)`` and
            ``find_many(collection, filter)``, e.g. ``MongoDBManager``
    """

    def __init__(self, store):
        self.store = store

    def find_process(self, process_id: str) -> Optional[Dict[str, Any]]:
        process = self.store.find_one_by_id(INDIVIDUAL_PROCESSES, process_id)
        if process is None:
            logger.debug("Individual process not found for linked fields",
                         process_id=process_id)
        return process

    def build(self, process_id: str) -> LinkedFieldsMap:
        """
        Recompute the linked fields map for a process.

        Args:
            process_id: Individual process identifier

        Returns:
            Map of field key to linked documents; empty for unknown processes
        """
        process = self.find_process(process_id)
        if process is None:
            return {}
        return self.build_for_process(process)

    def build_for_process(self, process: Dict[str, Any]) -> LinkedFieldsMap:
        """Recompute the linked fields map for an already loaded process document."""
        process_id = _document_id(process)

        # dict as an insertion-ordered set of document type ids
        document_type_ids: Dict[str, None] = {}

        legal_framework_id = process.get('legalFrameworkId')
        if legal_framework_id:
            associations = self.store.find_many(
                DOCUMENT_TYPES_LEGAL_FRAMEWORKS,
                {'legalFrameworkId': legal_framework_id}
            )
            for association in associations:
                document_type_ids[str(association['documentTypeId'])] = None

        delivered_documents = self.store.find_many(
            DOCUMENTS_DELIVERED,
            {'individualProcessId': process_id}
        )
        latest_delivered: Dict[str, str] = {}
        for document in delivered_documents:
            document_type_id = document.get('documentTypeId')
            if document_type_id:
                document_type_ids[str(document_type_id)] = None
                # later deliveries replace earlier ones
                latest_delivered[str(document_type_id)] = _document_id(document)

        if not document_type_ids:
            return {}

        linked_fields: LinkedFieldsMap = {}
        for document_type_id in document_type_ids:
            document_type = self.store.find_one_by_id(DOCUMENT_TYPES, document_type_id)
            if document_type is None or document_type.get('isActive') is False:
                continue

            mappings = self.store.find_many(
                DOCUMENT_TYPE_FIELD_MAPPINGS,
                {'documentTypeId': document_type_id}
            )
            for mapping in mappings:
                if not mapping.get('isActive'):
                    continue

                links = linked_fields.setdefault(
                    field_key(mapping['entityType'], mapping['fieldPath']), []
                )
                if any(link.document_type_id == document_type_id for link in links):
                    continue
                links.append(LinkedDocument(
                    document_type_id=document_type_id,
                    document_type_name=document_type.get('name', ''),
                    delivered_document_id=latest_delivered.get(document_type_id)
                ))

        logger.info("Linked fields map built",
                    process_id=process_id,
                    document_type_count=len(document_type_ids),
                    linked_field_count=len(linked_fields))
        return linked_fields


class LinkedFieldsCache:
    """
    Explicit cache-or-null store of linked fields maps, keyed by process id.

    ``get`` never triggers I/O; ``refresh`` pulls a fresh map from the
    builder. Maps expire after ``ttl_seconds`` and at most ``max_entries``
    processes are held; the least recently used map is evicted first. Maps of
    unknown processes are returned but never stored.

    Args:
        builder: Linked fields map builder
        max_entries: Maximum number of cached process maps
        ttl_seconds: Lifetime of a cached map
        timer: Clock used for expiry, ``time.monotonic`` by default
    """

    def __init__(self, builder: LinkedFieldsMapBuilder,
                 max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
                 ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
                 timer: Callable[[], float] = time.monotonic):
        self.builder = builder
        self._maps: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=timer)
        self._lock = threading.RLock()

    @property
    def max_entries(self) -> int:
        return int(self._maps.maxsize)

    def get(self, process_id: Optional[str]) -> Optional[LinkedFieldsMap]:
        """Return the cached map, or None when it has not been pulled yet or expired."""
        if not process_id:
            return None
        with self._lock:
            return self._maps.get(process_id)

    def refresh(self, process_id: str) -> LinkedFieldsMap:
        """
        Recompute the map for a process, caching it when the process exists.

        Raises:
            DataProcessingError: If no process id is given
        """
        if not process_id:
            raise DataProcessingError(
                message="A process id is required to build linked fields",
                error_code="PROCESS_ID_REQUIRED",
                processing_stage="linked_fields_refresh"
            )

        process = self.builder.find_process(process_id)
        if process is None:
            self.invalidate(process_id)
            return {}

        linked_fields = self.builder.build_for_process(process)
        with self._lock:
            self._maps[process_id] = linked_fields
        return linked_fields

    def get_or_refresh(self, process_id: str) -> LinkedFieldsMap:
        cached = self.get(process_id)
        if cached is not None:
            return cached
        return self.refresh(process_id)

    def invalidate(self, process_id: Optional[str] = None) -> None:
        """Drop the map of one process, or every map when no id is given."""
        with self._lock:
            if process_id is None:
                self._maps.clear()
            else:
                self._maps.pop(process_id, None)

    def __contains__(self, process_id: str) -> bool:
        with self._lock:
            return process_id in self._maps

    def __len__(self) -> int:
        with self._lock:
            self._maps.expire()
            return len(self._maps)


class LinkedDocIndicator:
    """
    Indicator shown next to a form field that is linked to document types.

    Example:
        indicator = LinkedDocIndicator(cache)
        indicator.render('proc_1', 'passport', 'passportNumber')
        # 'Passaporte, Visto'  or  None
    """

    def __init__(self, cache: LinkedFieldsCache):
        self.cache = cache

    def links(self, process_id: Optional[str], entity_type: str,
              field_path: str) -> Optional[List[LinkedDocument]]:
        """Linked documents of the field, or None when nothing should be shown."""
        if not process_id:
            return None

        linked_fields = self.cache.get(process_id)
        if linked_fields is None:
            return None

        links = linked_fields.get(field_key(entity_type, field_path))
        if not links:
            return None
        return list(links)

    def render(self, process_id: Optional[str], entity_type: str,
               field_path: str) -> Optional[str]:
        """Tooltip text naming the linked document types, or None."""
        links = self.links(process_id, entity_type, field_path)
        if links is None:
            return None
        return TOOLTIP_SEPARATOR.join(link.document_type_name for link in links)


def serialize_linked_fields(linked_fields: LinkedFieldsMap) -> Dict[str, List[Dict[str, Any]]]:
    """Convert a linked fields map into JSON-ready dictionaries."""
    return {
        key: [link.to_dict() for link in links]
        for key, links in linked_fields.items()
    }


__all__ = [
    'INDIVIDUAL_PROCESSES',
    'DOCUMENT_TYPES',
    'DOCUMENT_TYPES_LEGAL_FRAMEWORKS',
    'DOCUMENTS_DELIVERED',
    'DOCUMENT_TYPE_FIELD_MAPPINGS',
    'field_key',
    'LinkedDocument',
    'LinkedFieldsMap',
    'LinkedFieldsMapBuilder',
    'LinkedFieldsCache',
    'LinkedDocIndicator',
    'serialize_linked_fields',
]
