"""
MongoDB Document Store Access Layer

This module implements the read/write operations the service needs from the
document store using the PyMongo synchronous driver. Every operation goes
through the retry and circuit breaker decorators from ``exceptions.py`` so
callers only ever see ``DatabaseException`` subclasses.

Document identifiers are opaque strings. Records created by the
administrative front end carry string ids, records created through PyMongo
carry ``ObjectId`` ids; ``find_one_by_id`` accepts both.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog
from bson import ObjectId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from .exceptions import (
    DatabaseOperationType,
    QueryException,
    mongodb_circuit_breaker,
    with_database_retry
)

logger = structlog.get_logger("data.mongodb")


class MongoDBManager:
    """
    MongoDB database manager used by the field-linking lookup and the API.

    Example:
        manager = MongoDBManager(uri="mongodb://localhost:27017",
                                 database_name="immigration_admin")
        process = manager.find_one_by_id('individualProcesses', process_id)
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        database_name: Optional[str] = None,
        client: Optional[MongoClient] = None,
        database: Optional[Database] = None,
        server_selection_timeout_ms: int = 5000
    ):
        """
        Initialize the manager from a URI, an existing client or a database.

        Args:
            uri: MongoDB connection string, used when no client is given
            database_name: Target database name
            client: Existing MongoClient to reuse
            database: Existing database handle (takes precedence)
            server_selection_timeout_ms: Server selection timeout for new clients
        """
        if database is None:
            if client is None:
                client = MongoClient(uri, serverSelectionTimeoutMS=server_selection_timeout_ms)
            database = client[database_name]

        self._client = client
        self._database = database
        self.database_name = database_name or getattr(database, 'name', None)

        logger.info("MongoDB manager initialized", database=self.database_name)

    @property
    def database(self) -> Database:
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """
        Get a collection handle.

        Args:
            collection_name: Name of the MongoDB collection

        Returns:
            PyMongo collection instance
        """
        return self._database[collection_name]

    @mongodb_circuit_breaker
    @with_database_retry(operation_type=DatabaseOperationType.READ)
    def find_one(self, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                 projection: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Find a single document.

        Args:
            collection_name: Target collection name
            filter_dict: Query filter (defaults to empty dict)
            projection: Fields to include/exclude in result

        Returns:
            Found document or None
        """
        filter_dict = filter_dict or {}
        result = self.get_collection(collection_name).find_one(filter_dict, projection=projection)

        logger.debug("Find one operation completed",
                     collection=collection_name,
                     filter_fields=list(filter_dict.keys()),
                     found=result is not None)
        return result

    @mongodb_circuit_breaker
    @with_database_retry(operation_type=DatabaseOperationType.READ)
    def find_many(self, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  projection: Optional[Dict[str, Any]] = None,
                  sort: Optional[List[Tuple[str, int]]] = None,
                  limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Find documents matching a filter, in natural (insertion) order unless sorted.

        Args:
            collection_name: Target collection name
            filter_dict: Query filter (defaults to empty dict)
            projection: Fields to include/exclude in result
            sort: Sort specification as list of (field, direction) tuples
            limit: Maximum number of documents to return

        Returns:
            List of found documents
        """
        filter_dict = filter_dict or {}
        cursor = self.get_collection(collection_name).find(filter_dict, projection=projection)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        result = list(cursor)

        logger.debug("Find many operation completed",
                     collection=collection_name,
                     filter_fields=list(filter_dict.keys()),
                     result_count=len(result))
        return result

    def find_one_by_id(self, collection_name: str, document_id: str,
                       projection: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Find a document by its identifier.

        The id is matched as given and, when it is a valid ObjectId string,
        also as an ObjectId.

        Args:
            collection_name: Target collection name
            document_id: Opaque document identifier
            projection: Fields to include/exclude in result

        Returns:
            Found document or None

        Raises:
            QueryException: If the identifier is empty or not a string/ObjectId
        """
        if isinstance(document_id, ObjectId):
            id_filter: Any = document_id
        elif isinstance(document_id, str) and document_id:
            if ObjectId.is_valid(document_id):
                id_filter = {'$in': [document_id, ObjectId(document_id)]}
            else:
                id_filter = document_id
        else:
            raise QueryException(
                f"Invalid document identifier: {document_id!r}",
                operation=DatabaseOperationType.READ,
                database=self.database_name,
                collection=collection_name
            )

        return self.find_one(collection_name, {'_id': id_filter}, projection=projection)

    @mongodb_circuit_breaker
    @with_database_retry(operation_type=DatabaseOperationType.WRITE)
    def insert_one(self, collection_name: str, document: Dict[str, Any]) -> str:
        """
        Insert a document, stamping ``_creationTime`` when absent.

        Args:
            collection_name: Target collection name
            document: Document to insert

        Returns:
            Inserted document id as a string
        """
        payload = dict(document)
        payload.setdefault(
            '_creationTime',
            datetime.now(timezone.utc).timestamp() * 1000
        )
        result = self.get_collection(collection_name).insert_one(payload)

        logger.info("Document inserted",
                    collection=collection_name,
                    document_id=str(result.inserted_id))
        return str(result.inserted_id)

    def health_check(self) -> Dict[str, Any]:
        """
        Ping the server.

        Returns:
            Dict with 'status' ('healthy'/'unhealthy') and details
        """
        health_status: Dict[str, Any] = {
            'status': 'unknown',
            'database': self.database_name,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._database.command('ping')
            health_status['status'] = 'healthy'
        except Exception as e:
            health_status['status'] = 'unhealthy'
            health_status['error_type'] = type(e).__name__
            logger.warning("MongoDB health check failed", error_type=type(e).__name__)
        return health_status


def create_mongodb_manager(uri: str, database_name: str,
                           server_selection_timeout_ms: int = 5000) -> MongoDBManager:
    """
    Factory function to create a MongoDB manager from configuration values.

    Args:
        uri: MongoDB connection string
        database_name: Target database name
        server_selection_timeout_ms: Server selection timeout for the client

    Returns:
        Configured MongoDBManager
    """
    return MongoDBManager(uri=uri, database_name=database_name,
                          server_selection_timeout_ms=server_selection_timeout_ms)


__all__ = [
    'MongoDBManager',
    'create_mongodb_manager',
]
