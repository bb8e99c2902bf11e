"""
Global pytest Configuration and Fixtures

Provides the Flask application and test client built by the application
factory, plus an in-memory document store exposed through a
``unittest.mock`` double of ``MongoDBManager``.

Fixtures:
- store_documents: Collection name to list of documents backing the mock store
- mock_store: MongoDBManager double answering find_one_by_id / find_many
- flask_app: Application created with the testing configuration
- client: Flask test client
- linked_process_documents: Seeded individual process with linked documents
"""

from typing import Any, Dict, List
from unittest.mock import Mock

import pytest
from flask import Flask
from flask.testing import FlaskClient

from immigration_admin.app import create_app
from immigration_admin.data.mongodb import MongoDBManager


def _matches(document: Dict[str, Any], filter_dict: Dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in filter_dict.items())


@pytest.fixture
def store_documents() -> Dict[str, List[Dict[str, Any]]]:
    """Documents of the mock store, keyed by collection name."""
    return {}


@pytest.fixture
def mock_store(store_documents) -> Mock:
    """
    Document store double with equality filtering over ``store_documents``.

    Calls are recorded so tests can assert how often the store was hit.
    """
    store = Mock(spec=MongoDBManager)

    def find_one_by_id(collection_name, document_id, projection=None):
        for document in store_documents.get(collection_name, []):
            if str(document.get('_id')) == str(document_id):
                return document
        return None

    def find_many(collection_name, filter_dict=None, projection=None, sort=None, limit=None):
        return [
            document for document in store_documents.get(collection_name, [])
            if _matches(document, filter_dict or {})
        ]

    store.find_one_by_id.side_effect = find_one_by_id
    store.find_many.side_effect = find_many
    store.health_check.return_value = {'status': 'healthy', 'database': 'immigration_admin_test'}
    return store


@pytest.fixture
def flask_app(mock_store) -> Flask:
    """Flask application using the testing configuration and the mock store."""
    app = create_app('testing', document_store=mock_store)
    with app.app_context():
        yield app


@pytest.fixture
def client(flask_app) -> FlaskClient:
    return flask_app.test_client()


@pytest.fixture
def linked_process_documents(store_documents) -> Dict[str, List[Dict[str, Any]]]:
    """
    Seed one individual process whose legal framework requires a passport
    document and whose delivered documents include a visa and two passports.
    """
    store_documents.update({
        'individualProcesses': [
            {'_id': 'proc_1', 'legalFrameworkId': 'lf_1', 'personId': 'person_1'},
            {'_id': 'proc_2', 'personId': 'person_2'},
        ],
        'documentTypesLegalFrameworks': [
            {'_id': 'dtlf_1', 'legalFrameworkId': 'lf_1', 'documentTypeId': 'dt_passport'},
        ],
        'documentsDelivered': [
            {'_id': 'dd_1', 'individualProcessId': 'proc_1', 'documentTypeId': 'dt_passport'},
            {'_id': 'dd_2', 'individualProcessId': 'proc_1', 'documentTypeId': 'dt_visa'},
            {'_id': 'dd_3', 'individualProcessId': 'proc_1', 'documentTypeId': 'dt_passport'},
            {'_id': 'dd_4', 'individualProcessId': 'proc_1', 'documentTypeId': 'dt_old'},
        ],
        'documentTypes': [
            {'_id': 'dt_passport', 'name': 'Passaporte', 'isActive': True},
            {'_id': 'dt_visa', 'name': 'Visto'},
            {'_id': 'dt_old', 'name': 'Documento antigo', 'isActive': False},
        ],
        'documentTypeFieldMappings': [
            {'_id': 'm_1', 'documentTypeId': 'dt_passport', 'entityType': 'passport',
             'fieldPath': 'passportNumber', 'isActive': True},
            {'_id': 'm_2', 'documentTypeId': 'dt_passport', 'entityType': 'passport',
             'fieldPath': 'expiryDate', 'isActive': True},
            {'_id': 'm_3', 'documentTypeId': 'dt_visa', 'entityType': 'passport',
             'fieldPath': 'passportNumber', 'isActive': True},
            {'_id': 'm_4', 'documentTypeId': 'dt_visa', 'entityType': 'person',
             'fieldPath': 'birthDate', 'isActive': False},
            {'_id': 'm_5', 'documentTypeId': 'dt_old', 'entityType': 'person',
             'fieldPath': 'fullName', 'isActive': True},
            {'_id': 'm_6', 'documentTypeId': 'dt_passport', 'entityType': 'passport',
             'fieldPath': 'passportNumber', 'isActive': True},
        ],
    })
    return store_documents
