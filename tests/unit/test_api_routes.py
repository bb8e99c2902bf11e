"""
API route testing module.

Exercises the Flask blueprints through the test client with the mock document
store from ``conftest.py``.
"""

import pytest

from immigration_admin.app import create_app
from immigration_admin.blueprints.api import LINKED_FIELDS_CACHE_EXTENSION
from immigration_admin.data.exceptions import ConnectionException, DatabaseOperationType
from immigration_admin.monitoring.logging import CORRELATION_HEADER


class TestEntityEndpoints:

    def test_list_entities(self, client):
        response = client.get('/api/v1/entities')

        assert response.status_code == 200
        body = response.get_json()
        assert 'personCompany' in body['validators']
        assert body['validators'] == sorted(body['validators'])
        assert {'value': 'passport', 'label': 'Passaporte', 'labelEn': 'Passport'} in \
            body['linkableEntityTypes']


class TestValidateEndpoint:

    def test_accepted_record(self, client):
        response = client.post('/api/v1/validate/cboCode',
                               json={'code': '2521-05', 'title': 'Administrador'})

        assert response.status_code == 200
        assert response.get_json() == {
            'valid': True,
            'record': {'code': '2521-05', 'title': 'Administrador'},
        }

    def test_rejected_record(self, client):
        response = client.post('/api/v1/validate/personCompany', json={
            'personId': 'person_1',
            'companyId': 'company_1',
            'role': 'Analista',
            'startDate': '2024-01-01',
            'endDate': '2023-01-01',
        })

        assert response.status_code == 422
        assert response.get_json() == {
            'valid': False,
            'errors': {'endDate': ["End date must be after start date"]},
        }

    def test_locale_query_parameter(self, client):
        response = client.post('/api/v1/validate/city?locale=pt', json={'name': ''})

        assert response.status_code == 422
        assert response.get_json()['errors'] == {'name': ["Nome da cidade é obrigatório"]}

    def test_default_locale_from_configuration(self, flask_app, client):
        flask_app.config['DEFAULT_LOCALE'] = 'pt'

        response = client.post('/api/v1/validate/city', json={})

        assert response.get_json()['errors'] == {'name': ["Nome da cidade é obrigatório"]}

    def test_unknown_entity_type_is_not_found(self, client):
        response = client.post('/api/v1/validate/vehicle', json={'plate': 'ABC1D23'})

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == "ENTITY_TYPE_NOT_FOUND"

    @pytest.mark.parametrize('kwargs', [
        {'json': ['not', 'an', 'object']},
        {'data': 'plain text', 'content_type': 'text/plain'},
    ])
    def test_body_must_be_json_object(self, client, kwargs):
        response = client.post('/api/v1/validate/city', **kwargs)

        assert response.status_code == 400
        assert response.get_json()['error']['code'] == "INVALID_REQUEST_BODY"


class TestLinkedFieldsEndpoints:

    def test_linked_fields_map(self, client, linked_process_documents):
        response = client.get('/api/v1/individual-processes/proc_1/linked-fields')

        assert response.status_code == 200
        body = response.get_json()
        assert body['individualProcessId'] == 'proc_1'
        assert [link['documentTypeName'] for link in
                body['linkedFields']['passport:passportNumber']] == ['Passaporte', 'Visto']

    def test_map_cached_between_requests(self, client, mock_store, linked_process_documents):
        client.get('/api/v1/individual-processes/proc_1/linked-fields')
        calls_after_first = mock_store.find_many.call_count

        client.get('/api/v1/individual-processes/proc_1/linked-fields')
        assert mock_store.find_many.call_count == calls_after_first

        client.get('/api/v1/individual-processes/proc_1/linked-fields?refresh=true')
        assert mock_store.find_many.call_count > calls_after_first

    def test_unknown_process_has_empty_map(self, client, linked_process_documents):
        response = client.get('/api/v1/individual-processes/proc_missing/linked-fields')

        assert response.status_code == 200
        assert response.get_json()['linkedFields'] == {}

    def test_unknown_processes_do_not_grow_cache(self, flask_app, client, linked_process_documents):
        for index in range(20):
            response = client.get(f'/api/v1/individual-processes/bogus_{index}/linked-fields')
            assert response.status_code == 200

        assert len(flask_app.extensions[LINKED_FIELDS_CACHE_EXTENSION]) == 0

    def test_cache_bound_taken_from_configuration(self, mock_store):
        app = create_app('testing', document_store=mock_store, LINKED_FIELDS_CACHE_MAX_ENTRIES=2)

        assert app.extensions[LINKED_FIELDS_CACHE_EXTENSION].max_entries == 2

    def test_indicator_for_linked_field(self, client, linked_process_documents):
        response = client.get(
            '/api/v1/individual-processes/proc_1/linked-fields/indicator'
            '?entityType=passport&fieldPath=passportNumber'
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body['tooltip'] == 'Passaporte, Visto'
        assert body['links'][1] == {
            'documentTypeId': 'dt_visa',
            'documentTypeName': 'Visto',
            'deliveredDocumentId': 'dd_2',
        }

    def test_indicator_for_unlinked_field(self, client, linked_process_documents):
        response = client.get(
            '/api/v1/individual-processes/proc_1/linked-fields/indicator'
            '?entityType=passport&fieldPath=issueDate'
        )

        assert response.get_json() == {'tooltip': None, 'links': []}

    def test_indicator_requires_query_parameters(self, client):
        response = client.get(
            '/api/v1/individual-processes/proc_1/linked-fields/indicator?entityType=passport'
        )

        assert response.status_code == 400
        body = response.get_json()
        assert body['error']['code'] == "MISSING_QUERY_PARAMETERS"
        assert body['error']['context']['missing_parameters'] == ['fieldPath']

    def test_cache_held_in_app_extensions(self, flask_app, client, linked_process_documents):
        client.get('/api/v1/individual-processes/proc_1/linked-fields')

        assert 'proc_1' in flask_app.extensions[LINKED_FIELDS_CACHE_EXTENSION]

    def test_store_unavailable_is_service_unavailable(self, client, mock_store):
        mock_store.find_one_by_id.side_effect = ConnectionException(
            "Connection refused",
            operation=DatabaseOperationType.READ,
            collection='individualProcesses'
        )

        response = client.get('/api/v1/individual-processes/proc_1/linked-fields')

        assert response.status_code == 503
        assert response.get_json()['error']['code'] == 'ConnectionException'


class TestHealthEndpoints:

    def test_liveness(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_readiness_reflects_store_health(self, client, mock_store):
        assert client.get('/health/ready').status_code == 200

        mock_store.health_check.return_value = {'status': 'unhealthy', 'error_type': 'ServerSelectionTimeoutError'}
        response = client.get('/health/ready')

        assert response.status_code == 503
        assert response.get_json()['dependencies']['mongodb']['status'] == 'unhealthy'

    def test_metrics_exposition(self, client):
        client.post('/api/v1/validate/cboCode', json={'title': 'Administrador'})

        response = client.get('/metrics')

        assert response.status_code == 200
        assert b'immigration_admin_validation_records_total' in response.data


class TestRequestCorrelation:

    def test_correlation_id_echoed(self, client):
        response = client.get('/health', headers={CORRELATION_HEADER: 'req-123'})

        assert response.headers[CORRELATION_HEADER] == 'req-123'

    def test_correlation_id_generated(self, client):
        response = client.get('/health')

        assert response.headers[CORRELATION_HEADER]

    def test_unknown_route_rendered_as_json(self, client):
        response = client.get('/api/v1/nothing-here')

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'
