"""Tests for the backend REST repositories."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from domain import OperationLog, OperationType, UserRole
from infrastructure import (
    BackendCalendarRepository, BackendClient, BackendCustomHolidayRepository,
    BackendIdentityProvider, BackendOperationLogRepository, CacheKeys
)
from infrastructure.repositories import parse_content_range_total
from monitoring import ErrorCode, NotFoundError, PersistenceError


def make_response(status=200, payload=None, headers=None):
    response = requests.Response()
    response.status_code = status
    response.url = 'https://backend.example.com/rest/v1/test'
    response._content = b'' if payload is None else json.dumps(payload).encode('utf-8')
    response.headers.update(headers or {})
    return response


@pytest.fixture
def client():
    client = BackendClient('https://backend.example.com/', api_key='anon', service_key='service')
    client.session = MagicMock()
    client.session.request.return_value = make_response(payload=[])
    return client


def last_call(client):
    args, kwargs = client.session.request.call_args
    return args[0], args[1], kwargs


class TestBackendClient:

    def test_default_headers(self):
        client = BackendClient('https://backend.example.com', api_key='anon')

        assert client.session.headers['apikey'] == 'anon'
        assert client.session.headers['Authorization'] == 'Bearer anon'

    def test_service_key_is_bearer(self):
        client = BackendClient('https://backend.example.com', api_key='anon', service_key='service')

        assert client.session.headers['Authorization'] == 'Bearer service'

    def test_rest_path_and_timeout(self, client):
        client.rest('GET', 'calendar_events')

        method, url, kwargs = last_call(client)
        assert method == 'GET'
        assert url == 'https://backend.example.com/rest/v1/calendar_events'
        assert kwargs['timeout'] == 30

    def test_http_error_becomes_persistence_error(self, client):
        client.session.request.return_value = make_response(status=500, payload={'message': 'boom'})

        with pytest.raises(PersistenceError) as excinfo:
            client.rest('GET', 'calendar_events')

        assert excinfo.value.details == {'status': 500, 'path': '/rest/v1/calendar_events'}

    def test_timeout(self, client):
        client.session.request.side_effect = requests.Timeout('slow')

        with pytest.raises(PersistenceError) as excinfo:
            client.rest('GET', 'calendar_events')

        assert excinfo.value.error_code == ErrorCode.BACKEND_TIMEOUT

    def test_connection_error(self, client):
        client.session.request.side_effect = requests.ConnectionError('refused')

        with pytest.raises(PersistenceError):
            client.rest('GET', 'calendar_events')

    def test_json_rows(self):
        assert BackendClient.json_rows(make_response()) == []
        assert BackendClient.json_rows(make_response(payload={'id': 1})) == [{'id': 1}]
        assert BackendClient.json_rows(make_response(payload=[{'id': 1}, {'id': 2}])) == [{'id': 1}, {'id': 2}]


class TestBackendCalendarRepository:

    @pytest.mark.asyncio
    async def test_get_document(self, client):
        client.session.request.return_value = make_response(payload=[{'events': {'2025-03-10': {}}}])

        document = await BackendCalendarRepository(client).get_document('cal-1')

        assert document == {'2025-03-10': {}}
        _, _, kwargs = last_call(client)
        assert kwargs['params']['user_id'] == 'eq.cal-1'
        assert kwargs['params']['select'] == 'events'

    @pytest.mark.asyncio
    async def test_get_missing_document(self, client):
        assert await BackendCalendarRepository(client).get_document('cal-1') is None

    @pytest.mark.asyncio
    async def test_null_events_column(self, client):
        client.session.request.return_value = make_response(payload=[{'events': None}])

        assert await BackendCalendarRepository(client).get_document('cal-1') == {}

    @pytest.mark.asyncio
    async def test_upsert_merges_on_calendar_id(self, client):
        await BackendCalendarRepository(client).upsert_document('cal-1', {'2025-03-10': {}})

        method, url, kwargs = last_call(client)
        assert method == 'POST'
        assert url.endswith('/rest/v1/calendar_events')
        assert kwargs['params'] == {'on_conflict': 'user_id'}
        assert 'resolution=merge-duplicates' in kwargs['headers']['Prefer']
        assert kwargs['json'] == {'user_id': 'cal-1', 'events': {'2025-03-10': {}}}

    @pytest.mark.asyncio
    async def test_update_targets_row(self, client):
        await BackendCalendarRepository(client).update_document('cal-1', {})

        method, _, kwargs = last_call(client)
        assert method == 'PATCH'
        assert kwargs['params'] == {'user_id': 'eq.cal-1'}
        assert kwargs['json'] == {'events': {}}

    @pytest.mark.asyncio
    async def test_document_exists(self, client):
        repository = BackendCalendarRepository(client)
        assert await repository.document_exists('cal-1') is False

        client.session.request.return_value = make_response(payload=[{'id': 7}])
        assert await repository.document_exists('cal-1') is True

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, client):
        client.session.request.return_value = make_response(status=409)

        with pytest.raises(PersistenceError):
            await BackendCalendarRepository(client).upsert_document('cal-1', {})


class TestBackendCustomHolidayRepository:

    @pytest.mark.asyncio
    async def test_list(self, client):
        client.session.request.return_value = make_response(payload=[
            {'id': 3, 'date': '2025-03-10', 'name': 'Founding Day', 'created_by': 'u1',
             'created_at': '2025-01-01T00:00:00+00:00'}
        ])

        holidays = await BackendCustomHolidayRepository(client).list_custom_holidays()

        assert holidays[0].id == '3'
        assert holidays[0].name == 'Founding Day'

    @pytest.mark.asyncio
    async def test_insert_returns_stored_row(self, client):
        client.session.request.return_value = make_response(payload=[
            {'id': 'h1', 'date': '2025-03-10', 'name': 'Founding Day', 'created_by': 'u1',
             'created_at': '2025-01-01T00:00:00+00:00', 'type': 'custom'}
        ])

        holiday = await BackendCustomHolidayRepository(client).insert_custom_holiday({
            'date': '2025-03-10', 'name': 'Founding Day', 'created_by': 'u1'
        })

        assert holiday.id == 'h1'
        _, _, kwargs = last_call(client)
        assert kwargs['headers'] == {'Prefer': 'return=representation'}
        assert kwargs['json']['type'] == 'custom'

    @pytest.mark.asyncio
    async def test_delete_missing_row(self, client):
        with pytest.raises(NotFoundError):
            await BackendCustomHolidayRepository(client).delete_custom_holiday('h1')

    @pytest.mark.asyncio
    async def test_delete(self, client):
        client.session.request.return_value = make_response(payload=[{'id': 'h1'}])

        await BackendCustomHolidayRepository(client).delete_custom_holiday('h1')

        method, _, kwargs = last_call(client)
        assert method == 'DELETE'
        assert kwargs['params'] == {'id': 'eq.h1'}


class TestBackendOperationLogRepository:

    @pytest.mark.asyncio
    async def test_insert(self, client):
        entry = OperationLog(user_id='u1', user_email='a@example.com',
                             operation_type=OperationType.LOGIN, details='signed in')

        await BackendOperationLogRepository(client).insert_log(entry)

        _, _, kwargs = last_call(client)
        assert kwargs['json'][0]['operation_type'] == 'login'

    @pytest.mark.asyncio
    async def test_list_reads_total_from_content_range(self, client):
        client.session.request.return_value = make_response(
            payload=[{'id': 1, 'user_id': 'u1', 'operation_type': 'create_event', 'details': 'x'}],
            headers={'Content-Range': '20-20/21'}
        )

        logs, total = await BackendOperationLogRepository(client).list_logs(20, 20, user_id='u1')

        assert total == 21
        assert logs[0].operation_type == OperationType.CREATE_EVENT
        _, _, kwargs = last_call(client)
        assert kwargs['params']['offset'] == 20
        assert kwargs['params']['user_id'] == 'eq.u1'
        assert kwargs['headers'] == {'Prefer': 'count=exact'}


@pytest.mark.parametrize('header,expected', [
    ('0-19/123', 123),
    ('*/0', 0),
    ('0-19/*', 7),
    (None, 7),
    ('garbage', 7),
])
def test_parse_content_range_total(header, expected):
    assert parse_content_range_total(header, 7) == expected


class TestBackendIdentityProvider:

    @staticmethod
    def _responses(client, *responses):
        client.session.request.side_effect = list(responses)

    @pytest.mark.asyncio
    async def test_resolves_user_with_role(self, client, cache):
        self._responses(
            client,
            make_response(payload={'id': 'u1', 'email': 'a@example.com'}),
            make_response(payload=[{'id': 'u1', 'username': 'alice', 'name': 'Alice', 'role': 'admin'}]),
        )
        provider = BackendIdentityProvider(client, cache)

        user = await provider.resolve('token')

        assert user.username == 'alice'
        assert user.role == UserRole.ADMIN
        assert user.email == 'a@example.com'
        assert cache.get(CacheKeys.user_info('u1')) == user

        args, kwargs = client.session.request.call_args_list[0]
        assert args[1].endswith('/auth/v1/user')
        assert kwargs['headers'] == {'Authorization': 'Bearer token'}

    @pytest.mark.asyncio
    async def test_cached_profile_skips_users_table(self, client, cache):
        provider = BackendIdentityProvider(client, cache)
        self._responses(
            client,
            make_response(payload={'id': 'u1'}),
            make_response(payload=[{'id': 'u1', 'username': 'alice', 'role': 'user'}]),
            make_response(payload={'id': 'u1'}),
        )

        await provider.resolve('token')
        await provider.resolve('token')

        assert client.session.request.call_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize('status', [401, 403])
    async def test_rejected_token(self, client, status):
        self._responses(client, make_response(status=status))

        assert await BackendIdentityProvider(client).resolve('expired') is None

    @pytest.mark.asyncio
    async def test_backend_outage_propagates(self, client):
        self._responses(client, make_response(status=503))

        with pytest.raises(PersistenceError):
            await BackendIdentityProvider(client).resolve('token')

    @pytest.mark.asyncio
    async def test_unknown_role_defaults_to_user(self, client):
        self._responses(
            client,
            make_response(payload={'id': 'u1'}),
            make_response(payload=[{'id': 'u1', 'username': 'bob', 'role': 'owner'}]),
        )

        user = await BackendIdentityProvider(client).resolve('token')

        assert user.role == UserRole.USER

    @pytest.mark.asyncio
    async def test_empty_token(self, client):
        assert await BackendIdentityProvider(client).resolve('') is None
        client.session.request.assert_not_called()
