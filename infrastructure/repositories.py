"""Backend repositories for the team calendar server.

The hosted backend exposes its Postgres tables through a PostgREST API
(``/rest/v1/<table>``) and token validation through ``/auth/v1/user``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from domain import (
    CalendarDocumentRepository, CustomHoliday, CustomHolidayRepository, IdentityProvider,
    OperationLog, OperationLogRepository, User, UserRole
)
from monitoring.exceptions import ErrorCode, NotFoundError, PersistenceError

from .cache import CacheKeys, ReadThroughCache


USER_INFO_TTL_SECONDS = 5 * 60


class BackendClient:
    """Thin wrapper around a requests session for the backend REST API."""

    def __init__(self, base_url: str, api_key: str, service_key: str = "", timeout: int = 30):
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.service_key = service_key or api_key
        self.timeout = timeout
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

        self.session.headers.update({
            'apikey': self.api_key,
            'Authorization': f'Bearer {self.service_key}',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        })

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Send a request, converting transport and HTTP errors to PersistenceError."""
        url = f"{self.base_url}{path}"
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except requests.Timeout as e:
            self.logger.error(f"Backend request timed out: {method} {path}")
            raise PersistenceError(
                f"Backend request timed out: {method} {path}",
                error_code=ErrorCode.BACKEND_TIMEOUT,
                cause=e
            )
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            body = e.response.text[:500] if e.response is not None else ''
            self.logger.error(f"Backend request failed: {method} {path} -> {status}: {body}")
            raise PersistenceError(
                f"Backend request failed with status {status}",
                details={'status': status, 'path': path},
                cause=e
            )
        except requests.RequestException as e:
            self.logger.error(f"Backend request error: {method} {path}: {e}")
            raise PersistenceError(f"Backend request error: {e}", cause=e)

    def rest(self, method: str, table: str, **kwargs) -> requests.Response:
        return self.request(method, f"/rest/v1/{table}", **kwargs)

    @staticmethod
    def json_rows(response: requests.Response) -> List[Dict[str, Any]]:
        if not response.content:
            return []
        data = response.json()
        if isinstance(data, list):
            return data
        return [data] if data else []


class BackendCalendarRepository(CalendarDocumentRepository):
    """Calendar documents stored in the ``calendar_events`` table, one row per calendar id."""

    def __init__(self, client: BackendClient, table: str = 'calendar_events'):
        self.client = client
        self.table = table
        self.logger = logging.getLogger(__name__)

    async def get_document(self, calendar_id: str) -> Optional[Dict[str, Any]]:
        response = self.client.rest('GET', self.table, params={
            'select': 'events',
            'user_id': f'eq.{calendar_id}',
            'limit': 1,
        })
        rows = self.client.json_rows(response)
        if not rows:
            return None
        return rows[0].get('events') or {}

    async def document_exists(self, calendar_id: str) -> bool:
        response = self.client.rest('GET', self.table, params={
            'select': 'id',
            'user_id': f'eq.{calendar_id}',
            'limit': 1,
        })
        return bool(self.client.json_rows(response))

    async def upsert_document(self, calendar_id: str, document: Dict[str, Any]) -> None:
        self.client.rest(
            'POST', self.table,
            params={'on_conflict': 'user_id'},
            headers={'Prefer': 'resolution=merge-duplicates,return=minimal'},
            json={'user_id': calendar_id, 'events': document}
        )
        self.logger.debug(f"Upserted calendar document {calendar_id}")

    async def insert_document(self, calendar_id: str, document: Dict[str, Any]) -> None:
        self.client.rest(
            'POST', self.table,
            headers={'Prefer': 'return=minimal'},
            json=[{'user_id': calendar_id, 'events': document}]
        )

    async def update_document(self, calendar_id: str, document: Dict[str, Any]) -> None:
        self.client.rest(
            'PATCH', self.table,
            params={'user_id': f'eq.{calendar_id}'},
            headers={'Prefer': 'return=minimal'},
            json={'events': document}
        )


class BackendCustomHolidayRepository(CustomHolidayRepository):
    """Custom holidays stored in the ``custom_holidays`` table."""

    def __init__(self, client: BackendClient, table: str = 'custom_holidays'):
        self.client = client
        self.table = table

    async def list_custom_holidays(self) -> List[CustomHoliday]:
        response = self.client.rest('GET', self.table, params={'select': '*', 'order': 'date.asc'})
        return [CustomHoliday.from_record(row) for row in self.client.json_rows(response)]

    async def insert_custom_holiday(self, data: Dict[str, Any]) -> CustomHoliday:
        record = {
            'date': data['date'],
            'name': data['name'],
            'description': data.get('description'),
            'created_by': data.get('created_by'),
            'type': 'custom',
        }
        response = self.client.rest(
            'POST', self.table,
            headers={'Prefer': 'return=representation'},
            json=record
        )
        rows = self.client.json_rows(response)
        if not rows:
            raise PersistenceError("Backend returned no row for inserted custom holiday")
        return CustomHoliday.from_record(rows[0])

    async def delete_custom_holiday(self, holiday_id: str) -> None:
        response = self.client.rest(
            'DELETE', self.table,
            params={'id': f'eq.{holiday_id}'},
            headers={'Prefer': 'return=representation'}
        )
        if not self.client.json_rows(response):
            raise NotFoundError(f"Custom holiday {holiday_id} not found", details={'id': holiday_id})


class BackendOperationLogRepository(OperationLogRepository):
    """Audit entries stored in the ``operation_logs`` table."""

    def __init__(self, client: BackendClient, table: str = 'operation_logs'):
        self.client = client
        self.table = table

    async def insert_log(self, entry: OperationLog) -> None:
        self.client.rest(
            'POST', self.table,
            headers={'Prefer': 'return=minimal'},
            json=[{
                'user_id': entry.user_id,
                'user_email': entry.user_email,
                'operation_type': entry.operation_type.value,
                'details': entry.details,
            }]
        )

    async def list_logs(self, offset: int, limit: int,
                        user_id: Optional[str] = None) -> Tuple[List[OperationLog], int]:
        params = {
            'select': '*',
            'order': 'created_at.desc',
            'offset': offset,
            'limit': limit,
        }
        if user_id:
            params['user_id'] = f'eq.{user_id}'

        response = self.client.rest('GET', self.table, params=params, headers={'Prefer': 'count=exact'})
        logs = [OperationLog.from_record(row) for row in self.client.json_rows(response)]
        return logs, parse_content_range_total(response.headers.get('Content-Range'), len(logs))


def parse_content_range_total(header: Optional[str], default: int) -> int:
    """Total row count from a ``Content-Range: 0-19/123`` header."""
    if not header or '/' not in header:
        return default
    total = header.rsplit('/', 1)[1]
    try:
        return int(total)
    except ValueError:
        return default


class BackendIdentityProvider(IdentityProvider):
    """Resolves bearer tokens through the backend auth endpoint.

    The role comes from the ``users`` table; resolved users are cached per id.
    """

    def __init__(self, client: BackendClient, cache: Optional[ReadThroughCache] = None,
                 users_table: str = 'users'):
        self.client = client
        self.cache = cache
        self.users_table = users_table
        self.logger = logging.getLogger(__name__)

    async def resolve(self, token: str) -> Optional[User]:
        if not token:
            return None

        try:
            response = self.client.request(
                'GET', '/auth/v1/user',
                headers={'Authorization': f'Bearer {token}'}
            )
        except PersistenceError as e:
            status = e.details.get('status')
            if status in (401, 403):
                return None
            raise

        auth_user = response.json() or {}
        user_id = auth_user.get('id')
        if not user_id:
            return None

        cache_key = CacheKeys.user_info(user_id)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        rows = self.client.json_rows(self.client.rest('GET', self.users_table, params={
            'select': 'id,username,name,role,email',
            'id': f'eq.{user_id}',
            'limit': 1,
        }))
        profile = rows[0] if rows else {}

        try:
            role = UserRole(profile.get('role') or UserRole.USER.value)
        except ValueError:
            self.logger.warning(f"Unknown role {profile.get('role')!r} for user {user_id}")
            role = UserRole.USER

        user = User(
            id=str(user_id),
            username=profile.get('username') or auth_user.get('email') or str(user_id),
            name=profile.get('name') or '',
            role=role,
            email=profile.get('email') or auth_user.get('email'),
        )
        if self.cache is not None:
            self.cache.set(cache_key, user, USER_INFO_TTL_SECONDS)
        return user
