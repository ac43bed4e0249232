"""Shared fixtures and in-memory collaborators for the test suite."""

import copy
import uuid
from typing import Any, Dict, List, Optional, Tuple

import pytest

from application import HolidayManager, SharedCalendarStore
from config import BackendConfig, Config, ServerConfig
from domain import (
    CalendarDocumentRepository, CustomHoliday, CustomHolidayRepository, IdentityProvider,
    OperationLog, OperationLogRepository, User, UserRole
)
from infrastructure import ReadThroughCache
from monitoring import NotFoundError, PersistenceError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryCalendarRepository(CalendarDocumentRepository):
    """Document store backed by a dict; ``fail_writes`` simulates backend errors."""

    def __init__(self, rows: Optional[Dict[str, Dict[str, Any]]] = None):
        self.rows = copy.deepcopy(rows or {})
        self.reads = 0
        self.writes: List[Tuple[str, str]] = []
        self.fail_reads = False
        self.fail_writes = False

    async def get_document(self, calendar_id):
        if self.fail_reads:
            raise PersistenceError("read failed")
        self.reads += 1
        if calendar_id not in self.rows:
            return None
        return copy.deepcopy(self.rows[calendar_id])

    async def document_exists(self, calendar_id):
        return calendar_id in self.rows

    def _write(self, kind, calendar_id, document):
        if self.fail_writes:
            raise PersistenceError("write failed")
        self.writes.append((kind, calendar_id))
        self.rows[calendar_id] = copy.deepcopy(document)

    async def upsert_document(self, calendar_id, document):
        self._write('upsert', calendar_id, document)

    async def insert_document(self, calendar_id, document):
        self._write('insert', calendar_id, document)

    async def update_document(self, calendar_id, document):
        self._write('update', calendar_id, document)


class InMemoryCustomHolidayRepository(CustomHolidayRepository):

    def __init__(self, holidays: Optional[List[CustomHoliday]] = None):
        self.holidays = list(holidays or [])
        self.fail = False

    async def list_custom_holidays(self):
        if self.fail:
            raise PersistenceError("list failed")
        return sorted(self.holidays, key=lambda h: h.date)

    async def insert_custom_holiday(self, data):
        holiday = CustomHoliday(
            id=str(uuid.uuid4()),
            date=data['date'],
            name=data['name'],
            created_by=data.get('created_by') or '',
            created_at='2025-01-01T00:00:00+00:00',
            description=data.get('description'),
        )
        self.holidays.append(holiday)
        return holiday

    async def delete_custom_holiday(self, holiday_id):
        remaining = [h for h in self.holidays if h.id != holiday_id]
        if len(remaining) == len(self.holidays):
            raise NotFoundError(f"Custom holiday {holiday_id} not found")
        self.holidays = remaining


class InMemoryOperationLogRepository(OperationLogRepository):

    def __init__(self):
        self.entries: List[OperationLog] = []
        self.fail = False

    async def insert_log(self, entry):
        if self.fail:
            raise PersistenceError("insert failed")
        entry.id = str(len(self.entries) + 1)
        self.entries.append(entry)

    async def list_logs(self, offset, limit, user_id=None):
        if self.fail:
            raise PersistenceError("list failed")
        entries = [e for e in reversed(self.entries) if user_id is None or e.user_id == user_id]
        return entries[offset:offset + limit], len(entries)


class StaticIdentityProvider(IdentityProvider):
    """Maps fixed tokens to users."""

    def __init__(self, users: Dict[str, User]):
        self.users = users

    async def resolve(self, token):
        return self.users.get(token)


SUPER_ADMIN = User(id='u-super', username='root', name='Root', role=UserRole.SUPER_ADMIN)
ADMIN = User(id='u-admin', username='admin', name='Admin', role=UserRole.ADMIN)
MEMBER = User(id='u-member', username='member', name='Member', role=UserRole.USER)

TOKENS = {'super-token': SUPER_ADMIN, 'admin-token': ADMIN, 'member-token': MEMBER}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ReadThroughCache(default_ttl=300, clock=clock)


@pytest.fixture
def calendar_repository():
    return InMemoryCalendarRepository()


@pytest.fixture
def store(calendar_repository, cache):
    return SharedCalendarStore(calendar_repository, cache, calendar_id='shared', ttl=120)


@pytest.fixture
def custom_repository():
    return InMemoryCustomHolidayRepository()


@pytest.fixture
def holiday_manager(custom_repository):
    return HolidayManager(custom_repository=custom_repository)


@pytest.fixture
def operation_log_repository():
    return InMemoryOperationLogRepository()


@pytest.fixture
def config():
    return Config(
        backend=BackendConfig(url='https://backend.example.com', api_key='anon-key'),
        server=ServerConfig(public_tokens='feed-token')
    )


@pytest.fixture
def app(config, calendar_repository, custom_repository, operation_log_repository):
    app = create_test_app(config, calendar_repository, custom_repository, operation_log_repository)
    yield app
    app.extensions['team_calendar'].shutdown()


def create_test_app(config, calendar_repository, custom_repository, operation_log_repository):
    from presentation import create_app

    app = create_app(
        config,
        calendar_repository=calendar_repository,
        custom_holiday_repository=custom_repository,
        operation_log_repository=operation_log_repository,
        identity_provider=StaticIdentityProvider(TOKENS),
        start_sweeper=False
    )
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def auth(token: str) -> Dict[str, str]:
    return {'Authorization': f'Bearer {token}'}
