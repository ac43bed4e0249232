"""Read/modify/write access to the shared calendar document."""

import copy
import logging
from typing import Any, Dict, List, Tuple, Union

from domain import Activity, ActivityType, CalendarDocumentRepository
from domain.documents import (
    CalendarDocument, DateLike, day_timestamp, normalize_document, to_date_key, validate_document
)
from infrastructure.cache import CacheKeys, ReadThroughCache
from monitoring.exceptions import NotFoundError, ValidationError


SHARED_CALENDAR_ID = '02b64439-03d8-4850-b7a2-fe0aea952c05'
CALENDAR_TTL_SECONDS = 2 * 60


class SharedCalendarStore:
    """
    Cache-fronted access to the single shared calendar document.

    Reads are served from the cache while fresh and fall back to the
    repository on a miss. Every mutation reads the whole document, changes a
    private copy, writes the whole document back and only then touches the
    cache, so a failed write leaves the cached view as it was. Concurrent
    writers are last-writer-wins.
    """

    def __init__(self, repository: CalendarDocumentRepository, cache: ReadThroughCache,
                 calendar_id: str = SHARED_CALENDAR_ID, ttl: float = CALENDAR_TTL_SECONDS):
        self.repository = repository
        self.cache = cache
        self.calendar_id = calendar_id
        self.ttl = ttl
        self.logger = logging.getLogger(__name__)

    @property
    def cache_key(self) -> str:
        return CacheKeys.calendar_events(self.calendar_id)

    async def _load(self) -> CalendarDocument:
        cached = self.cache.get(self.cache_key)
        if cached is not None:
            return cached

        raw = await self.repository.get_document(self.calendar_id)
        if raw is None:
            self.logger.info("Shared calendar row not found, using empty document")
        document = normalize_document(raw or {})
        self.cache.set(self.cache_key, document, self.ttl)
        return document

    async def get_document(self) -> CalendarDocument:
        """Current document. The caller owns the returned copy."""
        return copy.deepcopy(await self._load())

    async def get_day(self, day: DateLike) -> List[Dict[str, Any]]:
        key = to_date_key(day)
        entry = (await self._load()).get(key)
        if not entry:
            return []
        return copy.deepcopy(entry['activities'])

    async def _commit(self, document: CalendarDocument) -> None:
        await self.repository.upsert_document(self.calendar_id, document)
        self.cache.set(self.cache_key, document, self.ttl)

    async def add_activity(self, day: DateLike, description: str,
                           activity_type: Union[ActivityType, str, None] = None) -> Tuple[Activity, str]:
        """Append a new activity to the date. Returns (activity, date_key)."""
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("Activity description is required")
        key = to_date_key(day)
        activity_type = _parse_activity_type(activity_type)

        document = await self.get_document()
        activity = Activity.create(description.strip(), activity_type)

        entry = document.get(key)
        if entry is None:
            entry = document[key] = {'date': day_timestamp(key), 'activities': []}
        entry['activities'].append(activity.to_dict())

        await self._commit(document)
        self.logger.info(f"Added activity {activity.id} on {key}")
        return activity, key

    async def delete_activity(self, day: DateLike, activity_id: str) -> Activity:
        """Remove an activity. Returns the removed activity."""
        key = to_date_key(day)
        document = await self.get_document()

        entry = document.get(key)
        if not entry or not entry.get('activities'):
            raise NotFoundError(f"No activities on {key}", details={'date': key})

        activities = entry['activities']
        removed = next((a for a in activities if a.get('id') == activity_id), None)
        if removed is None:
            raise NotFoundError(
                f"Activity {activity_id} not found on {key}",
                details={'date': key, 'activity_id': activity_id}
            )

        remaining = [a for a in activities if a.get('id') != activity_id]
        if remaining:
            entry['activities'] = remaining
        else:
            del document[key]

        await self._commit(document)
        self.logger.info(f"Deleted activity {activity_id} on {key}")
        return Activity.from_dict(removed)

    async def replace_document(self, payload: Any) -> CalendarDocument:
        """Replace the whole document; the next read reloads from the backend."""
        document = validate_document(payload)

        if await self.repository.document_exists(self.calendar_id):
            await self.repository.update_document(self.calendar_id, document)
        else:
            await self.repository.insert_document(self.calendar_id, document)

        self.cache.delete(self.cache_key)
        self.logger.info(f"Replaced shared calendar document ({len(document)} dates)")
        return document

    async def list_activities(self) -> List[Dict[str, Any]]:
        """Every activity flattened with its date, newest date first."""
        document = await self._load()
        rows = [
            {
                'date': key,
                'description': activity.get('description', ''),
                'type': activity.get('type', ActivityType.QHRC_CENTER.value),
                'activityId': activity.get('id'),
            }
            for key, entry in document.items()
            for activity in entry.get('activities', [])
        ]
        rows.sort(key=lambda row: row['date'], reverse=True)
        return rows


def _parse_activity_type(value: Union[ActivityType, str, None]) -> ActivityType:
    if value is None or value == '':
        return ActivityType.QHRC_CENTER
    if isinstance(value, ActivityType):
        return value
    try:
        return ActivityType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown activity type: {value}",
            details={'allowed': [t.value for t in ActivityType]}
        )
