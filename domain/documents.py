"""Shape helpers for the shared calendar document.

The document is a JSON object mapping ``YYYY-MM-DD`` keys to day entries::

    {"2025-03-10": {"date": "2025-03-10T00:00:00+00:00",
                    "activities": [{"id": ..., "description": ..., "type": "QHRC"}]}}

Older rows group activities under ``cityRecords``; ``normalize_document``
flattens those at the read boundary so the rest of the code sees one shape.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Union

from monitoring.exceptions import ValidationError


DATE_KEY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

CalendarDocument = Dict[str, Dict[str, Any]]
DateLike = Union[str, date, datetime]


def to_date(value: DateLike) -> date:
    """Parse a date key, ISO timestamp or date object into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid date: {value!r}")

    text = value.strip()
    try:
        if DATE_KEY_PATTERN.match(text):
            return date.fromisoformat(text)
        # Accept JavaScript-style timestamps ("...Z")
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}", details={'value': value})


def to_date_key(value: DateLike) -> str:
    """Canonical ``YYYY-MM-DD`` key for a date-like value."""
    return to_date(value).isoformat()


def day_timestamp(date_key: str) -> str:
    """Timestamp stored in a day entry's ``date`` field."""
    day = date.fromisoformat(date_key)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc).isoformat()


def _collect_activities(entry: Dict[str, Any]) -> List[Dict[str, Any]]:
    activities = entry.get('activities')
    if isinstance(activities, list):
        return [dict(a) for a in activities if isinstance(a, dict)]

    # Legacy rows: {"cityRecords": [{"city": ..., "activities": [...]}]}
    merged = []
    for record in entry.get('cityRecords') or []:
        if isinstance(record, dict) and isinstance(record.get('activities'), list):
            merged.extend(dict(a) for a in record['activities'] if isinstance(a, dict))
    return merged


def normalize_document(raw: Any) -> CalendarDocument:
    """Map any stored document shape onto the canonical one.

    Entries whose key is not a valid date are dropped. The map key wins over
    the stored ``date`` field.
    """
    if not isinstance(raw, dict):
        return {}

    document: CalendarDocument = {}
    for key, entry in raw.items():
        if not isinstance(entry, dict):
            continue
        try:
            date_key = to_date_key(key)
        except ValidationError:
            continue
        document[date_key] = {
            'date': entry.get('date') or day_timestamp(date_key),
            'activities': _collect_activities(entry),
        }
    return document


def validate_document(payload: Any) -> CalendarDocument:
    """Check a bulk-replace payload and return it in canonical shape."""
    if not isinstance(payload, dict):
        raise ValidationError("Calendar document must be a JSON object")

    for key, entry in payload.items():
        if not isinstance(key, str) or not DATE_KEY_PATTERN.match(key):
            raise ValidationError(f"Invalid date key: {key!r}", details={'key': key})
        try:
            date.fromisoformat(key)
        except ValueError:
            raise ValidationError(f"Invalid date key: {key!r}", details={'key': key})

        if not isinstance(entry, dict):
            raise ValidationError(f"Entry for {key} must be an object", details={'key': key})

        if 'activities' in entry:
            activities = entry['activities']
        elif 'cityRecords' in entry:
            activities = _collect_activities(entry)
        else:
            raise ValidationError(f"Entry for {key} has no activities", details={'key': key})

        if not isinstance(activities, list):
            raise ValidationError(f"Activities for {key} must be a list", details={'key': key})
        for activity in activities:
            if not isinstance(activity, dict) or not activity.get('id'):
                raise ValidationError(f"Malformed activity on {key}", details={'key': key})

    return normalize_document(payload)
