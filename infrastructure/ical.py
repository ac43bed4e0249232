"""iCalendar feed of shared calendar activities and holidays."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from icalendar import Calendar, Event

PRODID = '-//Team Calendar Server//team_calendar//EN'
UID_DOMAIN = 'team-calendar'


class CalendarFeedRenderer:
    """Renders the shared document and holiday annotations as VCALENDAR text."""

    def __init__(self, calendar_name: str = 'Team Calendar'):
        self.calendar_name = calendar_name
        self.logger = logging.getLogger(__name__)

    def _new_calendar(self) -> Calendar:
        cal = Calendar()
        cal.add('prodid', PRODID)
        cal.add('version', '2.0')
        cal.add('calscale', 'GREGORIAN')
        cal.add('method', 'PUBLISH')
        cal.add('x-wr-calname', self.calendar_name)
        return cal

    @staticmethod
    def _all_day(event: Event, day: date) -> None:
        event.add('dtstart', day)
        event.add('dtend', day + timedelta(days=1))

    def _activity_event(self, date_key: str, activity: Dict[str, Any],
                        stamp: datetime) -> Optional[Event]:
        activity_id = activity.get('id')
        if not activity_id:
            return None
        event = Event()
        event.add('uid', f'activity-{activity_id}@{UID_DOMAIN}')
        event.add('summary', activity.get('description') or '')
        event.add('dtstamp', stamp)
        self._all_day(event, date.fromisoformat(date_key))
        if activity.get('type'):
            event.add('categories', [activity['type']])
        return event

    def _holiday_event(self, date_key: str, holiday, stamp: datetime) -> Event:
        event = Event()
        holiday_id = getattr(holiday, 'id', None) or f'{holiday.category.value}-{holiday.name}'
        event.add('uid', f'holiday-{date_key}-{holiday_id}@{UID_DOMAIN}')
        event.add('summary', holiday.name)
        event.add('dtstamp', stamp)
        event.add('transp', 'TRANSPARENT')
        event.add('categories', [holiday.category.value])
        if holiday.description:
            event.add('description', holiday.description)
        self._all_day(event, date.fromisoformat(date_key))
        return event

    def render(self, document: Dict[str, Dict[str, Any]],
               holidays: Optional[Dict[str, Iterable]] = None) -> str:
        """Build the feed. Adjusted workdays are left out of the holiday events."""
        cal = self._new_calendar()
        stamp = datetime.now(timezone.utc)

        for date_key in sorted(document):
            for activity in document[date_key].get('activities', []):
                event = self._activity_event(date_key, activity, stamp)
                if event is not None:
                    cal.add_component(event)

        for date_key in sorted(holidays or {}):
            for holiday in holidays[date_key]:
                if holiday.is_adjusted_workday:
                    continue
                cal.add_component(self._holiday_event(date_key, holiday, stamp))

        return cal.to_ical().decode('utf-8')
