"""Holiday annotation index for the team calendar server."""

import calendar
import logging
import uuid
from datetime import MAXYEAR, MINYEAR, date
from typing import Any, Dict, List, Optional, Set, Union

from domain import CustomHoliday, CustomHolidayRepository, Holiday, HolidayCatalog, HolidayCategory
from domain.documents import DateLike, to_date
from domain.entities import utc_now_iso
from monitoring.exceptions import ValidationError

AnyHoliday = Union[Holiday, CustomHoliday]


class HolidayManager:
    """
    Single query surface for holiday facts on a date or in a month.

    Catalog holidays are loaded lazily per year from ``HolidayCatalog``;
    custom holidays are mirrored from the custom holiday repository and
    refreshed on demand with ``refresh_custom_holidays``.
    """

    def __init__(self, custom_repository: Optional[CustomHolidayRepository] = None,
                 catalog: type = HolidayCatalog):
        self.custom_repository = custom_repository
        self.catalog = catalog
        self.catalog_by_date: Dict[str, List[Holiday]] = {}
        self.custom_by_date: Dict[str, List[CustomHoliday]] = {}
        self.loaded_years: Set[int] = set()
        self.custom_loaded = False
        self.logger = logging.getLogger(__name__)

    def preload(self, today: Optional[date] = None) -> None:
        """Load the current and next year."""
        year = (today or date.today()).year
        self._ensure_year_loaded(year)
        self._ensure_year_loaded(year + 1)

    def _load_year(self, year: int) -> None:
        for holiday in self.catalog.holidays_for_year(year):
            self.catalog_by_date.setdefault(holiday.date, []).append(holiday)
        self.loaded_years.add(year)
        self.logger.debug(f"Loaded holiday catalog for {year}")

    def _ensure_year_loaded(self, year: int) -> None:
        if year not in self.loaded_years:
            self._load_year(year)

    async def refresh_custom_holidays(self, force_reload: bool = False) -> None:
        """Re-sync custom holidays from the repository.

        Keeps the previous in-memory state when the repository fails.
        """
        if self.custom_loaded and not force_reload:
            return
        if self.custom_repository is None:
            return

        try:
            holidays = await self.custom_repository.list_custom_holidays()
        except Exception as e:
            self.logger.error(f"Failed to load custom holidays: {e}")
            return

        custom_by_date: Dict[str, List[CustomHoliday]] = {}
        for holiday in holidays:
            custom_by_date.setdefault(holiday.date, []).append(holiday)

        self.custom_by_date = custom_by_date
        self.custom_loaded = True
        self.logger.info(f"Loaded {len(holidays)} custom holidays")

    # Queries

    def get_holidays(self, day: DateLike) -> List[AnyHoliday]:
        """Catalog holidays followed by custom holidays for the date."""
        parsed = to_date(day)
        self._ensure_year_loaded(parsed.year)

        key = parsed.isoformat()
        return list(self.catalog_by_date.get(key, [])) + list(self.custom_by_date.get(key, []))

    def is_holiday(self, day: DateLike) -> bool:
        return any(not h.is_adjusted_workday for h in self.get_holidays(day))

    def is_adjusted_workday(self, day: DateLike) -> bool:
        return any(h.is_adjusted_workday for h in self.get_holidays(day))

    # Name used by calendar renderers
    is_workday = is_adjusted_workday

    def holiday_categories(self, day: DateLike) -> Set[HolidayCategory]:
        return {h.category for h in self.get_holidays(day)}

    def holiday_names(self, day: DateLike) -> List[str]:
        return [h.name for h in self.get_holidays(day) if not h.is_adjusted_workday]

    def month_holidays(self, year: int, month: int) -> Dict[str, List[AnyHoliday]]:
        """Holidays per date for every day of the month that has any."""
        if not MINYEAR <= year <= MAXYEAR:
            raise ValidationError(f"Invalid year: {year}", details={'year': year})
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}", details={'month': month})
        self._ensure_year_loaded(year)

        result: Dict[str, List[AnyHoliday]] = {}
        _, days_in_month = calendar.monthrange(year, month)
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            holidays = self.get_holidays(day)
            if holidays:
                result[day.isoformat()] = holidays
        return result

    def describe_date(self, day: DateLike) -> Dict[str, Any]:
        """Summary of a date's holiday facts for rendering."""
        key = to_date(day).isoformat()
        holidays = self.get_holidays(key)
        return {
            'date': key,
            'holidays': [h.to_dict() for h in holidays],
            'isHoliday': self.is_holiday(key),
            'isWorkday': self.is_adjusted_workday(key),
            'types': sorted(c.value for c in self.holiday_categories(key)),
            'names': self.holiday_names(key),
        }

    # Custom holidays

    def add_custom_holiday(self, data: Dict[str, Any]) -> CustomHoliday:
        """Mirror a custom holiday in memory.

        Persisting it is the caller's job.
        """
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError("Custom holiday name is required")
        key = to_date(data.get('date')).isoformat()

        holiday = CustomHoliday(
            id=str(data.get('id') or uuid.uuid4()),
            date=key,
            name=name,
            created_by=str(data.get('created_by') or ''),
            created_at=data.get('created_at') or utc_now_iso(),
            description=data.get('description'),
        )
        self.custom_by_date.setdefault(key, []).append(holiday)
        return holiday

    def remove_custom_holiday(self, day: DateLike, holiday_id: str) -> bool:
        key = to_date(day).isoformat()
        existing = self.custom_by_date.get(key, [])
        remaining = [h for h in existing if h.id != holiday_id]

        if len(remaining) == len(existing):
            return False

        if remaining:
            self.custom_by_date[key] = remaining
        else:
            del self.custom_by_date[key]
        return True

    def discard_custom_holiday(self, holiday_id: str) -> bool:
        """Remove a custom holiday by id from whichever date holds it."""
        for key in list(self.custom_by_date):
            if self.remove_custom_holiday(key, holiday_id):
                return True
        return False

    def get_custom_holidays(self) -> List[CustomHoliday]:
        holidays = [h for bucket in self.custom_by_date.values() for h in bucket]
        return sorted(holidays, key=lambda h: h.date)
