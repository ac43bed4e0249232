"""Application services for the team calendar server."""

from .holidays import HolidayManager
from .calendar_store import SharedCalendarStore, SHARED_CALENDAR_ID, CALENDAR_TTL_SECONDS
from .services import OperationLogService, StatisticsService

__all__ = [
    'HolidayManager', 'SharedCalendarStore', 'SHARED_CALENDAR_ID', 'CALENDAR_TTL_SECONDS',
    'OperationLogService', 'StatisticsService'
]
