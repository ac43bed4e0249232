"""Domain layer for the team calendar server."""

from .entities import (
    Holiday, CustomHoliday, HolidayCategory, Activity, ActivityType,
    User, UserRole, OperationLog, OperationType, HOLIDAY_COLORS
)
from .holiday_catalog import HolidayCatalog
from .interfaces import (
    CalendarDocumentRepository, CustomHolidayRepository,
    OperationLogRepository, IdentityProvider
)

__all__ = [
    'Holiday', 'CustomHoliday', 'HolidayCategory', 'Activity', 'ActivityType',
    'User', 'UserRole', 'OperationLog', 'OperationType', 'HOLIDAY_COLORS',
    'HolidayCatalog',
    'CalendarDocumentRepository', 'CustomHolidayRepository',
    'OperationLogRepository', 'IdentityProvider'
]
