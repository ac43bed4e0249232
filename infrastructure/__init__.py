"""Infrastructure implementations for the team calendar server."""

from .cache import ReadThroughCache, CacheKeys, CacheEntry
from .repositories import (
    BackendClient, BackendCalendarRepository, BackendCustomHolidayRepository,
    BackendOperationLogRepository, BackendIdentityProvider
)
from .ical import CalendarFeedRenderer

__all__ = [
    'ReadThroughCache', 'CacheKeys', 'CacheEntry',
    'BackendClient', 'BackendCalendarRepository', 'BackendCustomHolidayRepository',
    'BackendOperationLogRepository', 'BackendIdentityProvider',
    'CalendarFeedRenderer'
]
