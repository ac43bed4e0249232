"""Health monitoring for the team calendar server."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .exceptions import ErrorHandler


@dataclass
class HealthStatus:
    """Snapshot returned by ``/health``."""

    healthy: bool
    timestamp: datetime
    services: Dict[str, bool]
    cache: Dict[str, Any] = field(default_factory=dict)
    last_error: Optional[Dict[str, Any]] = None
    error_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'healthy': self.healthy,
            'timestamp': self.timestamp.isoformat(),
            'services': self.services,
            'cache': self.cache,
            'last_error': self.last_error,
            'error_count': self.error_count
        }


class HealthChecker:
    """Probes the shared calendar store and reports cache and error state.

    Only the calendar store decides ``healthy``; custom holidays are
    fail-soft and reported for information.
    """

    def __init__(self, calendar_store, holiday_manager, error_handler: ErrorHandler):
        self.calendar_store = calendar_store
        self.holiday_manager = holiday_manager
        self.error_handler = error_handler
        self.logger = logging.getLogger(__name__)

    async def _probe_calendar_store(self) -> bool:
        # Goes through the cache, so a fresh entry counts as reachable
        try:
            await self.calendar_store.get_document()
            return True
        except Exception as e:
            self.error_handler.handle_error(e, "health_check:calendar_store")
            return False

    def _latest_error(self, last_errors: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not last_errors:
            return None
        return max(last_errors.values(), key=lambda error: error['timestamp'])

    async def check_health(self) -> HealthStatus:
        services = {
            'calendar_store': await self._probe_calendar_store(),
            'custom_holidays': self.holiday_manager.custom_loaded,
        }
        error_stats = self.error_handler.get_error_stats()

        return HealthStatus(
            healthy=services['calendar_store'],
            timestamp=datetime.now(timezone.utc),
            services=services,
            cache=self.calendar_store.cache.get_stats(),
            last_error=self._latest_error(error_stats['last_errors']),
            error_count=error_stats['total_errors']
        )
