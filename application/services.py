"""Application services for the team calendar server."""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from domain import ActivityType, OperationLog, OperationLogRepository, OperationType, User

from .calendar_store import SharedCalendarStore


DEFAULT_PAGE_SIZE = 20


class OperationLogService:
    """Audit trail of user operations.

    Writing a log entry never fails the operation being logged.
    """

    def __init__(self, repository: OperationLogRepository):
        self.repository = repository
        self.logger = logging.getLogger(__name__)

    async def log(self, user: User, operation_type: OperationType, details: str) -> None:
        entry = OperationLog(
            user_id=user.id,
            user_email=user.email or user.username,
            operation_type=operation_type,
            details=details
        )
        try:
            await self.repository.insert_log(entry)
        except Exception as e:
            self.logger.warning(f"Failed to record operation log ({operation_type.value}): {e}")

    async def get_logs(self, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE,
                       user_id: Optional[str] = None) -> Tuple[List[OperationLog], int]:
        """A page of logs, newest first, and the total count.

        Backend failures propagate; only writing a log entry is best-effort.
        """
        page = max(page, 1)
        page_size = max(page_size, 1)
        return await self.repository.list_logs(
            offset=(page - 1) * page_size,
            limit=page_size,
            user_id=user_id
        )


class StatisticsService:
    """Activity export used by statistics and reporting."""

    def __init__(self, calendar_store: SharedCalendarStore):
        self.calendar_store = calendar_store

    async def activity_statistics(self) -> Dict[str, Any]:
        activities = await self.calendar_store.list_activities()
        counts = Counter(row['type'] for row in activities)
        by_type = {t.value: counts.get(t.value, 0) for t in ActivityType}
        for type_name, count in counts.items():
            by_type.setdefault(type_name, count)

        return {
            'activities': activities,
            'total': len(activities),
            'by_type': by_type,
        }
