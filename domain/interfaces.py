"""Domain interfaces for the team calendar server."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from .entities import CustomHoliday, OperationLog, User


class CalendarDocumentRepository(ABC):
    """Abstract store for calendar documents keyed by calendar id."""

    @abstractmethod
    async def get_document(self, calendar_id: str) -> Optional[Dict[str, Any]]:
        """Get the raw document, or None when no row exists."""
        pass

    @abstractmethod
    async def upsert_document(self, calendar_id: str, document: Dict[str, Any]) -> None:
        """Insert or replace the document for calendar_id."""
        pass

    @abstractmethod
    async def document_exists(self, calendar_id: str) -> bool:
        """Check whether a row exists for calendar_id."""
        pass

    @abstractmethod
    async def insert_document(self, calendar_id: str, document: Dict[str, Any]) -> None:
        """Insert a new row."""
        pass

    @abstractmethod
    async def update_document(self, calendar_id: str, document: Dict[str, Any]) -> None:
        """Replace the document of an existing row."""
        pass


class CustomHolidayRepository(ABC):
    """Abstract store for administrator-defined holidays."""

    @abstractmethod
    async def list_custom_holidays(self) -> List[CustomHoliday]:
        """Get all custom holidays ordered by date."""
        pass

    @abstractmethod
    async def insert_custom_holiday(self, data: Dict[str, Any]) -> CustomHoliday:
        """Persist a custom holiday and return the stored record."""
        pass

    @abstractmethod
    async def delete_custom_holiday(self, holiday_id: str) -> None:
        """Delete a custom holiday by id."""
        pass


class OperationLogRepository(ABC):
    """Abstract store for audit log entries."""

    @abstractmethod
    async def insert_log(self, entry: OperationLog) -> None:
        pass

    @abstractmethod
    async def list_logs(self, offset: int, limit: int,
                        user_id: Optional[str] = None) -> Tuple[List[OperationLog], int]:
        """Get a page of logs (newest first) and the total count."""
        pass


class IdentityProvider(ABC):
    """Resolves the caller's identity from a request credential."""

    @abstractmethod
    async def resolve(self, token: str) -> Optional[User]:
        """Return the user for token, or None when it is not valid."""
        pass
