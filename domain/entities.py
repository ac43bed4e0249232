"""Domain entities for the team calendar server."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
from enum import Enum


logger = logging.getLogger(__name__)


class HolidayCategory(Enum):
    """Holiday category enumeration."""
    MAINLAND = "mainland"
    REGIONAL = "regional"
    WESTERN = "western"
    TRADITIONAL = "traditional"
    CUSTOM = "custom"


class ActivityType(Enum):
    """Organizational category an activity is filed under."""
    QHRC_CENTER = "QHRC"
    SI_CENTER = "SI"    # 智能传感器与影像实验室
    DI_CENTER = "DI"    # 智能设计与创新实验室
    MH_CENTER = "MH"    # 智慧医疗与健康实验室


class UserRole(Enum):
    """User role enumeration."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    USER = "user"


class OperationType(Enum):
    """Audit log operation types."""
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"


# Display colors used by calendar renderers
HOLIDAY_COLORS = {
    'mainland': '#ff4d4f',
    'regional': '#722ed1',
    'western': '#722ed1',
    'traditional': '#ff4d4f',
    'workday': '#52c41a',
    'custom': '#fa8c16',
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Holiday:
    """A calendar fact attached to a single date."""

    date: str
    name: str
    category: HolidayCategory
    is_adjusted_workday: bool = False
    description: Optional[str] = None

    @property
    def color(self) -> str:
        if self.is_adjusted_workday:
            return HOLIDAY_COLORS['workday']
        return HOLIDAY_COLORS[self.category.value]

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'date': self.date,
            'name': self.name,
            'type': self.category.value,
            'isWorkday': self.is_adjusted_workday,
        }
        if self.description:
            data['description'] = self.description
        return data


@dataclass
class CustomHoliday:
    """Institution-defined holiday, persisted externally and mirrored in memory."""

    id: str
    date: str
    name: str
    created_by: str
    created_at: str
    description: Optional[str] = None
    is_adjusted_workday: bool = False

    @property
    def category(self) -> HolidayCategory:
        return HolidayCategory.CUSTOM

    @property
    def color(self) -> str:
        return HOLIDAY_COLORS['custom']

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'date': self.date,
            'name': self.name,
            'type': HolidayCategory.CUSTOM.value,
            'isWorkday': self.is_adjusted_workday,
            'created_by': self.created_by,
            'created_at': self.created_at,
        }
        if self.description:
            data['description'] = self.description
        return data

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> 'CustomHoliday':
        """Create CustomHoliday from a stored row."""
        return cls(
            id=str(data['id']),
            date=str(data['date'])[:10],
            name=data.get('name', ''),
            created_by=str(data.get('created_by') or ''),
            created_at=str(data.get('created_at') or utc_now_iso()),
            description=data.get('description'),
            is_adjusted_workday=bool(data.get('is_workday') or data.get('isWorkday') or False),
        )


@dataclass
class Activity:
    """An entry on the shared calendar for one date.

    ``type`` is an ``ActivityType`` for known categories. Rows written by
    older clients may carry other values; those are kept as the raw string.
    """

    id: str
    description: str
    type: Union[ActivityType, str] = ActivityType.QHRC_CENTER
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, description: str, activity_type: ActivityType = ActivityType.QHRC_CENTER) -> 'Activity':
        return cls(id=str(uuid.uuid4()), description=description, type=activity_type)

    @property
    def type_name(self) -> str:
        if isinstance(self.type, ActivityType):
            return self.type.value
        return str(self.type)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'id': self.id,
            'description': self.description,
            'type': self.type_name,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Activity':
        extra = {k: v for k, v in data.items() if k not in ('id', 'description', 'type')}
        raw_type = data.get('type') or ActivityType.QHRC_CENTER.value
        try:
            activity_type: Union[ActivityType, str] = ActivityType(raw_type)
        except ValueError:
            logger.warning(f"Activity {data.get('id')} has unknown type {raw_type!r}, keeping it as stored")
            activity_type = str(raw_type)
        return cls(
            id=str(data.get('id', '')),
            description=data.get('description', ''),
            type=activity_type,
            extra=extra,
        )


@dataclass
class User:
    """Resolved identity of the caller."""

    id: str
    username: str
    name: str = ""
    role: UserRole = UserRole.USER
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.username

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


@dataclass
class OperationLog:
    """Audit log entry."""

    user_id: str
    user_email: str
    operation_type: OperationType
    details: str
    id: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'user_id': self.user_id,
            'user_email': self.user_email,
            'operation_type': self.operation_type.value,
            'details': self.details,
            'created_at': self.created_at,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> 'OperationLog':
        try:
            operation_type = OperationType(data.get('operation_type'))
        except ValueError:
            operation_type = OperationType.UPDATE_EVENT
        return cls(
            id=str(data['id']) if data.get('id') is not None else None,
            user_id=str(data.get('user_id') or ''),
            user_email=data.get('user_email') or '',
            operation_type=operation_type,
            details=data.get('details') or '',
            created_at=data.get('created_at'),
        )
