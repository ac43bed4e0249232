"""Monitoring and error handling for the team calendar server."""

from .exceptions import (
    ErrorCode, TeamCalendarError, AuthenticationError,
    PermissionDeniedError, NotFoundError, ValidationError, PersistenceError,
    ErrorHandler
)
from .health import HealthStatus, HealthChecker

__all__ = [
    'ErrorCode', 'TeamCalendarError', 'AuthenticationError',
    'PermissionDeniedError', 'NotFoundError', 'ValidationError', 'PersistenceError',
    'ErrorHandler',
    'HealthStatus', 'HealthChecker'
]
