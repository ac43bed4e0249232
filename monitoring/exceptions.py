"""Exception types and error bookkeeping for the team calendar server."""

import logging
import threading
import traceback
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Machine-readable error codes returned to API clients."""

    # Caller identity
    AUTH_FAILED = "AUTH_FAILED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Request
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Backend store
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    BACKEND_TIMEOUT = "BACKEND_TIMEOUT"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class TeamCalendarError(Exception):
    """Base exception for the team calendar server.

    Subclasses fix the ``error_code`` and the HTTP status the presentation
    layer answers with.
    """

    http_status = 500
    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'error_code': self.error_code.value,
            'message': self.message,
            'details': self.details,
            'timestamp': self.timestamp.isoformat(),
        }
        if self.cause is not None:
            data['cause'] = repr(self.cause)
            data['traceback'] = ''.join(traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            ))
        return data


class AuthenticationError(TeamCalendarError):
    """The caller could not be identified."""

    http_status = 401
    default_code = ErrorCode.AUTH_FAILED


class PermissionDeniedError(TeamCalendarError):
    """The caller's role does not allow the operation."""

    http_status = 403
    default_code = ErrorCode.PERMISSION_DENIED


class NotFoundError(TeamCalendarError):
    """Requested date, activity or custom holiday does not exist."""

    http_status = 404
    default_code = ErrorCode.NOT_FOUND


class ValidationError(TeamCalendarError):
    """Malformed input, rejected before any write."""

    http_status = 400
    default_code = ErrorCode.VALIDATION_ERROR


class PersistenceError(TeamCalendarError):
    """Backend store read or write failure."""

    http_status = 502
    default_code = ErrorCode.PERSISTENCE_ERROR


# Codes that point at a server-side problem rather than a bad request
_SERVER_SIDE_CODES = (ErrorCode.INTERNAL_ERROR, ErrorCode.PERSISTENCE_ERROR, ErrorCode.BACKEND_TIMEOUT)


class ErrorHandler:
    """Logs errors and keeps per-context counts for the health report.

    Shared by every request thread.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._error_counts: Counter = Counter()
        self._last_errors: Dict[str, Dict[str, Any]] = {}

    def handle_error(
        self,
        error: Exception,
        context: str = "unknown",
        extra_details: Optional[Dict[str, Any]] = None
    ) -> TeamCalendarError:
        """Record error under context. Plain exceptions are wrapped as INTERNAL_ERROR."""
        if isinstance(error, TeamCalendarError):
            calendar_error = error
        else:
            calendar_error = TeamCalendarError(str(error), cause=error)

        calendar_error.details['context'] = context
        calendar_error.details.update(extra_details or {})

        key = f"{context}:{calendar_error.error_code.value}"
        with self._lock:
            self._error_counts[key] += 1
            self._last_errors[key] = calendar_error.to_dict()
            count = self._error_counts[key]

        message = f"[{context}] {calendar_error.message} ({calendar_error.error_code.value}, seen {count}x)"
        if calendar_error.error_code in _SERVER_SIDE_CODES:
            self.logger.error(message, exc_info=calendar_error.cause)
        else:
            self.logger.warning(message)

        return calendar_error

    def get_error_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'error_counts': dict(self._error_counts),
                'last_errors': dict(self._last_errors),
                'total_errors': sum(self._error_counts.values())
            }

    def reset_stats(self) -> None:
        with self._lock:
            self._error_counts.clear()
            self._last_errors.clear()
