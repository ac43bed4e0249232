"""Flask application factory for the team calendar server."""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import wraps
from threading import Thread
from typing import Optional

from flask import Flask, g, request, jsonify

from config import Config
from application import HolidayManager, SharedCalendarStore, OperationLogService, StatisticsService
from domain import (
    CalendarDocumentRepository, CustomHolidayRepository, IdentityProvider,
    OperationLogRepository, UserRole
)
from infrastructure import (
    BackendClient, BackendCalendarRepository, BackendCustomHolidayRepository,
    BackendIdentityProvider, BackendOperationLogRepository, CalendarFeedRenderer, ReadThroughCache
)
from monitoring import (
    AuthenticationError, ErrorHandler, HealthChecker, PermissionDeniedError, TeamCalendarError
)
from .routes import register_calendar_routes, register_holiday_routes, register_admin_routes


class AsyncExecutor:
    """Helper to run async functions in Flask (sync) context."""

    def __init__(self):
        self.loop = None
        self._thread = None
        self._setup_event_loop()

    def _setup_event_loop(self):
        """Set up event loop in background thread."""
        def run_loop():
            self.loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self.loop)
            self.loop.run_forever()

        self._thread = Thread(target=run_loop, name="async-executor", daemon=True)
        self._thread.start()

        # Wait for loop to be ready
        while self.loop is None:
            time.sleep(0.01)

    def run_async(self, coro, timeout: float = 30):
        """Run async coroutine in background loop."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout=timeout)

    def shutdown(self):
        if self.loop is not None and self.loop.is_running():
            self.loop.call_soon_threadsafe(self.loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5)


@dataclass
class AppComponents:
    """Process-wide components shared by the request handlers."""

    config: Config
    cache: ReadThroughCache
    calendar_store: SharedCalendarStore
    holiday_manager: HolidayManager
    custom_holiday_repository: CustomHolidayRepository
    operation_logs: OperationLogService
    statistics: StatisticsService
    identity_provider: IdentityProvider
    feed_renderer: CalendarFeedRenderer
    error_handler: ErrorHandler
    health_checker: HealthChecker
    async_executor: AsyncExecutor

    def run(self, coro):
        return self.async_executor.run_async(coro)

    def shutdown(self) -> None:
        """Stop background work started by create_app."""
        self.cache.stop_sweeper()
        self.async_executor.shutdown()


def create_app(
    config: Config,
    calendar_repository: Optional[CalendarDocumentRepository] = None,
    custom_holiday_repository: Optional[CustomHolidayRepository] = None,
    operation_log_repository: Optional[OperationLogRepository] = None,
    identity_provider: Optional[IdentityProvider] = None,
    start_sweeper: bool = True
) -> Flask:
    """Create Flask application with dependency injection.

    Repositories not passed in are built against the configured backend.
    """
    app = Flask(__name__)
    app.config['CONFIG'] = config
    logger = logging.getLogger(__name__)

    async_executor = AsyncExecutor()
    cache = ReadThroughCache(default_ttl=config.cache.default_ttl_seconds)

    if None in (calendar_repository, custom_holiday_repository,
                operation_log_repository, identity_provider):
        client = BackendClient(
            base_url=config.backend.url,
            api_key=config.backend.api_key,
            service_key=config.backend.service_key,
            timeout=config.backend.timeout
        )
        calendar_repository = calendar_repository or BackendCalendarRepository(client)
        custom_holiday_repository = custom_holiday_repository or BackendCustomHolidayRepository(client)
        operation_log_repository = operation_log_repository or BackendOperationLogRepository(client)
        identity_provider = identity_provider or BackendIdentityProvider(client, cache)

    calendar_store = SharedCalendarStore(
        repository=calendar_repository,
        cache=cache,
        calendar_id=config.calendar.shared_calendar_id,
        ttl=config.calendar.calendar_ttl_seconds
    )
    holiday_manager = HolidayManager(custom_repository=custom_holiday_repository)
    error_handler = ErrorHandler()

    components = AppComponents(
        config=config,
        cache=cache,
        calendar_store=calendar_store,
        holiday_manager=holiday_manager,
        custom_holiday_repository=custom_holiday_repository,
        operation_logs=OperationLogService(operation_log_repository),
        statistics=StatisticsService(calendar_store),
        identity_provider=identity_provider,
        feed_renderer=CalendarFeedRenderer(calendar_name=config.calendar.name),
        error_handler=error_handler,
        health_checker=HealthChecker(calendar_store, holiday_manager, error_handler),
        async_executor=async_executor
    )
    app.extensions['team_calendar'] = components

    # Warm the holiday index
    holiday_manager.preload()
    components.run(holiday_manager.refresh_custom_holidays())

    if start_sweeper:
        cache.start_sweeper(config.cache.sweep_interval_seconds)

    # Authentication
    def bearer_token() -> str:
        header = request.headers.get('Authorization', '')
        if header.lower().startswith('bearer '):
            return header[7:].strip()
        return request.cookies.get('access_token', '')

    def requires_auth(*roles: UserRole):
        """Resolve the caller into g.user, optionally restricted to roles."""
        def decorator(f):
            @wraps(f)
            def decorated(*args, **kwargs):
                token = bearer_token()
                user = components.run(identity_provider.resolve(token)) if token else None
                if user is None:
                    raise AuthenticationError("Authentication required")
                if roles and user.role not in roles:
                    raise PermissionDeniedError(
                        "Insufficient permissions",
                        details={'required': [r.value for r in roles]}
                    )
                g.user = user
                return f(*args, **kwargs)
            return decorated
        return decorator

    # Routes
    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        status = components.run(components.health_checker.check_health())
        body = status.to_dict()
        body['service'] = 'Team Calendar Server'
        return jsonify(body), (200 if status.healthy else 503)

    register_calendar_routes(app, components, requires_auth)
    register_holiday_routes(app, components, requires_auth)
    register_admin_routes(app, components, requires_auth)

    # Error handlers
    @app.errorhandler(TeamCalendarError)
    def handle_calendar_error(error: TeamCalendarError):
        error_handler.handle_error(error, context=request.path)
        return jsonify({
            'message': error.message,
            'error_code': error.error_code.value,
            'details': {k: v for k, v in error.details.items() if k != 'context'}
        }), error.http_status

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'message': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({'message': 'Internal server error'}), 500

    logger.info("Team calendar application created")
    return app
