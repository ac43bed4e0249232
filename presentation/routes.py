"""JSON route handlers for the team calendar server."""

from datetime import date

from flask import g, jsonify, request, Response

from domain import OperationType, UserRole
from domain.documents import DATE_KEY_PATTERN, to_date_key
from monitoring import PermissionDeniedError, ValidationError


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Query parameter {name} must be an integer")


def register_calendar_routes(app, components, requires_auth):
    """Register shared calendar and statistics routes."""
    store = components.calendar_store
    operation_logs = components.operation_logs

    @app.route('/api/calendar', methods=['GET'])
    @requires_auth()
    def get_calendar():
        """Whole shared calendar document."""
        return jsonify(components.run(store.get_document()))

    @app.route('/api/calendar', methods=['POST'])
    @requires_auth()
    def replace_calendar():
        """Replace the shared calendar document (import)."""
        document = components.run(store.replace_document(request.get_json(silent=True)))
        components.run(operation_logs.log(
            g.user, OperationType.UPDATE_EVENT,
            f"用户 {g.user.display_name} 更新了共享日历数据"
        ))
        return jsonify({'message': '共享日历数据保存成功', 'dates': len(document)})

    @app.route('/api/calendar/activities', methods=['GET'])
    @requires_auth()
    def get_day_activities():
        day = request.args.get('date')
        if not day:
            raise ValidationError("Query parameter date is required")
        key = to_date_key(day)
        return jsonify({'date': key, 'activities': components.run(store.get_day(key))})

    @app.route('/api/calendar/activities', methods=['POST'])
    @requires_auth()
    def add_activity():
        body = _json_body()
        activity = body.get('activity') or {}
        if not body.get('date') or not isinstance(activity, dict) or not activity.get('description'):
            raise ValidationError("缺少必要参数")

        created, key = components.run(store.add_activity(
            body['date'], activity['description'], activity.get('type')
        ))
        components.run(operation_logs.log(
            g.user, OperationType.CREATE_EVENT,
            f"用户 {g.user.display_name} 在 {key} 添加了活动: \"{created.description}\" (类型: {created.type_name})"
        ))
        return jsonify({'message': '活动添加成功', 'activity': created.to_dict(), 'date': key})

    @app.route('/api/calendar/activities', methods=['DELETE'])
    @requires_auth(UserRole.SUPER_ADMIN)
    def delete_activity():
        body = _json_body()
        if not body.get('date') or not body.get('activityId'):
            raise ValidationError("缺少必要参数")

        removed = components.run(store.delete_activity(body['date'], body['activityId']))
        key = to_date_key(body['date'])
        components.run(operation_logs.log(
            g.user, OperationType.DELETE_EVENT,
            f"管理员 {g.user.display_name} 在 {key} 删除了活动: \"{removed.description}\" (类型: {removed.type_name})"
        ))
        return jsonify({'message': '活动删除成功', 'deletedActivity': removed.to_dict(), 'date': key})

    @app.route('/api/statistics/activities', methods=['GET'])
    @requires_auth()
    def activity_statistics():
        return jsonify(components.run(components.statistics.activity_statistics()))


def register_holiday_routes(app, components, requires_auth):
    """Register holiday lookup, custom holiday and feed routes."""
    manager = components.holiday_manager
    repository = components.custom_holiday_repository
    operation_logs = components.operation_logs

    @app.route('/api/holidays', methods=['GET'])
    def get_holidays():
        """Holiday facts for a date, a month, or a whole year."""
        day = request.args.get('date')
        if day:
            return jsonify(manager.describe_date(day))

        year = _int_arg('year', date.today().year)
        month = _int_arg('month', 0)
        if month > 0:
            return jsonify({
                'year': year,
                'month': month,
                'holidays': [manager.describe_date(d) for d in manager.month_holidays(year, month)]
            })

        return jsonify({
            'year': year,
            'holidays': [
                manager.describe_date(d)
                for m in range(1, 13)
                for d in manager.month_holidays(year, m)
            ]
        })

    @app.route('/api/holidays/custom', methods=['GET'])
    @requires_auth()
    def list_custom_holidays():
        holidays = components.run(repository.list_custom_holidays())
        return jsonify({'holidays': [h.to_dict() for h in holidays]})

    @app.route('/api/holidays/custom', methods=['POST'])
    @requires_auth(UserRole.ADMIN, UserRole.SUPER_ADMIN)
    def add_custom_holiday():
        body = _json_body()
        day, name = body.get('date'), (body.get('name') or '').strip()
        if not day or not name:
            raise ValidationError("日期和名称是必填项")
        if not DATE_KEY_PATTERN.match(str(day)):
            raise ValidationError("日期格式不正确，请使用 YYYY-MM-DD 格式")
        to_date_key(day)

        stored = components.run(repository.insert_custom_holiday({
            'date': day,
            'name': name,
            'description': body.get('description'),
            'created_by': g.user.id,
        }))
        # Mirror with the stored id so later removal matches
        manager.add_custom_holiday(stored.to_dict())

        components.run(operation_logs.log(
            g.user, OperationType.CREATE_EVENT,
            f"管理员 {g.user.display_name} 添加了自定义节假日: {name} ({day})"
        ))
        return jsonify({'message': '自定义节假日添加成功', 'holiday': stored.to_dict()})

    @app.route('/api/holidays/custom', methods=['DELETE'])
    @requires_auth(UserRole.SUPER_ADMIN)
    def delete_custom_holiday():
        body = _json_body()
        if not body.get('date') or not body.get('holidayId'):
            raise ValidationError("日期和节假日ID是必填项")
        key = to_date_key(body['date'])
        holiday_id = str(body['holidayId'])

        components.run(repository.delete_custom_holiday(holiday_id))
        # The stored row is gone; drop the mirror by id even if the date was wrong
        if not manager.remove_custom_holiday(key, holiday_id):
            manager.discard_custom_holiday(holiday_id)

        components.run(operation_logs.log(
            g.user, OperationType.DELETE_EVENT,
            f"管理员 {g.user.display_name} 删除了自定义节假日 ({key})"
        ))
        return jsonify({'message': '自定义节假日删除成功'})

    @app.route('/subscribe/<token>/calendar.ics', methods=['GET'])
    def calendar_feed(token: str):
        """Public iCalendar subscription of activities and holidays."""
        if token not in components.config.server.public_token_list:
            raise PermissionDeniedError("Invalid subscription token")

        year = _int_arg('year', date.today().year)
        document = components.run(components.calendar_store.get_document())
        holidays = {}
        for month in range(1, 13):
            holidays.update(manager.month_holidays(year, month))

        return Response(
            components.feed_renderer.render(document, holidays),
            mimetype='text/calendar; charset=utf-8',
            headers={
                'Content-Disposition': 'attachment; filename="team-calendar.ics"',
                'Cache-Control': f'max-age={components.config.calendar.calendar_ttl_seconds}'
            }
        )


def register_admin_routes(app, components, requires_auth):
    """Register audit log and cache administration routes."""

    @app.route('/api/operations', methods=['GET'])
    @requires_auth(UserRole.ADMIN, UserRole.SUPER_ADMIN)
    def list_operations():
        page = _int_arg('page', 1)
        page_size = _int_arg('page_size', 20)
        logs, total = components.run(components.operation_logs.get_logs(
            page=page, page_size=page_size, user_id=request.args.get('user_id') or None
        ))
        return jsonify({
            'logs': [log.to_dict() for log in logs],
            'total': total,
            'page': page,
            'page_size': page_size
        })

    @app.route('/api/holidays/custom/refresh', methods=['POST'])
    @requires_auth(UserRole.ADMIN, UserRole.SUPER_ADMIN)
    def refresh_custom_holidays():
        """Re-sync the in-memory custom holidays after external edits."""
        manager = components.holiday_manager
        components.run(manager.refresh_custom_holidays(force_reload=True))
        return jsonify({'holidays': [h.to_dict() for h in manager.get_custom_holidays()]})
