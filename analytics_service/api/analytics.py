from flask import Blueprint, current_app, jsonify, request
from analytics_service.api.params import parse_datetime, parse_int, to_json
from analytics_service.envelope import ApiResponse
from analytics_service.extensions import db
from analytics_service.gateways.circuit_breaker import get_all_breakers
from analytics_service.middleware.auth import require_admin
from analytics_service.repositories import AnalyticsRepository
from analytics_service.services.analytics import AnalyticsService

bp = Blueprint('analytics', __name__, url_prefix='/api/v1/analytics')


def _service():
    gateways = current_app.extensions['gateways']
    return AnalyticsService(
        AnalyticsRepository(db.session),
        content_gateway=gateways.content,
        engagement_gateway=gateways.engagement,
        user_gateway=gateways.user,
        gamification_gateway=gateways.gamification,
        default_window_days=current_app.config['ANALYTICS_DEFAULT_WINDOW_DAYS'],
        default_top_limit=current_app.config['TOP_CONTENT_DEFAULT_LIMIT'],
    )


def _window_args():
    return {
        'start': parse_datetime('start_date'),
        'end': parse_datetime('end_date'),
        'period': request.args.get('period'),
    }


def _ok(result):
    return jsonify(ApiResponse.ok(to_json(result)).to_dict())


@bp.route('/summary', methods=['GET'])
@require_admin
def summary():
    """Activity summary with period-over-period growth.

    Query params:
        start_date, end_date: ISO dates (default: trailing 30 days)
        period: day|week|month (default: day)
    """
    return _ok(_service().get_analytics_summary(**_window_args()))


@bp.route('/trends/users', methods=['GET'])
@require_admin
def user_trends():
    return _ok(_service().get_user_trends(**_window_args()))


@bp.route('/trends/reading', methods=['GET'])
@require_admin
def reading_trends():
    return _ok(_service().get_reading_activity_trends(**_window_args()))


@bp.route('/platform', methods=['GET'])
@require_admin
def platform_statistics():
    return _ok(_service().get_platform_statistics())


@bp.route('/dau', methods=['GET'])
@require_admin
def daily_active_users():
    """DAU/WAU/MAU around a date (default: today) with an hourly breakdown."""
    return _ok(_service().get_daily_active_users(parse_datetime('date')))


@bp.route('/top-content', methods=['GET'])
@require_admin
def top_content():
    return _ok(_service().get_top_content(parse_int('limit', None, minimum=1, maximum=100)))


@bp.route('/gateways', methods=['GET'])
@require_admin
def gateway_status():
    """Circuit breaker state for every upstream."""
    return _ok(get_all_breakers())
