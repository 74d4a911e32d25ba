from flask import Blueprint, current_app, g, jsonify, request
from analytics_service.api.params import parse_int, to_json
from analytics_service.envelope import ApiResponse
from analytics_service.errors import ValidationError
from analytics_service.extensions import db
from analytics_service.middleware.auth import require_auth
from analytics_service.repositories import HistoryRepository, LibraryRepository
from analytics_service.services.history import HistoryService

bp = Blueprint('history', __name__, url_prefix='/api/v1/history')


def _service():
    gateways = current_app.extensions['gateways']
    return HistoryService(
        HistoryRepository(db.session),
        LibraryRepository(db.session),
        gateways.user,
        gateways.content,
    )


def _history_to_dict(history):
    """Serialize a History record to a dict."""
    return {
        'id': history.id,
        'uuid': history.uuid,
        'user_id': history.user_id,
        'novel_id': history.novel_id,
        'chapter_id': history.chapter_id,
        'create_time': history.create_time.isoformat() if history.create_time else None,
        'update_time': history.update_time.isoformat() if history.update_time else None,
    }


def _require_int(data, key):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{key} must be an integer')
    return value


@bp.route('', methods=['POST'])
@require_auth
def add_or_update_history():
    """UPSERT on (user_id, novel_id): record the chapter the user just read."""
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body is required')

    history = _service().add_or_update_history(
        g.user_id, _require_int(data, 'novel_id'), _require_int(data, 'chapter_id')
    )
    return jsonify(ApiResponse.ok(_history_to_dict(history), 'History recorded').to_dict())


@bp.route('', methods=['GET'])
@require_auth
def get_user_history():
    """Paginated history, most recent first, enriched with novel metadata."""
    page = parse_int('page', 0, minimum=0)
    size = parse_int('size', 20, minimum=1, maximum=current_app.config['HISTORY_MAX_PAGE_SIZE'])

    result = _service().get_user_history(g.user_id, page, size)
    return jsonify(ApiResponse.ok(to_json(result)).to_dict())


@bp.route('/clear', methods=['DELETE'])
@require_auth
def clear_history():
    """Clear ALL history for the authenticated user."""
    _service().clear_history(g.user_id)
    return jsonify(ApiResponse.ok(message='History cleared').to_dict())


@bp.route('/<int:history_id>', methods=['DELETE'])
@require_auth
def delete_history(history_id):
    """Remove a single history record owned by the caller."""
    _service().delete_history(g.user_id, history_id)
    return jsonify(ApiResponse.ok(message='History deleted').to_dict())
