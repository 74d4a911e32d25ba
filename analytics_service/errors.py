"""Error taxonomy and its translation to HTTP responses.

Write-path failures (NotFound, Validation) propagate from the services to
the blueprints unchanged and are rendered here. ``ServiceDegraded`` is the
odd one out: gateways raise and catch it internally, it never reaches a
caller.
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from analytics_service.envelope import ApiResponse

logger = logging.getLogger(__name__)


class AnalyticsServiceError(Exception):
    """Base class for errors that map to a client-visible status."""

    status_code = 500

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class NotFoundError(AnalyticsServiceError):
    status_code = 404


class ValidationError(AnalyticsServiceError):
    status_code = 400


class UnauthorizedError(AnalyticsServiceError):
    status_code = 401


class AccessDeniedError(AnalyticsServiceError):
    status_code = 403


class ServiceDegraded(Exception):
    """An upstream call could not produce a usable result."""

    def __init__(self, service, operation, code, detail):
        self.service = service
        self.operation = operation
        self.code = code
        self.detail = detail
        super().__init__(f'{service} {operation}: {detail}')


def _error_response(code, message):
    return jsonify(ApiResponse.error(code, message).to_dict()), code


def register_error_handlers(app):
    @app.errorhandler(AnalyticsServiceError)
    def handle_service_error(e):
        return _error_response(e.status_code, e.message)

    @app.errorhandler(AccessDeniedError)
    def handle_access_denied(e):
        return _error_response(e.status_code, f'Access denied: {e.message}')

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return _error_response(e.code, e.description)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception('Unhandled error')
        return _error_response(500, f'System error: {e}')
