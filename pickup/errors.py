"""API error taxonomy and the JSON error handlers that render it."""
from logging import getLogger

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = getLogger(__name__)


class ApiError(Exception):
    """Base error carrying an HTTP status, a machine code and extra context.

    Keyword arguments passed to the constructor are merged into the JSON
    body so callers can render a specific UI state (e.g. the status of an
    existing join request).
    """
    status_code = 500
    code = 'error'

    def __init__(self, message, code=None, **context):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context

    def to_dict(self):
        payload = {'error': self.message, 'code': self.code}
        payload.update(self.context)
        return payload


class ValidationError(ApiError):
    status_code = 400
    code = 'validation_error'

    def __init__(self, message, field=None, **context):
        if field:
            context['field'] = field
        super().__init__(message, **context)
        self.field = field


class InvalidOperation(ApiError):
    status_code = 400
    code = 'invalid_operation'


class Unauthenticated(ApiError):
    status_code = 401
    code = 'unauthenticated'


class Forbidden(ApiError):
    status_code = 403
    code = 'forbidden'


class NotFound(ApiError):
    status_code = 404
    code = 'not_found'


class Conflict(ApiError):
    status_code = 409
    code = 'conflict'


def register_error_handlers(app):
    from pickup.app import db

    @app.errorhandler(ApiError)
    def _handle_api_error(exc):
        db.session.rollback()
        logger.warning(
            '%s %s -> %s %s', request.method, request.path, exc.status_code, exc.message,
        )
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc):
        logger.warning('%s %s -> %s %s', request.method, request.path, exc.code, exc.name)
        return jsonify({'error': exc.description or exc.name, 'code': 'http_error'}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc):
        db.session.rollback()
        logger.exception('%s %s -> 500 unhandled error', request.method, request.path)
        return jsonify({'error': 'Internal server error', 'code': 'internal_error'}), 500
