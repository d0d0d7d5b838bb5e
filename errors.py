# errors.py - Error kinds and their single mapping to HTTP responses

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from database import db
from utils.responses import error_response


class ApiError(Exception):
    """Base error kind. Subclasses fix the HTTP status."""
    status_code = 500
    default_code = 'INTERNAL_SERVER_ERROR'
    default_message = 'Internal server error'

    def __init__(self, code=None, message=None, details=None, status_code=None):
        super().__init__(message or self.default_message)
        self.code = code or self.default_code
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class NotFound(ApiError):
    status_code = 404
    default_code = 'NOT_FOUND'
    default_message = 'Resource not found'


class ValidationFailed(ApiError):
    status_code = 422
    default_code = 'VALIDATION_ERROR'
    default_message = 'Validation failed'

    # Input problems that are not schema violations
    BAD_REQUEST_CODES = {
        'NO_VALID_FIELDS_TO_UPDATE',
        'MISSING_REQUIRED_FIELD',
        'SEARCH_QUERY_REQUIRED',
        'INVALID_ESTIMATE_STATUS',
    }

    def __init__(self, code=None, message=None, details=None, status_code=None):
        if status_code is None and code in self.BAD_REQUEST_CODES:
            status_code = 400
        super().__init__(code, message, details, status_code)


class Conflict(ApiError):
    status_code = 409
    default_code = 'CONFLICT'
    default_message = 'Resource conflict'


class Unauthorized(ApiError):
    status_code = 401
    default_code = 'ACCESS_DENIED'
    default_message = 'Access denied'


class Forbidden(ApiError):
    status_code = 403
    default_code = 'INSUFFICIENT_PERMISSIONS'
    default_message = 'Insufficient permissions'


def classify_integrity_error(exc: IntegrityError):
    """Return 'duplicate', 'foreign_key' or None for a database integrity error"""
    orig = getattr(exc, 'orig', None)
    pgcode = getattr(orig, 'pgcode', None)
    if pgcode == '23505':
        return 'duplicate'
    if pgcode == '23503':
        return 'foreign_key'

    text = str(orig or exc).lower()
    if 'unique' in text or 'duplicate' in text:
        return 'duplicate'
    if 'foreign key' in text:
        return 'foreign_key'
    return None


def register_error_handlers(app):
    """Map every error kind to the response envelope"""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            current_app.logger.error(f"{error.code}: {error.message}")
        return error_response(error.message, error.code, error.status_code, error.details)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        kind = classify_integrity_error(error)
        if kind == 'duplicate':
            return error_response('Duplicate entry', 'DUPLICATE_ENTRY', 409)
        if kind == 'foreign_key':
            return error_response('Referenced record not found', 'REFERENCE_NOT_FOUND', 400)
        current_app.logger.exception(f"Unhandled integrity error: {error}")
        return error_response('Internal server error', 'INTERNAL_SERVER_ERROR', 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        codes = {
            400: 'BAD_REQUEST',
            404: 'ROUTE_NOT_FOUND',
            405: 'METHOD_NOT_ALLOWED',
        }
        code = codes.get(error.code, 'HTTP_ERROR')
        return error_response(error.description or error.name, code, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        current_app.logger.exception(f"Unexpected error: {error}")
        return error_response('Internal server error', 'INTERNAL_SERVER_ERROR', 500)
