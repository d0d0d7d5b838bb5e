# utils/responses.py - Uniform response envelope

from datetime import datetime, timezone

from flask import jsonify


def create_response(success, message, data=None, error=None):
    """Build the {success, message, data, error, timestamp} envelope"""
    return {
        'success': success,
        'message': message,
        'data': data,
        'error': error,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }


def api_response(message, data=None, status_code=200):
    return jsonify(create_response(True, message, data)), status_code


def error_response(message, error, status_code, details=None):
    body = create_response(False, message, None, error)
    if details:
        body['details'] = details
    return jsonify(body), status_code
