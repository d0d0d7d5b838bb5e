# routes/core_routes.py - Service health
from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from database import db
from utils.responses import create_response

core_bp = Blueprint('core', __name__)


@core_bp.route('/health', methods=['GET'])
def health_check():
    """Round-trip to the connection pool; no auth"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'connected'
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"Health check database error: {exc}")
        database = 'disconnected'

    healthy = database == 'connected'
    body = create_response(
        healthy,
        'Service is healthy' if healthy else 'Service is unhealthy',
        {
            'status': 'healthy' if healthy else 'unhealthy',
            'database': database,
            'version': current_app.config.get('API_VERSION'),
            'timestamp': datetime.now(timezone.utc).isoformat(),
        },
        None if healthy else 'DATABASE_UNAVAILABLE',
    )
    return jsonify(body), 200 if healthy else 503
