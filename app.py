# app.py - Application factory for the junk removal business API

import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate

from config import Config
from database import db, init_db
from errors import register_error_handlers

migrate = Migrate()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    _init_logging(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))

    # Initialize database (one engine and connection pool per process)
    init_db(app)

    # Schema changes are managed with 'flask db migrate' / 'flask db upgrade'
    migrate.init_app(app, db)

    register_error_handlers(app)

    # Import and register blueprints (after app is created)
    from routes.core_routes import core_bp
    from routes.lead_routes import lead_bp
    from routes.customer_routes import customer_bp
    from routes.employee_routes import employee_bp
    from routes.estimate_routes import estimate_bp
    from routes.job_routes import job_bp

    app.register_blueprint(core_bp, url_prefix='/api')
    app.register_blueprint(lead_bp, url_prefix='/api')
    app.register_blueprint(customer_bp, url_prefix='/api')
    app.register_blueprint(employee_bp, url_prefix='/api')
    app.register_blueprint(estimate_bp, url_prefix='/api')
    app.register_blueprint(job_bp, url_prefix='/api')

    return app


def _init_logging(app):
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    # one set of handlers per logger, even when the factory runs repeatedly
    for handler in list(app.logger.handlers):
        app.logger.removeHandler(handler)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    app.logger.addHandler(sh)

    logs_dir = app.config.get('LOG_DIR')
    if not logs_dir:
        return
    try:
        os.makedirs(logs_dir, exist_ok=True)
        fh = RotatingFileHandler(
            os.path.join(logs_dir, 'backend.log'), maxBytes=5_000_000, backupCount=3, encoding='utf-8',
        )
        fh.setFormatter(fmt)
        app.logger.addHandler(fh)
    except OSError as exc:
        app.logger.warning(f"File logging disabled: {exc}")


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        app.logger.info("Starting Flask application...")
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '5000')), debug=True)
