import logging
import os
import sys

from flask import Flask, jsonify
from analytics_service.extensions import db, migrate
from analytics_service.config import DevConfig, ProdConfig


def _configure_logging(app):
    """Set up structured logging for production."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    ))
    level = logging.INFO if not app.debug else logging.DEBUG
    # app.logger is the 'analytics_service' logger, parent of every module logger
    app.logger.setLevel(level)
    app.logger.addHandler(handler)
    logging.getLogger('gunicorn.error').setLevel(level)


def _ensure_schema(app):
    """Create the history and library tables if they don't exist yet.

    Deployments that don't run Flask-Migrate still get a usable schema.
    create_all is idempotent.
    """
    with app.app_context():
        try:
            db.create_all()
            app.logger.info('Schema check completed')
        except Exception as e:
            db.session.rollback()
            app.logger.warning('Schema check failed: %s', e)


def create_app(config=None):
    app = Flask(__name__, static_folder=None)

    if config is None:
        config = ProdConfig if os.environ.get('FLASK_ENV') == 'production' else DevConfig
    app.config.from_object(config)

    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so they are registered with SQLAlchemy (needed for migrations)
    from analytics_service import models  # noqa: F401

    _ensure_schema(app)

    from flask_cors import CORS
    CORS(app)

    # One breaker-backed gateway per upstream, shared by every request
    from analytics_service.gateways import build_gateways
    from analytics_service.middleware.auth import current_token
    app.extensions['gateways'] = build_gateways(app.config, token_provider=current_token)

    from analytics_service.errors import register_error_handlers
    register_error_handlers(app)

    from analytics_service.api import register_blueprints
    register_blueprints(app)

    # Health check endpoint (used by Docker and CI)
    @app.route('/healthz')
    def health_check():
        try:
            db.session.execute(db.text('SELECT 1'))
            return jsonify(status='healthy'), 200
        except Exception:
            app.logger.exception('Health check failed')
            return jsonify(status='unhealthy'), 503

    return app
