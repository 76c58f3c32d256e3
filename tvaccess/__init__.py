"""
TradingView Indicator Access for Whop
Flask application factory
"""
import os
import re
import logging
from flask import Flask, jsonify
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .services import EXTENSION_KEY, Services, build_services
from .utils.logging_config import setup_logging
from .utils.exceptions import AccessError
from .utils.errors import error_response

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, services: Services = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)
        services: Pre-built collaborators (Whop client, TradingView factory,
            identity provider). Built from config when omitted.

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    config_class = get_config(config_name)

    # Setup logging before anything else
    setup_logging(config_class.LOG_LEVEL)
    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # The app is embedded in Whop's iframe
    cors_origins = [
        'https://whop.com',
        re.compile(r'https://.*\.whop\.com'),
        re.compile(r'https://.*\.apps\.whop\.com'),
    ]
    if config_name != 'production':
        cors_origins.extend(['http://localhost:3000', 'http://127.0.0.1:3000'])
    CORS(
        app,
        origins=cors_origins,
        supports_credentials=True,
        allow_headers=['Content-Type', 'Authorization', 'X-Whop-User-Token', 'X-Whop-Token']
    )

    app.extensions[EXTENSION_KEY] = services or build_services(app.config)

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    logger.info(f'Indicator access app created ({config_name})')
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.seller import seller_bp
    from .api.buyer import buyer_bp
    from .api.experiences import experiences_bp
    from .api.system import system_bp, config_bp
    from .webhooks.whop import whop_webhook_bp

    app.register_blueprint(seller_bp, url_prefix='/api/seller')
    app.register_blueprint(buyer_bp, url_prefix='/api/buyer')
    app.register_blueprint(experiences_bp, url_prefix='/api/experiences')

    # Health is served at both /health and /api/health
    app.register_blueprint(system_bp)
    app.register_blueprint(system_bp, url_prefix='/api', name='api_system')
    app.register_blueprint(config_bp, url_prefix='/api')

    app.register_blueprint(whop_webhook_bp, url_prefix='/api/webhooks')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""

    @app.errorhandler(AccessError)
    def access_error(error):
        if error.status_code >= 500:
            db.session.rollback()
        return error_response(error.message, error.code, error.status_code, **error.extra)

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'message': str(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'message': str(error)}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'message': str(error)}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal server error', 'message': str(error)}), 500
