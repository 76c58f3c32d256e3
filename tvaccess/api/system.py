"""
Health check and configuration verification endpoints.
"""
from datetime import datetime

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..config import verify_whop_config

system_bp = Blueprint('system', __name__)

# Served under /api only
config_bp = Blueprint('config', __name__)


@system_bp.route('/health', methods=['GET'])
def health_check():
    """Health check including a database round-trip."""
    timestamp = datetime.utcnow().isoformat()
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        current_app.logger.error(f'Health check database error: {e}')
        return jsonify({
            'status': 'unhealthy',
            'timestamp': timestamp,
            'database': 'disconnected',
            'error': str(e),
        }), 503

    return jsonify({
        'status': 'healthy',
        'timestamp': timestamp,
        'database': 'connected',
    })


@config_bp.route('/config/verify', methods=['GET'])
def verify_config():
    """Report which Whop settings are missing. Values are never returned."""
    config = current_app.config
    result = verify_whop_config(config)

    return jsonify({
        **result,
        'hasApiKey': bool(config.get('WHOP_API_KEY')),
        'hasAppId': bool(config.get('WHOP_APP_ID')),
        'appId': config.get('WHOP_APP_ID') or None,
        'tokenVerification': 'signed' if config.get('WHOP_TOKEN_SECRET') else 'unverified',
    })
