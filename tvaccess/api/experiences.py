"""
Experience setup API.

Tells an owner/admin viewing an experience whether an indicator still needs
to be connected, imported or attached. Every response carries an ordered
``logs`` list for troubleshooting.
"""
from flask import Blueprint, jsonify, current_app

from ..services import get_services
from ..services.catalog_service import CatalogService
from ..middleware.whop_auth import get_identity_from_request
from ..utils.errors import unauthorized, forbidden, not_found, internal_error, ErrorCode

experiences_bp = Blueprint('experiences', __name__)


@experiences_bp.route('/<experience_id>/setup', methods=['GET'])
def setup_status(experience_id):
    """Check whether this experience needs indicator setup."""
    logs = [f'[START] Setup check for experience {experience_id}']

    try:
        user = get_identity_from_request()
        if not user or not user.user_id:
            logs.append('No authenticated user found')
            return unauthorized('Not authenticated', logs=logs)
        logs.append(f'Authenticated user: userId={user.user_id}')

        whop = get_services().whop
        experience = whop.get_experience(experience_id)
        if not experience or not experience.get('company_id'):
            logs.append('Could not get company from experience')
            return not_found('Experience not found', ErrorCode.EXPERIENCE_NOT_FOUND, logs=logs)
        company_id = experience['company_id']
        logs.append(f'Got companyId from experience: {company_id}')

        if not whop.is_user_owner_or_admin(user.user_id, company_id):
            logs.append('User is not owner/admin')
            return forbidden('Only company owners/admins can set up indicators', logs=logs)
        logs.append('User is owner/admin')

        service = CatalogService(company_id)

        existing = service.find_attached(experience_id)
        if existing:
            logs.append(f'Indicator already set up: {existing.id}')
            return jsonify({
                'setupNeeded': False,
                'indicator': {
                    'id': existing.id,
                    'name': existing.name,
                    'tradingViewId': existing.tradingview_id,
                },
                'logs': logs,
            })

        connection = service.get_connection()
        if not connection:
            logs.append('No TradingView connection found')
            return jsonify({
                'setupNeeded': True,
                'step': 'connect',
                'connectionExists': False,
                'companyId': company_id,
                'logs': logs,
            })
        logs.append('TradingView connection exists')

        indicators = service.available_indicators(connection)
        logs.append(f'Found {len(indicators)} available indicators')

        return jsonify({
            'setupNeeded': True,
            'step': 'attach' if indicators else 'import',
            'connectionExists': True,
            'indicators': [i.to_dict() for i in indicators],
            'companyId': company_id,
            'logs': logs,
        })

    except Exception as e:
        logs.append(f'Error: {e}')
        current_app.logger.error(f'Error checking setup status: {e}')
        return internal_error('Failed to check setup status', details=str(e), logs=logs)
