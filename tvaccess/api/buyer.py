"""
Buyer API endpoints.
"""
from flask import Blueprint, request, jsonify, g

from ..services import get_services
from ..services.access_service import AccessService
from ..middleware.whop_auth import require_whop_user

buyer_bp = Blueprint('buyer', __name__)


@buyer_bp.route('/access', methods=['POST'])
@require_whop_user
def request_access():
    """
    Buyer submits their TradingView username to get access.

    Body:
        tradingViewUsername: TradingView username (required)
        experienceId: Whop experience the indicator is attached to (required)
        membershipId: Whop membership backing the access (optional)
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    user = g.whop_user

    result = AccessService(get_services()).request_access(
        user_id=user.user_id,
        company_id=user.company_id,
        tradingview_username=data.get('tradingViewUsername'),
        experience_id=data.get('experienceId'),
        membership_id=data.get('membershipId')
    )

    return jsonify(result.to_dict())
