"""
Seller API endpoints.
Connect a TradingView account, manage the indicator catalog and attach
indicators to Whop products/experiences.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import get_services
from ..services.catalog_service import CatalogService
from ..middleware.whop_auth import require_company_admin

seller_bp = Blueprint('seller', __name__)

MANUAL_ENTRY_WARNING = (
    'Could not list indicators from TradingView. '
    'Add them manually with their TradingView script ID.'
)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


# ==================== Connection ====================

@seller_bp.route('/connect', methods=['POST'])
@require_company_admin
def connect():
    """Connect the seller's TradingView account and import indicators."""
    data = _json_body()
    session_id = data.get('sessionId')
    session_id_sign = data.get('sessionIdSign')

    service = CatalogService(g.company_id)
    client = get_services().tradingview_factory(session_id, session_id_sign)

    connection, indicators, probe = service.connect(session_id, session_id_sign, client)

    response = {
        'success': True,
        'connection': connection.to_dict(),
        'indicatorsImported': len(indicators),
    }
    if not indicators:
        # Empty listing means "unknown", not "no indicators"
        response['warning'] = MANUAL_ENTRY_WARNING
        response['manualEntryAvailable'] = True
        response['attempts'] = probe.to_dict()['attempts']

    return jsonify(response)


@seller_bp.route('/connect', methods=['DELETE'])
@require_company_admin
def disconnect():
    """Disconnect the TradingView account."""
    CatalogService(g.company_id).disconnect()
    return jsonify({'success': True})


# ==================== Indicators ====================

@seller_bp.route('/indicators', methods=['GET'])
@require_company_admin
def list_indicators():
    """List all indicators for the seller."""
    indicators = CatalogService(g.company_id).list_indicators()
    return jsonify({'indicators': [i.to_dict() for i in indicators]})


@seller_bp.route('/indicators', methods=['POST'])
@require_company_admin
def import_indicators():
    """Re-import indicators from TradingView."""
    service = CatalogService(g.company_id)
    connection = service.require_connection()
    client = get_services().tradingview_for(connection)

    imported, probe = service.import_indicators(connection, client)

    response = {
        'success': True,
        'indicators': [i.to_dict() for i in imported],
        'count': len(imported),
    }
    if not imported:
        current_app.logger.warning(f'Indicator import for {g.company_id} returned nothing')
        response['warning'] = MANUAL_ENTRY_WARNING
        response['manualEntryAvailable'] = True
        response['attempts'] = probe.to_dict()['attempts']

    return jsonify(response)


@seller_bp.route('/indicators/manual', methods=['POST'])
@require_company_admin
def add_manual_indicator():
    """Manually add an indicator by its TradingView script ID."""
    data = _json_body()
    indicator = CatalogService(g.company_id).add_manual_indicator(
        tradingview_id=data.get('tradingViewId'),
        name=data.get('name'),
        script_id=data.get('scriptId')
    )
    return jsonify({'success': True, 'indicator': indicator.to_dict()}), 201


@seller_bp.route('/indicators/<int:indicator_id>/attach', methods=['POST'])
@require_company_admin
def attach_indicator(indicator_id):
    """Attach an indicator to a Whop experience/product."""
    data = _json_body()
    indicator = CatalogService(g.company_id).attach(indicator_id, data.get('experienceId'))
    return jsonify({'success': True, 'indicator': indicator.to_dict()})
