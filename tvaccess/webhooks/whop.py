"""
Whop membership webhook handler.

Every delivery is stored as a WebhookEvent before any processing, then handed
to the reconciler. The row records whether processing succeeded.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import WebhookEvent
from ..services import get_services
from ..services.reconciler import WebhookReconciler

whop_webhook_bp = Blueprint('whop_webhooks', __name__)


@whop_webhook_bp.route('/whop', methods=['POST'])
def handle_whop_webhook():
    """
    Handle membership lifecycle events from Whop.

    Grant events re-grant existing access records; revoke events revoke every
    active grant under the membership.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    event_type = payload.get('type') or payload.get('event_type') or 'unknown'
    current_app.logger.info(f'Whop webhook received: {event_type}')

    event = WebhookEvent(event_type=event_type, payload=payload)
    db.session.add(event)
    db.session.commit()

    try:
        result = WebhookReconciler(get_services()).handle(payload)

        event.mark_processed()
        db.session.commit()

        return jsonify({'success': True, 'eventId': event.id, 'result': result.to_dict()})

    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f'Webhook processing error for event {event.id}: {e}')

        event.mark_processed(error=str(e))
        db.session.commit()

        return jsonify({
            'error': 'Webhook processing failed',
            'code': 'WEBHOOK_ERROR',
            'eventId': event.id,
        }), 500
