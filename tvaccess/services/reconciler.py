"""
Membership webhook reconciler.

Maps Whop membership lifecycle events onto AccessGrant rows and TradingView
calls. Two transitions only:

- grant:  membership became valid. Re-grant every existing AccessGrant the
          user holds on indicators attached to the membership's product.
          Users without a grant are skipped; they still have to submit their
          TradingView username once.
- revoke: membership ended. Revoke every active grant held under it.

Each grant is handled on its own; one failure is logged and the rest of the
batch continues. Nothing is retried.
"""
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from ..extensions import db
from ..models import AccessGrant, Indicator

logger = logging.getLogger(__name__)

GRANT = 'grant'
REVOKE = 'revoke'

GRANT_EVENTS = (
    'membership.created',
    'membership.updated',
    'membership.went_valid',
    'membership_activated',
)

REVOKE_EVENTS = (
    'membership.cancelled',
    'membership.expired',
    'membership.past_due',
    'membership.went_invalid',
    'membership_deactivated',
)


def action_for(event_type: Optional[str]) -> Optional[str]:
    if event_type in GRANT_EVENTS:
        return GRANT
    if event_type in REVOKE_EVENTS:
        return REVOKE
    return None


def _pick_id(data: Dict[str, Any], key: str, flat_key: str) -> str:
    value = data.get(flat_key)
    if value:
        return str(value)
    nested = data.get(key)
    if isinstance(nested, dict) and nested.get('id'):
        return str(nested['id'])
    return ''


@dataclass
class MembershipEvent:
    """Membership fields extracted from a webhook payload."""
    event_type: Optional[str]
    membership_id: str = ''
    user_id: str = ''
    product_id: str = ''
    company_id: str = ''
    status: Optional[str] = None

    @property
    def action(self) -> Optional[str]:
        return action_for(self.event_type)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'MembershipEvent':
        """
        Parse nested ({'data': {...}}) and flat payload shapes.

        Nested values win; the flat top-level fields are the fallback.
        """
        data = payload.get('data') if isinstance(payload.get('data'), dict) else {}

        return cls(
            event_type=payload.get('type') or payload.get('event_type'),
            membership_id=str(data.get('id') or payload.get('membership_id') or ''),
            user_id=_pick_id(data, 'user', 'user_id') or str(payload.get('user_id') or ''),
            product_id=_pick_id(data, 'product', 'product_id') or str(payload.get('product_id') or ''),
            company_id=_pick_id(data, 'company', 'company_id') or str(payload.get('company_id') or ''),
            status=data.get('status') or payload.get('status'),
        )


@dataclass
class GrantOutcome:
    """What happened to one grant (or indicator) in a batch."""
    indicator_id: int
    grant_id: Optional[int] = None
    status: str = 'skipped'  # granted, revoked, failed, skipped
    error: Optional[str] = None


@dataclass
class ReconcileResult:
    """Summary of one webhook's reconciliation."""
    event_type: Optional[str]
    action: Optional[str]
    outcomes: List[GrantOutcome] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'eventType': self.event_type,
            'action': self.action,
            'skippedReason': self.skipped_reason,
            'granted': self.count('granted'),
            'revoked': self.count('revoked'),
            'failed': self.count('failed'),
            'skipped': self.count('skipped'),
            'outcomes': [asdict(o) for o in self.outcomes],
        }


class WebhookReconciler:
    """Synchronizes AccessGrant state with membership lifecycle events."""

    def __init__(self, services):
        self.services = services

    def handle(self, payload: Dict[str, Any]) -> ReconcileResult:
        event = MembershipEvent.from_payload(payload)
        result = ReconcileResult(event_type=event.event_type, action=event.action)

        if event.action is None:
            logger.info(f'Ignoring webhook event type {event.event_type}')
            result.skipped_reason = 'unhandled event type'
            return result

        if not event.membership_id or not event.user_id:
            logger.error('Missing membership or user ID in webhook payload')
            result.skipped_reason = 'missing membership or user id'
            return result

        if event.action == GRANT:
            self.grant(event, result)
        else:
            self.revoke(event, result)

        logger.info(
            f'Reconciled {event.event_type} for membership {event.membership_id}',
            extra={'summary': {k: v for k, v in result.to_dict().items() if k != 'outcomes'}}
        )
        return result

    # ==================== GRANT ====================

    def _attached_indicators(self, product_id: str, company_id: str) -> List[Indicator]:
        """Indicators attached to the product or to one of its experiences."""
        attach_ids = [product_id]

        product = self.services.whop.get_product(product_id)
        if product:
            attach_ids.extend(product.get('experience_ids') or [])
            company_id = company_id or product.get('company_id')

        query = Indicator.query.filter(Indicator.experience_id.in_(attach_ids))
        if company_id:
            query = query.filter(Indicator.company_id == company_id)
        return query.all()

    def grant(self, event: MembershipEvent, result: ReconcileResult) -> None:
        whop = self.services.whop

        membership = whop.get_membership(event.membership_id)
        if not membership:
            result.skipped_reason = 'membership lookup failed'
            return
        if not whop.is_membership_active(membership):
            logger.info(f'Membership {event.membership_id} is {membership.get("status")}, not granting')
            result.skipped_reason = 'membership not active'
            return

        product_id = event.product_id or membership.get('product_id')
        if not product_id:
            result.skipped_reason = 'no product on membership'
            return

        company_id = event.company_id or membership.get('company_id')
        for indicator in self._attached_indicators(product_id, company_id):
            result.outcomes.append(self._grant_one(event, indicator))

    def _grant_one(self, event: MembershipEvent, indicator: Indicator) -> GrantOutcome:
        outcome = GrantOutcome(indicator_id=indicator.id)

        grant = AccessGrant.query.filter_by(user_id=event.user_id, indicator_id=indicator.id).first()
        if not grant:
            outcome.error = 'no access record, buyer has not submitted a username'
            return outcome
        outcome.grant_id = grant.id

        try:
            client = self.services.tradingview_for(indicator.connection)
            probe = client.grant_access_detailed(indicator.tradingview_id, grant.tradingview_username)

            if probe.success:
                grant.mark_active(event.membership_id)
                outcome.status = 'granted'
            else:
                grant.last_error = '; '.join(probe.errors) or 'grant failed'
                outcome.status = 'failed'
                outcome.error = grant.last_error

            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Error granting access for user {event.user_id}, indicator {indicator.id}: {e}')
            outcome.status = 'failed'
            outcome.error = str(e)

        return outcome

    # ==================== REVOKE ====================

    def revoke(self, event: MembershipEvent, result: ReconcileResult) -> None:
        grants = AccessGrant.query.filter_by(
            user_id=event.user_id,
            membership_id=event.membership_id,
            is_active=True
        ).all()

        if not grants:
            result.skipped_reason = 'no active grants'

        for grant in grants:
            result.outcomes.append(self._revoke_one(event, grant))

    def _revoke_one(self, event: MembershipEvent, grant: AccessGrant) -> GrantOutcome:
        outcome = GrantOutcome(indicator_id=grant.indicator_id, grant_id=grant.id)
        indicator = grant.indicator

        host_error = None
        try:
            client = self.services.tradingview_for(indicator.connection)
            probe = client.revoke_access_detailed(indicator.tradingview_id, grant.tradingview_username)
            if not probe.success:
                host_error = '; '.join(probe.errors) or 'revoke failed'
        except Exception as e:
            logger.error(f'Error revoking access for user {event.user_id}, indicator {grant.indicator_id}: {e}')
            host_error = str(e)

        # The entitlement has ended either way; the host error stays on the row
        try:
            grant.mark_revoked(error=host_error)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f'Error saving revocation for grant {grant.id}: {e}')
            outcome.status = 'failed'
            outcome.error = str(e)
            return outcome

        outcome.status = 'revoked'
        outcome.error = host_error
        return outcome
