"""
Access service.
Buyer self-service access and AccessGrant bookkeeping.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..extensions import db
from ..models import AccessGrant, Indicator
from ..utils.exceptions import NotFoundError, UpstreamError
from ..utils.validation import text_field

logger = logging.getLogger(__name__)


@dataclass
class AccessResult:
    """Result of a buyer access request."""
    grant: AccessGrant
    already_active: bool = False
    logs: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            'success': True,
            'message': 'Access already granted' if self.already_active else 'Access granted successfully',
            'access': self.grant.to_dict(),
            'logs': self.logs,
        }


def find_grant(user_id: str, indicator_id: int) -> Optional[AccessGrant]:
    return AccessGrant.query.filter_by(user_id=user_id, indicator_id=indicator_id).first()


def upsert_grant(
    user_id: str,
    indicator: Indicator,
    tradingview_username: str,
    membership_id: str = None
) -> AccessGrant:
    """
    Create or update the grant keyed by (user_id, indicator_id).

    The caller decides the active state and commits.
    """
    grant = find_grant(user_id, indicator.id)
    if grant:
        grant.tradingview_username = tradingview_username
        if membership_id:
            grant.membership_id = membership_id
    else:
        grant = AccessGrant(
            user_id=user_id,
            indicator_id=indicator.id,
            tradingview_username=tradingview_username,
            membership_id=membership_id,
            is_active=False
        )
        db.session.add(grant)

    db.session.flush()
    return grant


class AccessService:
    """Grants buyers access to the indicator attached to an experience."""

    def __init__(self, services):
        self.services = services

    def resolve_company_id(self, company_id: str, experience_id: str) -> str:
        """Use the token's company, or look it up from the experience."""
        if company_id:
            return company_id
        experience = self.services.whop.get_experience(experience_id)
        return (experience or {}).get('company_id') or ''

    def request_access(
        self,
        user_id: str,
        company_id: str,
        tradingview_username: str,
        experience_id: str,
        membership_id: str = None
    ) -> AccessResult:
        """
        Grant the buyer access to the experience's indicator.

        Raises:
            ValidationError: Missing username or experience
            NotFoundError: No indicator attached (carries an isOwner hint)
            UpstreamError: TradingView refused or the seller's cookies expired
        """
        tradingview_username = text_field(tradingview_username, 'tradingViewUsername')
        experience_id = text_field(experience_id, 'experienceId')
        membership_id = text_field(membership_id, 'membershipId', required=False)

        logs = [f'Access request for experience {experience_id} by user {user_id}']

        company_id = self.resolve_company_id(company_id, experience_id)
        indicator = None
        if company_id:
            indicator = Indicator.query.filter_by(
                experience_id=experience_id,
                company_id=company_id
            ).first()

        if not indicator:
            is_owner = bool(company_id) and self.services.whop.is_user_owner_or_admin(user_id, company_id)
            logs.append('No indicator attached to this experience')
            raise NotFoundError(
                'Indicator',
                message='No indicator found for this experience',
                isOwner=is_owner,
                logs=logs
            )
        logs.append(f'Found indicator {indicator.id} ({indicator.name})')

        grant = find_grant(user_id, indicator.id)
        if grant and grant.is_active:
            logs.append('Access already active, nothing to do')
            return AccessResult(grant=grant, already_active=True, logs=logs)

        client = self.services.tradingview_for(indicator.connection)
        if not client.verify_connection():
            logs.append('Seller TradingView session is no longer valid')
            raise UpstreamError(
                'The seller\'s TradingView connection has expired. Please ask the seller to reconnect.',
                service='tradingview',
                logs=logs
            )
        logs.append('Seller TradingView session verified')

        probe = client.grant_access_detailed(indicator.tradingview_id, tradingview_username)
        for attempt in probe.attempts:
            logs.append(f'{attempt.strategy}: {"ok" if attempt.ok else attempt.error}')

        grant = upsert_grant(user_id, indicator, tradingview_username, membership_id)
        if probe.success:
            grant.mark_active(membership_id)
        else:
            grant.last_error = '; '.join(probe.errors) or 'grant failed'
        db.session.commit()

        if not probe.success:
            raise UpstreamError(
                'Failed to grant access on TradingView. Please verify your username.',
                service='tradingview',
                details=grant.last_error,
                logs=logs
            )

        logger.info(f'Granted {tradingview_username} access to indicator {indicator.id}')
        return AccessResult(grant=grant, logs=logs)
