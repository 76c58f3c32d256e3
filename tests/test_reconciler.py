"""
Tests for the membership webhook reconciler.
"""
import pytest

from tvaccess.extensions import db
from tvaccess.models import AccessGrant, Indicator
from tvaccess.services.reconciler import (
    WebhookReconciler,
    MembershipEvent,
    action_for,
    GRANT,
    REVOKE,
)
from conftest import failed_probe, ok_probe


def membership_payload(event_type, membership_id='mem_1', user_id='user_1', **data):
    return {'type': event_type, 'data': {'id': membership_id, 'user_id': user_id, **data}}


class TestEventParsing:

    @pytest.mark.parametrize('event_type,expected', [
        ('membership.created', GRANT),
        ('membership.updated', GRANT),
        ('membership.went_valid', GRANT),
        ('membership_activated', GRANT),
        ('membership.cancelled', REVOKE),
        ('membership.expired', REVOKE),
        ('membership.past_due', REVOKE),
        ('membership.went_invalid', REVOKE),
        ('membership_deactivated', REVOKE),
        ('payment.succeeded', None),
    ])
    def test_action_for(self, event_type, expected):
        assert action_for(event_type) == expected

    def test_nested_shape(self):
        event = MembershipEvent.from_payload({
            'type': 'membership.created',
            'data': {'id': 'mem_1', 'user': {'id': 'user_1'}, 'product': {'id': 'prod_1'}, 'status': 'active'},
        })
        assert (event.membership_id, event.user_id, event.product_id) == ('mem_1', 'user_1', 'prod_1')
        assert event.status == 'active'

    def test_flat_shape(self):
        event = MembershipEvent.from_payload({
            'event_type': 'membership.cancelled',
            'membership_id': 'mem_2',
            'user_id': 'user_2',
            'product_id': 'prod_2',
        })
        assert event.action == REVOKE
        assert (event.membership_id, event.user_id, event.product_id) == ('mem_2', 'user_2', 'prod_2')


class TestGrant:

    def test_regrants_existing_access(self, app, services, sample_grant, tradingview):
        sample_grant.is_active = False
        db.session.commit()

        result = WebhookReconciler(services).handle(membership_payload('membership.went_valid'))

        assert result.count('granted') == 1
        tradingview.grant_access_detailed.assert_called_once_with('PUB;abc', 'alice')
        assert AccessGrant.query.get(sample_grant.id).is_active is True

    def test_user_without_grant_is_skipped(self, app, services, sample_indicator, tradingview):
        result = WebhookReconciler(services).handle(membership_payload('membership.created', user_id='user_9'))

        assert result.count('skipped') == 1
        assert AccessGrant.query.count() == 0
        tradingview.grant_access_detailed.assert_not_called()

    def test_inactive_membership_not_granted(self, app, services, whop, sample_grant, tradingview):
        whop.get_membership.return_value['status'] = 'canceled'

        result = WebhookReconciler(services).handle(membership_payload('membership.updated'))

        assert result.skipped_reason == 'membership not active'
        tradingview.grant_access_detailed.assert_not_called()

    def test_membership_lookup_failure(self, app, services, whop, sample_grant):
        whop.get_membership.return_value = None

        result = WebhookReconciler(services).handle(membership_payload('membership.created'))

        assert result.skipped_reason == 'membership lookup failed'

    def test_indicator_attached_to_product(self, app, services, sample_grant, tradingview):
        indicator = Indicator.query.get(sample_grant.indicator_id)
        indicator.experience_id = 'prod_1'
        db.session.commit()

        result = WebhookReconciler(services).handle(membership_payload('membership.created'))

        assert result.count('granted') == 1

    def test_host_failure_recorded(self, app, services, sample_grant, tradingview):
        sample_grant.is_active = False
        db.session.commit()
        tradingview.grant_access_detailed.return_value = failed_probe()

        result = WebhookReconciler(services).handle(membership_payload('membership.created'))

        assert result.count('failed') == 1
        grant = AccessGrant.query.get(sample_grant.id)
        assert grant.is_active is False
        assert 'forbidden' in grant.last_error

    def test_one_failure_does_not_stop_batch(self, app, services, sample_grant, tradingview):
        second = Indicator(
            connection_id=sample_grant.indicator.connection_id,
            company_id='biz_1',
            tradingview_id='PUB;two',
            name='Second',
            experience_id='prod_1'
        )
        db.session.add(second)
        db.session.flush()
        db.session.add(AccessGrant(
            user_id='user_1', indicator_id=second.id, tradingview_username='alice', is_active=False
        ))
        db.session.commit()

        tradingview.grant_access_detailed.side_effect = [RuntimeError('boom'), ok_probe()]

        result = WebhookReconciler(services).handle(membership_payload('membership.created'))

        assert len(result.outcomes) == 2
        assert result.count('failed') == 1
        assert result.count('granted') == 1


class TestRevoke:

    def test_revokes_active_grant(self, app, services, sample_grant, tradingview):
        result = WebhookReconciler(services).handle(membership_payload('membership.cancelled'))

        assert result.count('revoked') == 1
        tradingview.revoke_access_detailed.assert_called_once_with('PUB;abc', 'alice')
        grant = AccessGrant.query.get(sample_grant.id)
        assert grant.is_active is False
        assert grant.revoked_at is not None
        assert grant.last_error is None

    def test_revokes_even_when_host_fails(self, app, services, sample_grant, tradingview):
        tradingview.revoke_access_detailed.return_value = failed_probe('share_delete', error='share_delete error')

        result = WebhookReconciler(services).handle(membership_payload('membership.expired'))

        assert result.count('revoked') == 1
        grant = AccessGrant.query.get(sample_grant.id)
        assert grant.is_active is False
        assert grant.last_error == 'share_delete error'

    def test_revokes_even_when_host_raises(self, app, services, sample_grant, tradingview):
        tradingview.revoke_access_detailed.side_effect = RuntimeError('network down')

        WebhookReconciler(services).handle(membership_payload('membership.went_invalid'))

        assert AccessGrant.query.get(sample_grant.id).is_active is False

    def test_other_membership_untouched(self, app, services, sample_grant, tradingview):
        result = WebhookReconciler(services).handle(membership_payload('membership.cancelled', membership_id='mem_2'))

        assert result.skipped_reason == 'no active grants'
        assert AccessGrant.query.get(sample_grant.id).is_active is True
        tradingview.revoke_access_detailed.assert_not_called()


class TestSkipped:

    def test_unhandled_event(self, app, services, whop):
        result = WebhookReconciler(services).handle({'type': 'payment.succeeded', 'data': {'id': 'pay_1'}})

        assert result.action is None
        assert result.skipped_reason == 'unhandled event type'
        whop.get_membership.assert_not_called()

    def test_missing_user(self, app, services):
        result = WebhookReconciler(services).handle({'type': 'membership.cancelled', 'data': {'id': 'mem_1'}})
        assert result.skipped_reason == 'missing membership or user id'
