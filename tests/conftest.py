"""
Shared fixtures.

The Whop client and the TradingView client are MagicMocks injected through
Services, so no test touches the network.
"""
import jwt
import pytest
from unittest.mock import MagicMock

from tvaccess import create_app
from tvaccess.extensions import db
from tvaccess.models import Connection, Indicator, AccessGrant
from tvaccess.services import Services
from tvaccess.services.tradingview_client import Attempt, ProbeResult
from tvaccess.middleware.whop_auth import UnverifiedTokenProvider

TOKEN_KEY = 'test-signing-key-0123456789abcdef0123456789'


def make_token(user_id='user_1', company_id='biz_1', **claims):
    """Build a Whop-style user token. The signature is never checked in tests."""
    payload = {'userId': user_id, 'companyId': company_id, **claims}
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, TOKEN_KEY, algorithm='HS256')


def auth_headers_for(user_id='user_1', company_id='biz_1'):
    return {
        'x-whop-user-token': make_token(user_id, company_id),
        'Content-Type': 'application/json',
    }


def ok_probe(name='share', value=None):
    return ProbeResult(
        success=True,
        attempts=[Attempt(strategy=name, method='POST', path='/x/', status_code=200, ok=True)],
        value=value
    )


def failed_probe(name='share', error='share returned status 403: forbidden'):
    return ProbeResult(
        success=False,
        attempts=[Attempt(strategy=name, method='POST', path='/x/', status_code=403, ok=False, error=error)]
    )


@pytest.fixture
def whop():
    """Mock Whop client with an owner user and a single experience."""
    client = MagicMock()
    client.is_user_owner_or_admin.return_value = True
    client.get_experience.return_value = {
        'id': 'exp_1', 'name': 'Signals', 'company_id': 'biz_1', 'product_ids': ['prod_1'],
    }
    client.get_product.return_value = {
        'id': 'prod_1', 'name': 'Pro', 'company_id': 'biz_1', 'experience_ids': ['exp_1'],
    }
    client.get_membership.return_value = {
        'id': 'mem_1', 'user_id': 'user_1', 'product_id': 'prod_1',
        'company_id': 'biz_1', 'status': 'active',
    }
    client.is_membership_active.side_effect = (
        lambda m: bool(m) and m.get('status') in ('active', 'trialing')
    )
    return client


@pytest.fixture
def tradingview():
    """Mock TradingView client returned by the factory for any cookies."""
    client = MagicMock()
    client.verify_connection.return_value = True
    client.get_indicators_detailed.return_value = ok_probe('list:/pine_facade/list/', value=[
        {'id': 'PUB;abc', 'name': 'Alpha Trend', 'scriptId': 'PUB;abc'},
        {'id': 'PUB;def', 'name': 'Beta Bands', 'scriptId': 'PUB;def'},
    ])
    client.grant_access_detailed.return_value = ok_probe('share')
    client.revoke_access_detailed.return_value = ok_probe('share_delete')
    return client


@pytest.fixture
def services(whop, tradingview):
    return Services(
        whop=whop,
        tradingview_factory=MagicMock(return_value=tradingview),
        identity=UnverifiedTokenProvider(),
    )


@pytest.fixture
def app(services):
    """Create application for testing."""
    app = create_app('testing', services=services)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def auth_headers():
    """Headers for an owner of biz_1."""
    return auth_headers_for('user_1', 'biz_1')


@pytest.fixture
def sample_connection(app):
    connection = Connection(
        company_id='biz_1',
        session_id='sess-abc',
        session_id_sign='sign-abc'
    )
    db.session.add(connection)
    db.session.commit()
    return connection


@pytest.fixture
def sample_indicator(sample_connection):
    indicator = Indicator(
        connection_id=sample_connection.id,
        company_id='biz_1',
        tradingview_id='PUB;abc',
        name='Alpha Trend',
        script_id='PUB;abc',
        experience_id='exp_1',
        source='import'
    )
    db.session.add(indicator)
    db.session.commit()
    return indicator


@pytest.fixture
def sample_grant(sample_indicator):
    grant = AccessGrant(
        user_id='user_1',
        indicator_id=sample_indicator.id,
        tradingview_username='alice',
        membership_id='mem_1',
        is_active=True
    )
    db.session.add(grant)
    db.session.commit()
    return grant
