"""
Tests for the seller API endpoints.

Tests cover:
- Connect / disconnect
- Indicator listing, re-import and manual entry
- Attaching an indicator to an experience
"""
from tvaccess.extensions import db
from tvaccess.models import Connection, Indicator
from conftest import failed_probe


class TestConnect:

    def test_connect_imports_indicators(self, client, auth_headers, tradingview, services):
        response = client.post('/api/seller/connect', json={
            'sessionId': 'sess', 'sessionIdSign': 'sign'
        }, headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['indicatorsImported'] == 2
        assert 'warning' not in data
        assert 'sessionId' not in data['connection']
        services.tradingview_factory.assert_called_with('sess', 'sign')

    def test_connect_with_empty_listing_offers_manual_entry(self, client, auth_headers, tradingview):
        probe = failed_probe('list:/pine_facade/list/')
        probe.value = []
        tradingview.get_indicators_detailed.return_value = probe

        response = client.post('/api/seller/connect', json={
            'sessionId': 'sess', 'sessionIdSign': 'sign'
        }, headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['indicatorsImported'] == 0
        assert data['manualEntryAvailable'] is True
        assert data['warning']
        assert data['attempts'][0]['strategy'] == 'list:/pine_facade/list/'
        assert data['attempts'][0]['status_code'] == 403

    def test_connect_invalid_cookies(self, client, auth_headers, tradingview):
        tradingview.verify_connection.return_value = False

        response = client.post('/api/seller/connect', json={
            'sessionId': 'sess', 'sessionIdSign': 'sign'
        }, headers=auth_headers)

        assert response.status_code == 400
        assert 'Invalid TradingView credentials' in response.get_json()['error']

    def test_connect_missing_cookies(self, client, auth_headers):
        response = client.post('/api/seller/connect', json={'sessionId': 'sess'}, headers=auth_headers)
        assert response.status_code == 400

    def test_disconnect(self, client, auth_headers, sample_indicator):
        response = client.delete('/api/seller/connect', headers=auth_headers)

        assert response.status_code == 200
        db.session.expire_all()
        assert Connection.query.count() == 0
        assert Indicator.query.count() == 0

    def test_disconnect_when_not_connected(self, client, auth_headers):
        response = client.delete('/api/seller/connect', headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json()['code'] == 'CONNECTION_NOT_FOUND'


class TestIndicators:

    def test_list_requires_connection(self, client, auth_headers):
        response = client.get('/api/seller/indicators', headers=auth_headers)
        assert response.status_code == 404

    def test_list(self, client, auth_headers, sample_indicator):
        response = client.get('/api/seller/indicators', headers=auth_headers)

        assert response.status_code == 200
        indicators = response.get_json()['indicators']
        assert len(indicators) == 1
        assert indicators[0]['tradingViewId'] == 'PUB;abc'
        assert indicators[0]['experienceId'] == 'exp_1'

    def test_reimport(self, client, auth_headers, sample_connection, services):
        response = client.post('/api/seller/indicators', headers=auth_headers)

        assert response.status_code == 200
        assert response.get_json()['count'] == 2
        services.tradingview_factory.assert_called_with('sess-abc', 'sign-abc')

    def test_manual_entry(self, client, auth_headers, sample_connection):
        response = client.post('/api/seller/indicators/manual', json={
            'tradingViewId': 'PUB;manual', 'name': 'Hand Added'
        }, headers=auth_headers)

        assert response.status_code == 201
        indicator = response.get_json()['indicator']
        assert indicator['source'] == 'manual'
        assert indicator['name'] == 'Hand Added'

    def test_manual_entry_requires_id(self, client, auth_headers, sample_connection):
        response = client.post('/api/seller/indicators/manual', json={'name': 'x'}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_TRADINGVIEWID'


class TestAttach:

    def test_attach(self, client, auth_headers, sample_indicator):
        response = client.post(
            f'/api/seller/indicators/{sample_indicator.id}/attach',
            json={'experienceId': 'exp_2'},
            headers=auth_headers
        )

        assert response.status_code == 200
        assert response.get_json()['indicator']['experienceId'] == 'exp_2'

    def test_attach_requires_experience(self, client, auth_headers, sample_indicator):
        response = client.post(
            f'/api/seller/indicators/{sample_indicator.id}/attach',
            json={},
            headers=auth_headers
        )
        assert response.status_code == 400

    def test_attach_unknown_indicator(self, client, auth_headers, sample_connection):
        response = client.post('/api/seller/indicators/9999/attach', json={'experienceId': 'exp_2'},
                               headers=auth_headers)
        assert response.status_code == 404
        assert response.get_json()['code'] == 'INDICATOR_NOT_FOUND'

    def test_attach_rejects_non_string_experience(self, client, auth_headers, sample_indicator):
        response = client.post(
            f'/api/seller/indicators/{sample_indicator.id}/attach',
            json={'experienceId': {'a': 1}},
            headers=auth_headers
        )

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_EXPERIENCEID'
        db.session.expire_all()
        assert Indicator.query.get(sample_indicator.id).experience_id == 'exp_1'


class TestInputTypes:

    def test_manual_entry_rejects_non_string_name(self, client, auth_headers, sample_connection):
        response = client.post('/api/seller/indicators/manual', json={
            'tradingViewId': 'PUB;manual', 'name': ['Hand', 'Added']
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_NAME'
        assert Indicator.query.count() == 0

    def test_manual_entry_rejects_non_string_id(self, client, auth_headers, sample_connection):
        response = client.post('/api/seller/indicators/manual', json={
            'tradingViewId': 42, 'name': 'Answer'
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_TRADINGVIEWID'

    def test_connect_rejects_non_string_cookies(self, client, auth_headers, tradingview):
        response = client.post('/api/seller/connect', json={
            'sessionId': 12345, 'sessionIdSign': 'sign'
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_SESSIONID'
        tradingview.verify_connection.assert_not_called()
