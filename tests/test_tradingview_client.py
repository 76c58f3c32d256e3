"""
Tests for the TradingView client.

The HTTP session is a MagicMock; each test scripts the responses the
candidate endpoints return and checks which strategies were tried.
"""
import pytest
import requests
from unittest.mock import MagicMock

from tvaccess.services.tradingview_client import TradingViewClient, normalize_indicators


def make_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    if body is None:
        response.json.side_effect = ValueError('no json')
        response.text = ''
    else:
        response.json.return_value = body
        response.text = str(body)
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def tv(session):
    return TradingViewClient('sess', 'sign', base_url='https://tv.test', timeout=5, session=session)


class TestNormalizeIndicators:

    def test_results_key(self):
        body = {'results': [{'id': 'PUB;1', 'name': 'One'}]}
        assert normalize_indicators(body) == [{'id': 'PUB;1', 'name': 'One', 'scriptId': 'PUB;1'}]

    def test_alternate_keys_and_names(self):
        body = {'scripts': [
            {'script_id': 'S1', 'script_name': 'Named'},
            {'pine_id': 'P2', 'title': 'Titled'},
            {'id': 'X3'},
        ]}
        result = normalize_indicators(body)
        assert [i['id'] for i in result] == ['S1', 'P2', 'X3']
        assert [i['name'] for i in result] == ['Named', 'Titled', 'Unnamed Indicator']

    def test_bare_list_and_items_without_id(self):
        assert normalize_indicators([{'name': 'no id'}, 'junk', {'id': 7, 'name': 'ok'}]) == [
            {'id': '7', 'name': 'ok', 'scriptId': '7'}
        ]

    def test_unusable_body(self):
        assert normalize_indicators({'results': 'nope'}) == []
        assert normalize_indicators(None) == []


class TestClientSetup:

    def test_cookie_header(self, tv, session):
        assert session.headers['Cookie'] == 'sessionid=sess; sessionid_sign=sign'
        assert session.headers['Referer'] == 'https://tv.test'


class TestGetIndicators:

    def test_first_strategy_with_data_wins(self, tv, session):
        session.request.return_value = make_response(200, {'results': [{'id': 'PUB;1', 'name': 'One'}]})

        result = tv.get_indicators_detailed()

        assert result.success is True
        assert result.value == [{'id': 'PUB;1', 'name': 'One', 'scriptId': 'PUB;1'}]
        assert len(result.attempts) == 1
        args, kwargs = session.request.call_args
        assert args == ('GET', 'https://tv.test/pine_facade/list/')
        assert kwargs['params'] == {'order': 'created', 'limit': 100}
        assert kwargs['timeout'] == 5

    def test_empty_listing_falls_through(self, tv, session):
        session.request.side_effect = [
            make_response(200, {'results': []}),
            make_response(404),
            make_response(200, [{'id': 'PUB;2', 'name': 'Two'}]),
        ]

        result = tv.get_indicators_detailed()

        assert result.success is True
        assert [a.strategy for a in result.attempts] == [
            'list:/pine_facade/list/', 'list:/u/scripts/', 'list:/api/v1/user/scripts/'
        ]
        assert 'no usable data' in result.attempts[0].error
        assert result.value[0]['id'] == 'PUB;2'

    def test_all_strategies_fail_returns_empty(self, tv, session):
        session.request.side_effect = requests.exceptions.ConnectionError('down')

        assert tv.get_indicators() == []
        assert session.request.call_count == 3


class TestGrantAccess:

    def test_share_succeeds(self, tv, session):
        session.request.return_value = make_response(201, {'ok': True})

        result = tv.grant_access_detailed('PUB;1', 'alice')

        assert result.success is True
        args, kwargs = session.request.call_args
        assert args == ('POST', 'https://tv.test/pine_facade/script/PUB;1/share/')
        assert kwargs['json'] == {'username': 'alice', 'access_type': 'view'}

    def test_falls_back_to_invite(self, tv, session):
        session.request.side_effect = [make_response(403, {'detail': 'no'}), make_response(200, {})]

        result = tv.grant_access_detailed('PUB;1', 'alice')

        assert result.success is True
        assert [a.strategy for a in result.attempts] == ['share', 'invite']
        assert result.attempts[0].status_code == 403

    def test_all_fail(self, tv, session):
        session.request.return_value = make_response(500)

        assert tv.grant_access('PUB;1', 'alice') is False
        assert session.request.call_count == 2


class TestRevokeAccess:

    def test_share_delete_204(self, tv, session):
        session.request.return_value = make_response(204)

        result = tv.revoke_access_detailed('PUB;1', 'alice')

        assert result.success is True
        args, _ = session.request.call_args
        assert args == ('DELETE', 'https://tv.test/pine_facade/script/PUB;1/share/')

    def test_falls_back_to_remove_access(self, tv, session):
        session.request.side_effect = [make_response(405), make_response(200, {})]

        assert tv.revoke_access('PUB;1', 'alice') is True
        args, _ = session.request.call_args
        assert args == ('POST', 'https://tv.test/pine_facade/script/PUB;1/remove_access/')

    def test_errors_collected(self, tv, session):
        session.request.return_value = make_response(401)

        result = tv.revoke_access_detailed('PUB;1', 'alice')

        assert result.success is False
        assert len(result.errors) == 2


class TestVerifyConnection:

    def test_valid(self, tv, session):
        session.request.return_value = make_response(200)
        assert tv.verify_connection() is True
        args, _ = session.request.call_args
        assert args == ('GET', 'https://tv.test/u/')

    def test_rejected(self, tv, session):
        session.request.return_value = make_response(403)
        assert tv.verify_connection() is False

    def test_network_error(self, tv, session):
        session.request.side_effect = requests.exceptions.Timeout('slow')
        assert tv.verify_connection() is False
