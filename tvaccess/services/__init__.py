"""
Service layer.

The Whop client, the TradingView client factory and the identity provider are
built once per process by ``build_services`` and stored on the app; request
handlers reach them through ``get_services()``.
"""
from dataclasses import dataclass
from typing import Callable

from flask import current_app

from .whop_client import WhopClient
from .tradingview_client import TradingViewClient

EXTENSION_KEY = 'tvaccess'


@dataclass
class Services:
    """Per-process collaborators shared by all requests."""
    whop: WhopClient
    tradingview_factory: Callable[[str, str], TradingViewClient]
    identity: object

    def tradingview_for(self, connection) -> TradingViewClient:
        """Build a TradingView client for a stored connection."""
        return self.tradingview_factory(connection.session_id, connection.session_id_sign)


def build_services(config) -> Services:
    """Construct the default collaborators from Flask config."""
    from ..middleware.whop_auth import build_identity_provider

    timeout = config.get('HTTP_TIMEOUT', 30.0)
    base_url = config.get('TRADINGVIEW_BASE_URL')

    def tradingview_factory(session_id: str, session_id_sign: str) -> TradingViewClient:
        return TradingViewClient(session_id, session_id_sign, base_url=base_url, timeout=timeout)

    return Services(
        whop=WhopClient(
            api_key=config.get('WHOP_API_KEY'),
            app_id=config.get('WHOP_APP_ID'),
            api_base=config.get('WHOP_API_BASE'),
            timeout=timeout,
        ),
        tradingview_factory=tradingview_factory,
        identity=build_identity_provider(config),
    )


def get_services() -> Services:
    """Return the collaborators registered on the current app."""
    return current_app.extensions[EXTENSION_KEY]
