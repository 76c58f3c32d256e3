"""
Database models for the indicator access service.
TradingView connections, indicators, buyer access grants and the webhook log.
"""
from .connection import Connection
from .indicator import Indicator
from .access_grant import AccessGrant
from .webhook_event import WebhookEvent

__all__ = [
    'Connection',
    'Indicator',
    'AccessGrant',
    'WebhookEvent',
]
