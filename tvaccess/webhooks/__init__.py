"""
Webhook handlers for Whop events.
"""
from .whop import whop_webhook_bp

__all__ = ['whop_webhook_bp']
