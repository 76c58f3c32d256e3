"""
CLI Commands for indicator access administration.

Usage:
    flask access verify-connections                  # Check every seller's TradingView cookies
    flask access verify-connections --company-id biz_1
    flask access failed-webhooks --limit 20          # Show webhook events that errored
"""
from .access import init_app as init_access_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_access_commands(app)
