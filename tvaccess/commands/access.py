"""
CLI Commands for connection and webhook maintenance.

Can be run by hand or from cron:

# Re-verify seller cookies (daily at 6 AM)
0 6 * * * cd /app && flask access verify-connections
"""
from datetime import datetime

import click
from flask.cli import with_appcontext

from ..extensions import db
from ..models import Connection, WebhookEvent
from ..services import get_services


@click.group('access')
def access_cli():
    """Indicator access maintenance commands."""
    pass


@access_cli.command('verify-connections')
@click.option('--company-id', help='Specific Whop company ID (or all if not specified)')
@with_appcontext
def verify_connections(company_id):
    """
    Check that stored TradingView cookies still work.

    Updates last_verified_at for connections that pass.
    """
    query = Connection.query
    if company_id:
        query = query.filter_by(company_id=company_id)
    connections = query.all()

    if not connections:
        click.echo('No connections found')
        return

    services = get_services()
    valid = 0
    for connection in connections:
        ok = services.tradingview_for(connection).verify_connection()
        if ok:
            connection.last_verified_at = datetime.utcnow()
            valid += 1
        click.echo(f"  {connection.company_id}: {'valid' if ok else 'EXPIRED'}")

    db.session.commit()
    click.echo(f'\nTOTAL: {valid}/{len(connections)} connections valid')


@access_cli.command('failed-webhooks')
@click.option('--limit', type=int, default=20, help='Number of events to show')
@with_appcontext
def failed_webhooks(limit):
    """List recent webhook events whose processing failed."""
    events = WebhookEvent.query.filter(
        WebhookEvent.error.isnot(None)
    ).order_by(WebhookEvent.created_at.desc()).limit(limit).all()

    if not events:
        click.echo('No failed webhook events')
        return

    for event in events:
        created = event.created_at.isoformat() if event.created_at else '-'
        click.echo(f'  #{event.id} {event.event_type} at {created}: {event.error}')


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(access_cli)
