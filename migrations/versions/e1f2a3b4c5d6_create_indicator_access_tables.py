"""Create TradingView connection, indicator, access and webhook tables

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'e1f2a3b4c5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the four indicator access tables."""
    op.create_table(
        'tradingview_connections',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.String(100), nullable=False),
        sa.Column('session_id', sa.Text(), nullable=False),
        sa.Column('session_id_sign', sa.Text(), nullable=False),
        sa.Column('last_verified_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tradingview_connections_company_id', 'tradingview_connections', ['company_id'], unique=True)

    op.create_table(
        'tradingview_indicators',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('connection_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.String(100), nullable=False),
        sa.Column('tradingview_id', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('script_id', sa.String(255), nullable=True),
        sa.Column('experience_id', sa.String(100), nullable=True),
        sa.Column('source', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['connection_id'], ['tradingview_connections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('connection_id', 'tradingview_id', name='uq_connection_tradingview_id')
    )
    op.create_index('ix_tradingview_indicators_company_id', 'tradingview_indicators', ['company_id'])
    op.create_index('ix_tradingview_indicators_experience_id', 'tradingview_indicators', ['experience_id'])

    op.create_table(
        'user_indicator_access',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(100), nullable=False),
        sa.Column('indicator_id', sa.Integer(), nullable=False),
        sa.Column('tradingview_username', sa.String(255), nullable=False),
        sa.Column('membership_id', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['indicator_id'], ['tradingview_indicators.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'indicator_id', name='uq_user_indicator')
    )
    op.create_index('ix_user_indicator_access_user_id', 'user_indicator_access', ['user_id'])
    op.create_index('ix_user_indicator_access_membership_id', 'user_indicator_access', ['membership_id'])

    op.create_table(
        'webhook_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_webhook_events_event_type', 'webhook_events', ['event_type'])


def downgrade():
    """Drop the indicator access tables."""
    op.drop_index('ix_webhook_events_event_type', table_name='webhook_events')
    op.drop_table('webhook_events')

    op.drop_index('ix_user_indicator_access_membership_id', table_name='user_indicator_access')
    op.drop_index('ix_user_indicator_access_user_id', table_name='user_indicator_access')
    op.drop_table('user_indicator_access')

    op.drop_index('ix_tradingview_indicators_experience_id', table_name='tradingview_indicators')
    op.drop_index('ix_tradingview_indicators_company_id', table_name='tradingview_indicators')
    op.drop_table('tradingview_indicators')

    op.drop_index('ix_tradingview_connections_company_id', table_name='tradingview_connections')
    op.drop_table('tradingview_connections')
