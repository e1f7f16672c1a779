"""Initial schema

Create customers, orders, campaigns and delivery_records.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create tables"""

    # Customers table
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('total_spends', sa.Float, nullable=False, server_default='0'),
        sa.Column('visits', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_visit', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_customers_total_spends', 'customers', ['total_spends'])
    op.create_index('ix_customers_last_visit', 'customers', ['last_visit'])
    op.create_index('ix_customers_created', 'customers', ['created_at', 'id'])

    # Orders table
    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('customer_email', sa.String(320), nullable=False),
        sa.Column('amount', sa.Float, nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('items', postgresql.JSON, nullable=False, server_default='[]'),
        *_timestamps(),
    )
    op.create_index('ix_orders_customer_email', 'orders', ['customer_email'])
    op.create_index('ix_orders_date', 'orders', ['date'])

    # Campaigns table
    op.create_table(
        'campaigns',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('rules', postgresql.JSON, nullable=False, server_default='[]'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('audience_size', sa.Integer, nullable=False, server_default='0'),
        sa.Column('sent_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('failed_count', sa.Integer, nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint(
            'sent_count + failed_count <= audience_size',
            name='ck_campaigns_counters_within_audience',
        ),
    )
    op.create_index('ix_campaigns_status', 'campaigns', ['status'])
    op.create_index('ix_campaigns_created', 'campaigns', ['created_at'])

    # Delivery records table (high volume)
    op.create_table(
        'delivery_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('campaign_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('campaigns.id'), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('customer_email', sa.String(320), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        *_timestamps(),
    )
    op.create_index('ix_delivery_records_campaign_id', 'delivery_records', ['campaign_id'])
    op.create_index('ix_delivery_records_campaign_status', 'delivery_records', ['campaign_id', 'status'])
    op.create_index('ix_delivery_records_created', 'delivery_records', ['created_at'])


def downgrade() -> None:
    """Drop tables"""
    op.drop_table('delivery_records')
    op.drop_table('campaigns')
    op.drop_table('orders')
    op.drop_table('customers')
