"""create commission engine tables

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Affiliates (referral tree + ledger)
    op.create_table(
        'affiliates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('referral_code', sa.String(length=20), nullable=False),
        sa.Column('parent_affiliate_id', sa.Integer(), nullable=True),
        sa.Column('total_earnings', sa.DECIMAL(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('available_balance', sa.DECIMAL(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('pending_balance', sa.DECIMAL(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('direct_referrals', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_downline', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('total_earnings >= 0', name='check_affiliate_total_earnings_non_negative'),
        sa.CheckConstraint('available_balance >= 0', name='check_affiliate_available_balance_non_negative'),
        sa.CheckConstraint('pending_balance >= 0', name='check_affiliate_pending_balance_non_negative'),
        sa.CheckConstraint('total_earnings >= available_balance', name='check_affiliate_earnings_cover_available'),
        sa.ForeignKeyConstraint(['parent_affiliate_id'], ['affiliates.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_affiliates_user_id', 'affiliates', ['user_id'])
    op.create_index('ix_affiliates_referral_code', 'affiliates', ['referral_code'], unique=True)
    op.create_index('ix_affiliates_parent_affiliate_id', 'affiliates', ['parent_affiliate_id'])
    op.create_index('idx_affiliate_active_created', 'affiliates', ['is_active', 'created_at'])

    # Versioned commission schedule
    op.create_table(
        'commission_rate_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.DECIMAL(precision=5, scale=2), nullable=False),
        sa.Column('max_total_rate', sa.DECIMAL(precision=5, scale=2), nullable=False, server_default='25.00'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('effective_from', sa.DateTime(timezone=True), nullable=False),
        sa.Column('effective_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('version', 'level', name='uq_commission_rate_version_level')
    )
    op.create_index('ix_commission_rate_settings_level', 'commission_rate_settings', ['level'])
    op.create_index('ix_commission_rate_settings_version', 'commission_rate_settings', ['version'])
    op.create_index('ix_commission_rate_settings_is_active', 'commission_rate_settings', ['is_active'])

    # Sales
    op.create_table(
        'affiliate_sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('sale_reference', sa.String(length=255), nullable=False),
        sa.Column('sale_amount', sa.DECIMAL(precision=15, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('payment_details', sa.JSON(), nullable=True),
        sa.Column('verification_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('verified_by', sa.Integer(), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('commissions_distributed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('commissions_paid', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('commissions_paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rate_schedule_version', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('sale_amount > 0', name='check_affiliate_sale_amount_positive'),
        sa.ForeignKeyConstraint(['affiliate_id'], ['affiliates.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_affiliate_sales_affiliate_id', 'affiliate_sales', ['affiliate_id'])
    op.create_index('ix_affiliate_sales_customer_id', 'affiliate_sales', ['customer_id'])
    op.create_index('ix_affiliate_sales_sale_reference', 'affiliate_sales', ['sale_reference'], unique=True)
    op.create_index('idx_affiliate_sale_status_created', 'affiliate_sales', ['verification_status', 'created_at'])
    op.create_index('idx_affiliate_sale_paid_status', 'affiliate_sales', ['commissions_paid', 'verification_status'])

    # Commission batches; (sale_id, level) uniqueness blocks a second batch
    op.create_table(
        'commission_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('affiliate_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('commission_rate', sa.DECIMAL(precision=5, scale=2), nullable=False),
        sa.Column('commission_amount', sa.DECIMAL(precision=15, scale=2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('rate_schedule_version', sa.Integer(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['affiliate_sales.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['affiliate_id'], ['affiliates.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'level', name='uq_commission_record_sale_level')
    )
    op.create_index('ix_commission_records_sale_id', 'commission_records', ['sale_id'])
    op.create_index('ix_commission_records_affiliate_id', 'commission_records', ['affiliate_id'])
    op.create_index('idx_commission_record_affiliate_status', 'commission_records', ['affiliate_id', 'status'])
    op.create_index('idx_commission_record_sale_status', 'commission_records', ['sale_id', 'status'])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('commission_records')
    op.drop_table('affiliate_sales')
    op.drop_table('commission_rate_settings')
    op.drop_table('affiliates')
