"""Create subscription engine tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create packages, contributors, subscriptions and history tables"""

    # 1. Plan catalog
    op.create_table('packages',
        sa.Column('package_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(100), nullable=False, comment='Unique plan name'),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('duration_unit', sa.String(10), nullable=False, comment='days/months/years'),
        sa.Column('tier', sa.String(20), nullable=False, comment='free/basic/premium/enterprise'),
        sa.Column('ceilings', sa.JSON(), nullable=False),
        sa.Column('max_projects', sa.String(20), nullable=True),
        sa.Column('storage_limit', sa.String(20), nullable=True),
        sa.Column('api_calls_limit', sa.String(20), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('is_free', sa.Boolean(), nullable=False),
        sa.Column('is_popular', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('auto_renewal', sa.Boolean(), nullable=False),
        sa.Column('max_free_trial_duration', sa.Integer(), nullable=True, comment='Free trial length in days'),
        sa.Column('discount_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('discount_valid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),

        sa.PrimaryKeyConstraint('package_id', name='pk_packages'),
        sa.UniqueConstraint('name', name='uq_packages_name'),
        sa.CheckConstraint('duration >= 1', name='ck_packages_duration_positive'),
        sa.CheckConstraint(
            'max_free_trial_duration IS NULL OR (max_free_trial_duration BETWEEN 1 AND 365)',
            name='ck_packages_trial_duration_range',
        ),
    )

    # 2. Contributor entitlement mirror
    op.create_table('contributors',
        sa.Column('contributor_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('current_subscription_id', sa.String(36), nullable=True, comment='Active or trial subscription'),
        sa.Column('subscription_status', sa.String(20), nullable=True, comment='active/expired/cancelled/pending/trial'),
        sa.Column('subscription_tier', sa.String(20), nullable=False),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('billing_info', sa.JSON(), nullable=True),
        sa.Column('usage_limits', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),

        sa.PrimaryKeyConstraint('contributor_id', name='pk_contributors'),
        sa.UniqueConstraint('email', name='uq_contributors_email'),
    )

    # 3. Subscriptions
    op.create_table('subscriptions',
        sa.Column('subscription_id', sa.String(36), nullable=False),
        sa.Column('contributor_id', sa.String(36), nullable=False),
        sa.Column('package_id', sa.String(36), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, comment='pending/active/expired/cancelled/suspended'),
        sa.Column('payment_status', sa.String(20), nullable=False, comment='pending/paid/failed/refunded'),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('transaction_id', sa.String(100), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('auto_renewal', sa.Boolean(), nullable=False),
        sa.Column('renewal_attempts', sa.Integer(), nullable=False),
        sa.Column('last_renewal_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('next_billing_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelation_reason', sa.String(500), nullable=True),
        sa.Column('is_free_trial', sa.Boolean(), nullable=False),
        sa.Column('last_notified_threshold', sa.Integer(), nullable=True),
        sa.Column('usage_stats', sa.JSON(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),

        sa.PrimaryKeyConstraint('subscription_id', name='pk_subscriptions'),
        sa.ForeignKeyConstraint(
            ['contributor_id'], ['contributors.contributor_id'],
            name='fk_subscriptions_contributor_id_contributors', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['package_id'], ['packages.package_id'],
            name='fk_subscriptions_package_id_packages',
        ),
        sa.UniqueConstraint('transaction_id', name='uq_subscriptions_transaction_id'),
        sa.CheckConstraint('end_date > start_date', name='ck_subscriptions_end_after_start'),
    )

    op.create_index('ix_subscriptions_contributor_id', 'subscriptions', ['contributor_id'])
    op.create_index('ix_subscriptions_end_date', 'subscriptions', ['end_date'])
    op.create_index('ix_subscriptions_status_end_date', 'subscriptions', ['status', 'end_date'])

    # At most one ACTIVE subscription per contributor
    op.create_index(
        'uq_subscriptions_one_active_per_contributor',
        'subscriptions',
        ['contributor_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    # 4. Ordered subscription history
    op.create_table('contributor_subscription_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('contributor_id', sa.String(36), nullable=False),
        sa.Column('subscription_id', sa.String(36), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),

        sa.PrimaryKeyConstraint('id', name='pk_contributor_subscription_history'),
        sa.ForeignKeyConstraint(
            ['contributor_id'], ['contributors.contributor_id'],
            name='fk_contributor_subscription_history_contributor_id_contributors', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['subscription_id'], ['subscriptions.subscription_id'],
            name='fk_contributor_subscription_history_subscription_id_subscriptions', ondelete='CASCADE',
        ),
    )

    op.create_index(
        'ix_contributor_subscription_history_contributor_id',
        'contributor_subscription_history',
        ['contributor_id'],
    )


def downgrade() -> None:
    """Drop subscription engine tables"""
    op.drop_index('ix_contributor_subscription_history_contributor_id', table_name='contributor_subscription_history')
    op.drop_table('contributor_subscription_history')

    op.drop_index('uq_subscriptions_one_active_per_contributor', table_name='subscriptions')
    op.drop_index('ix_subscriptions_status_end_date', table_name='subscriptions')
    op.drop_index('ix_subscriptions_end_date', table_name='subscriptions')
    op.drop_index('ix_subscriptions_contributor_id', table_name='subscriptions')
    op.drop_table('subscriptions')

    op.drop_table('contributors')
    op.drop_table('packages')
