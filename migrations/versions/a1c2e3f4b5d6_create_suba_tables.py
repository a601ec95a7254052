"""create suba tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


revision = 'a1c2e3f4b5d6'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = False):
    cols = [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if with_updated:
        cols.append(
            sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return cols


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('phone_number', sa.String(32), nullable=True),
        sa.Column('country', sa.String(64), nullable=True),
        sa.Column('avatar_url', sa.String(512), nullable=True),
        sa.Column('default_currency', sa.String(3), nullable=False, server_default='NGN'),
        sa.Column('default_monthly_budget', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('prefers_dark_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(with_updated=True),
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('service_provider', sa.String(255), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=True, server_default='NGN'),
        sa.Column('billing_cycle', sa.String(16), nullable=False, server_default='monthly'),
        sa.Column('next_billing_date', sa.Date(), nullable=False),
        sa.Column('last_payment_date', sa.Date(), nullable=True),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reminder_days_before', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('is_shared', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_link', sa.String(512), nullable=True),
        sa.Column('logo_url', sa.String(512), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('skipped_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('next_reminder_date', sa.Date(), nullable=True),
        sa.Column('total_payments', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('payment_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(with_updated=True),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subscription_id', sa.Integer(), sa.ForeignKey('subscriptions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('payment_method', sa.String(32), nullable=True),
        sa.Column('method', sa.String(32), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='successful'),
        sa.Column('paid_at', sa.DateTime(), nullable=False),
        sa.Column('receipt_url', sa.String(512), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])
    op.create_index('ix_payments_subscription_id', 'payments', ['subscription_id'])
    op.create_index('ix_payments_paid_at', 'payments', ['paid_at'])

    op.create_table(
        'shared_plans',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plan_name', sa.String(255), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('split_type', sa.String(16), nullable=False),
        sa.Column('max_participants', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_shared_plans_user_id', 'shared_plans', ['user_id'])

    op.create_table(
        'shared_plan_participants',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('shared_plans.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='invited'),
        sa.Column('split_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('plan_id', 'user_id', name='uq_shared_plan_participant'),
    )
    op.create_index('ix_shared_plan_participants_plan_id', 'shared_plan_participants', ['plan_id'])
    op.create_index('ix_shared_plan_participants_user_id', 'shared_plan_participants', ['user_id'])

    op.create_table(
        'ai_insights',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('affected_services', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('confidence_score', sa.Numeric(3, 2), nullable=True),
        sa.Column('resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('generated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_ai_insights_user_id', 'ai_insights', ['user_id'])

    op.create_table(
        'budget_reports',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('report_month', sa.String(7), nullable=False),
        sa.Column('total_spent', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('recurring_services', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('new_subscriptions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('canceled_subscriptions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('most_expensive_service', sa.String(255), nullable=True),
        sa.Column('category_breakdown', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'report_month', name='uq_budget_report_user_month'),
    )
    op.create_index('ix_budget_reports_user_id', 'budget_reports', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(32), nullable=False, server_default='general'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('seen', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('budget_reports')
    op.drop_table('ai_insights')
    op.drop_table('shared_plan_participants')
    op.drop_table('shared_plans')
    op.drop_table('payments')
    op.drop_table('subscriptions')
    op.drop_table('users')
