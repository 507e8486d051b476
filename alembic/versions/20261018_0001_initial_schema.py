"""Initial schema - portals, activities, admin consoles, payments

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Users of every portal share one table
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, default='simple-user', index=True),
        sa.Column('status', sa.String(20), nullable=False, default='active', index=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('organization_name', sa.String(255), nullable=True),
        sa.Column('registration_number', sa.String(100), unique=True, nullable=True),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('tax_id', sa.String(100), unique=True, nullable=True),
        sa.Column('contact_person', sa.String(255), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('token_hash', sa.String(255), unique=True, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'activities',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('proof_image', sa.String(500), nullable=False),
        sa.Column('credits', sa.Integer(), nullable=False, default=0),
        sa.Column('status', sa.String(20), nullable=False, default='pending'),
        sa.Column('submitted_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('verified_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', sa.Uuid(), nullable=True),
        sa.Column('admin_notes', sa.String(1000), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_activities_user_submitted', 'activities', ['user_id', 'submitted_date'])
    op.create_index('ix_activities_status', 'activities', ['status'])

    op.create_table(
        'rate_limits',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('endpoint', sa.String(255), nullable=False, index=True),
        sa.Column('method', sa.String(10), nullable=False, default='GET'),
        sa.Column('limit', sa.Integer(), nullable=False),
        sa.Column('window', sa.String(20), nullable=False),
        sa.Column('current', sa.Integer(), nullable=False, default=0),
        sa.Column('status', sa.String(20), nullable=False, default='normal', index=True),
        sa.Column('description', sa.String(500), nullable=False, default=''),
        sa.Column('category', sa.String(20), nullable=False, default='api', index=True),
        sa.Column('enabled', sa.Boolean(), nullable=False, default=True),
        sa.Column('source', sa.String(10), nullable=False, default='manual'),
        sa.Column('blocked_requests', sa.Integer(), nullable=False, default=0),
        sa.Column('average_response_time', sa.Float(), nullable=False, default=0.0),
        sa.Column('last_reset', sa.DateTime(timezone=True), nullable=False),
        sa.Column('next_reset', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('endpoint', 'method', name='uq_rate_limits_endpoint_method'),
    )

    # Append-only; rows are never updated after insert
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('actor', sa.String(255), nullable=False, index=True),
        sa.Column('actor_role', sa.String(50), nullable=True),
        sa.Column('action', sa.String(50), nullable=False, index=True),
        sa.Column('resource', sa.String(255), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('severity', sa.String(20), nullable=False, index=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('hash', sa.String(80), nullable=True),
        sa.Column('session_id', sa.String(100), nullable=True),
        sa.Column('source', sa.String(10), nullable=False, default='manual'),
        sa.Column('metadata', sa.JSON(), nullable=False),
    )
    op.create_index('ix_audit_logs_action_time', 'audit_logs', ['action', 'timestamp'])
    op.create_index('ix_audit_logs_severity_time', 'audit_logs', ['severity', 'timestamp'])

    op.create_table(
        'finance_transactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('transaction_id', sa.String(64), unique=True, nullable=False, index=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('type', sa.String(20), nullable=False, index=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, default='USD'),
        sa.Column('status', sa.String(20), nullable=False, index=True),
        sa.Column('entity', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference', sa.String(255), nullable=True),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('fees', sa.Float(), nullable=False, default=0.0),
        sa.Column('net_amount', sa.Float(), nullable=True),
        sa.Column('invoice_id', sa.String(64), nullable=True),
        sa.Column('source', sa.String(10), nullable=False, default='manual'),
        *_timestamps(),
    )
    op.create_index('ix_finance_transactions_status_time', 'finance_transactions', ['status', 'timestamp'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, default='usd'),
        sa.Column('status', sa.String(20), nullable=False, default='pending', index=True),
        sa.Column('stripe_payment_intent_id', sa.String(255), unique=True, nullable=False),
        sa.Column('project_id', sa.String(64), nullable=True),
        sa.Column('project_title', sa.String(255), nullable=True),
        sa.Column('carbon_units', sa.Float(), nullable=False, default=0.0),
        sa.Column('carbon_credits', sa.Float(), nullable=False, default=0.0),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('webhook_processed', sa.Boolean(), nullable=False, default=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_index('ix_finance_transactions_status_time', table_name='finance_transactions')
    op.drop_table('finance_transactions')
    op.drop_index('ix_audit_logs_severity_time', table_name='audit_logs')
    op.drop_index('ix_audit_logs_action_time', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('rate_limits')
    op.drop_index('ix_activities_status', table_name='activities')
    op.drop_index('ix_activities_user_submitted', table_name='activities')
    op.drop_table('activities')
    op.drop_table('refresh_tokens')
    op.drop_table('users')
