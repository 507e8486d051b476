"""Access control console - access policies, IP rules, role permissions

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'access_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, index=True),
        sa.Column('type', sa.String(30), nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='active', index=True),
        sa.Column('priority', sa.Integer(), nullable=False, default=1),
        sa.Column('conditions', sa.JSON(), nullable=False),
        sa.Column('affected_users', sa.Integer(), nullable=True),
        sa.Column('affected_ips', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('updated_by', sa.String(255), nullable=True),
        sa.Column('created_on', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_modified', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('source', sa.String(10), nullable=False, default='manual'),
        *_timestamps(),
    )

    op.create_table(
        'ip_access_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('ip_address', sa.String(64), nullable=False, index=True),
        sa.Column('cidr', sa.String(4), nullable=True),
        sa.Column('type', sa.String(10), nullable=False, index=True),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='active', index=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_on', sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column('source', sa.String(10), nullable=False, default='manual'),
        *_timestamps(),
    )

    op.create_table(
        'role_access_config',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('role', sa.String(100), unique=True, nullable=False, index=True),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('resources', sa.JSON(), nullable=False),
        sa.Column('restrictions', sa.JSON(), nullable=False),
        sa.Column('source', sa.String(10), nullable=False, default='manual'),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('role_access_config')
    op.drop_table('ip_access_rules')
    op.drop_table('access_rules')
