# (c) Copyright Datacraft, 2026
"""Tenant registry: tenants, domains and schema operations.

Revision ID: a0001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'a0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
	op.create_table(
		'tenants',
		sa.Column('id', sa.Uuid, primary_key=True),
		sa.Column('name', sa.String(255), nullable=False),
		sa.Column('slug', sa.String(100), nullable=False, unique=True),
		sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
		sa.Column('schema_name', sa.String(63), nullable=True, unique=True),
		sa.Column('plan', sa.String(50), server_default='free'),
		sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('contact_email', sa.String(255), nullable=True),
		sa.Column('settings', sa.JSON, nullable=True),
		sa.Column('provisioning_attempts', sa.Integer, nullable=False, server_default='0'),
		sa.Column('last_error', sa.Text, nullable=True),
		sa.Column('provisioned_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('deletion_requested_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('purge_after', sa.DateTime(timezone=True), nullable=True),
		sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
		sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
	)
	op.create_index('idx_tenants_status', 'tenants', ['status'])

	op.create_table(
		'tenant_domains',
		sa.Column('id', sa.Uuid, primary_key=True),
		sa.Column(
			'tenant_id',
			sa.Uuid,
			sa.ForeignKey('tenants.id', ondelete='CASCADE'),
			nullable=False,
		),
		sa.Column('hostname', sa.String(255), nullable=False, unique=True),
		sa.Column('is_primary', sa.Boolean, server_default=sa.false()),
		sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
	)
	op.create_index('ix_tenant_domains_tenant_id', 'tenant_domains', ['tenant_id'])

	op.create_table(
		'tenant_schema_operations',
		sa.Column('id', sa.Uuid, primary_key=True),
		sa.Column('tenant_id', sa.Uuid, nullable=False),
		sa.Column('operation', sa.String(20), nullable=False),
		sa.Column('schema_name', sa.String(63), nullable=False),
		sa.Column('details', sa.JSON, nullable=True),
		sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
	)
	op.create_index(
		'ix_tenant_schema_operations_tenant_id',
		'tenant_schema_operations',
		['tenant_id'],
	)


def downgrade() -> None:
	op.drop_table('tenant_schema_operations')
	op.drop_table('tenant_domains')
	op.drop_table('tenants')
