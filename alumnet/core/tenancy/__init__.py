# (c) Copyright Datacraft, 2026
"""
Multi-tenancy module with schema-per-tenant isolation.

Provides the schema registry, tenant context management, schema
provisioning, query scoping and the tenant lifecycle.
"""
from .context import (
	TenantContext,
	TenantContextManager,
	clear_tenant_context,
	get_tenant_context,
	require_tenant_context,
	set_tenant_context,
	tenancy_opt_out,
	tenant_scope,
)
from .exceptions import (
	CrossTenantAccess,
	DomainConflict,
	InvalidTenantState,
	MissingTenantContext,
	ProvisioningFailure,
	SchemaConflict,
	TenancyError,
	TenantAlreadyExists,
	TenantNotFound,
	TenantSuspended,
	UnsafeDeletion,
)
from .registry import SchemaRegistry
from .schema import TenantSchemaManager
from .scoping import TenantScopedSession

__all__ = [
	'TenantContext',
	'TenantContextManager',
	'clear_tenant_context',
	'get_tenant_context',
	'require_tenant_context',
	'set_tenant_context',
	'tenancy_opt_out',
	'tenant_scope',
	'CrossTenantAccess',
	'DomainConflict',
	'InvalidTenantState',
	'MissingTenantContext',
	'ProvisioningFailure',
	'SchemaConflict',
	'TenancyError',
	'TenantAlreadyExists',
	'TenantNotFound',
	'TenantSuspended',
	'UnsafeDeletion',
	'SchemaRegistry',
	'TenantSchemaManager',
	'TenantScopedSession',
]
