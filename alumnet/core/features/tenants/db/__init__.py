# (c) Copyright Datacraft, 2026
from .orm import (
	SchemaOperation,
	Tenant,
	TenantDomain,
	TenantSchemaOperation,
	TenantStatus,
)
from .api import get_domains, list_tenants_page, update_tenant

__all__ = [
	"SchemaOperation",
	"Tenant",
	"TenantDomain",
	"TenantSchemaOperation",
	"TenantStatus",
	"get_domains",
	"list_tenants_page",
	"update_tenant",
]
