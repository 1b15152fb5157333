# (c) Copyright Datacraft, 2026
"""Tenant management API endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from alumnet.core.dependencies import ActiveTenant, Lifecycle, RegistrySession, require_admin
from alumnet.core.tenancy.registry import SchemaRegistry
from . import schema
from .db import api as tenant_api
from .db.orm import Tenant

router = APIRouter(
	prefix="/tenants",
	tags=["tenants"],
)

admin_router = APIRouter(
	prefix="/admin/tenants",
	tags=["tenants-admin"],
	dependencies=[Depends(require_admin)],
)

logger = logging.getLogger(__name__)


async def _detail(db_session, tenant: Tenant) -> schema.TenantDetail:
	result = schema.TenantDetail.model_validate(tenant)
	domains = await tenant_api.get_domains(db_session, tenant.id)
	result.domains = [schema.DomainInfo.model_validate(d) for d in domains]
	return result


@router.get("/current")
async def get_current_tenant(tenant: ActiveTenant) -> schema.CurrentTenant:
	"""Get the tenant bound to this request."""
	return schema.CurrentTenant(
		id=tenant.tenant_id,
		slug=tenant.tenant_slug,
		domain=tenant.domain,
		settings=tenant.settings,
	)


@admin_router.post("", status_code=201)
async def create_tenant(
	data: schema.TenantCreate,
	lifecycle: Lifecycle,
	db_session: RegistrySession,
) -> schema.TenantDetail:
	"""Create a tenant and start provisioning its schema."""
	tenant = await lifecycle.create_tenant(data)
	return await _detail(db_session, tenant)


@admin_router.get("")
async def list_tenants(
	db_session: RegistrySession,
	page: int = 1,
	page_size: int = 50,
	status: str | None = None,
) -> schema.TenantListResponse:
	if page < 1 or not 1 <= page_size <= 500:
		raise HTTPException(status_code=422, detail="Invalid pagination")
	tenants, total = await tenant_api.list_tenants_page(db_session, page, page_size, status)
	return schema.TenantListResponse(
		items=[schema.TenantInfo.model_validate(t) for t in tenants],
		total=total,
		page=page,
		page_size=page_size,
	)


@admin_router.get("/{tenant_id}")
async def get_tenant(tenant_id: UUID, db_session: RegistrySession) -> schema.TenantDetail:
	tenant = await SchemaRegistry(db_session).get_tenant(tenant_id)
	return await _detail(db_session, tenant)


@admin_router.patch("/{tenant_id}")
async def update_tenant(
	tenant_id: UUID,
	updates: schema.TenantUpdate,
	db_session: RegistrySession,
) -> schema.TenantDetail:
	"""Update descriptive fields. Status changes go through the lifecycle endpoints."""
	tenant = await tenant_api.update_tenant(
		db_session, tenant_id, **updates.model_dump(exclude_unset=True)
	)
	if not tenant:
		raise HTTPException(status_code=404, detail="Tenant not found")
	return await _detail(db_session, tenant)


@admin_router.post("/{tenant_id}/suspend")
async def suspend_tenant(
	tenant_id: UUID,
	lifecycle: Lifecycle,
	db_session: RegistrySession,
	reason: str | None = None,
) -> schema.TenantDetail:
	tenant = await lifecycle.suspend_tenant(tenant_id, reason=reason)
	return await _detail(db_session, tenant)


@admin_router.post("/{tenant_id}/reactivate")
async def reactivate_tenant(
	tenant_id: UUID,
	lifecycle: Lifecycle,
	db_session: RegistrySession,
) -> schema.TenantDetail:
	tenant = await lifecycle.reactivate_tenant(tenant_id)
	return await _detail(db_session, tenant)


@admin_router.delete("/{tenant_id}")
async def delete_tenant(
	tenant_id: UUID,
	lifecycle: Lifecycle,
	db_session: RegistrySession,
) -> schema.TenantDetail:
	"""Request deletion. Repeating the request is harmless."""
	tenant = await lifecycle.delete_tenant(tenant_id)
	return await _detail(db_session, tenant)


@admin_router.post("/{tenant_id}/finalize-deletion")
async def finalize_deletion(
	tenant_id: UUID,
	lifecycle: Lifecycle,
	db_session: RegistrySession,
	ignore_grace_period: bool = False,
) -> schema.TenantDetail:
	"""Drop the schema now instead of waiting for the purge job."""
	tenant = await lifecycle.finalize_deletion(
		tenant_id, ignore_grace_period=ignore_grace_period
	)
	return await _detail(db_session, tenant)


@admin_router.post("/{tenant_id}/provision")
async def retry_provisioning(
	tenant_id: UUID,
	lifecycle: Lifecycle,
	db_session: RegistrySession,
) -> schema.TenantDetail:
	"""Retry provisioning of a tenant stuck in provisioning."""
	tenant = await lifecycle.provision(tenant_id, reset_attempts=True)
	return await _detail(db_session, tenant)


@admin_router.post("/{tenant_id}/migrate")
async def migrate_tenant(tenant_id: UUID, lifecycle: Lifecycle) -> list[str]:
	"""Apply pending migrations to one tenant schema."""
	return await lifecycle.provisioner.migrate_schema(tenant_id)


@admin_router.post("/migrate-all")
async def migrate_all(lifecycle: Lifecycle) -> schema.MigrationReport:
	report = await lifecycle.provisioner.migrate_all()
	return schema.MigrationReport.model_validate(report)


@admin_router.get("/{tenant_id}/schema")
async def get_schema_status(tenant_id: UUID, lifecycle: Lifecycle) -> schema.SchemaStatusInfo:
	status = await lifecycle.provisioner.schema_status(tenant_id)
	return schema.SchemaStatusInfo.model_validate(status)


@admin_router.get("/{tenant_id}/operations")
async def list_schema_operations(
	tenant_id: UUID,
	db_session: RegistrySession,
) -> list[schema.SchemaOperationInfo]:
	operations = await SchemaRegistry(db_session).list_operations(tenant_id)
	return [schema.SchemaOperationInfo.model_validate(op) for op in operations]


@admin_router.post("/{tenant_id}/domains", status_code=201)
async def add_domain(
	tenant_id: UUID,
	data: schema.DomainCreate,
	db_session: RegistrySession,
) -> schema.DomainInfo:
	domain = await SchemaRegistry(db_session).add_domain(
		tenant_id, data.hostname, is_primary=data.is_primary
	)
	await db_session.commit()
	return schema.DomainInfo.model_validate(domain)


@admin_router.delete("/{tenant_id}/domains/{hostname}", status_code=204)
async def remove_domain(
	tenant_id: UUID,
	hostname: str,
	db_session: RegistrySession,
) -> None:
	await SchemaRegistry(db_session).remove_domain(tenant_id, hostname)
	await db_session.commit()
