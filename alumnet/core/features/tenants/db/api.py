# (c) Copyright Datacraft, 2026
"""Tenant database API."""
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import Tenant, TenantDomain


async def list_tenants_page(
	db: AsyncSession,
	page: int = 1,
	page_size: int = 50,
	status: str | None = None,
) -> tuple[list[Tenant], int]:
	"""Get one page of tenants and the total count."""
	stmt = select(Tenant)
	count_stmt = select(func.count()).select_from(Tenant)
	if status:
		stmt = stmt.where(Tenant.status == status)
		count_stmt = count_stmt.where(Tenant.status == status)

	total = await db.scalar(count_stmt) or 0
	stmt = (
		stmt.order_by(Tenant.created_at, Tenant.slug)
		.offset((page - 1) * page_size)
		.limit(page_size)
	)
	result = await db.scalars(stmt)
	return list(result.all()), total


async def get_domains(db: AsyncSession, tenant_id: UUID) -> list[TenantDomain]:
	"""Get tenant domains, primary first."""
	stmt = (
		select(TenantDomain)
		.where(TenantDomain.tenant_id == tenant_id)
		.order_by(TenantDomain.is_primary.desc(), TenantDomain.hostname)
	)
	result = await db.scalars(stmt)
	return list(result.all())


async def update_tenant(
	db: AsyncSession,
	tenant_id: UUID,
	**kwargs
) -> Tenant | None:
	"""Update descriptive tenant fields. Lifecycle fields are not touched here."""
	tenant = await db.get(Tenant, tenant_id)
	if not tenant:
		return None

	for key, value in kwargs.items():
		if key in ("name", "plan", "contact_email", "trial_ends_at", "settings"):
			setattr(tenant, key, value)

	await db.commit()
	return tenant
