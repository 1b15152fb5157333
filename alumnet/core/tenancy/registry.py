# (c) Copyright Datacraft, 2026
"""
Schema registry.

Durable source of truth for tenant -> schema and hostname -> tenant
mappings. All methods work on a caller-supplied session; the caller
owns the transaction boundary.
"""
import logging
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from alumnet.core.features.tenants.db.orm import (
	SchemaOperation,
	Tenant,
	TenantDomain,
	TenantSchemaOperation,
	TenantStatus,
)
from .exceptions import DomainConflict, SchemaConflict, TenantNotFound

logger = logging.getLogger(__name__)


def normalize_hostname(hostname: str) -> str:
	"""Lower-case a hostname and strip any port and trailing dot."""
	host = hostname.strip().lower()
	if host.startswith("["):
		# IPv6 literal, keep the brackets and drop the port
		return host.split("]")[0] + "]"
	host = host.split(":")[0]
	return host.rstrip(".")


class SchemaRegistry:
	def __init__(self, session: AsyncSession):
		self.session = session

	async def get_tenant(self, tenant_id: UUID) -> Tenant:
		tenant = await self.session.get(Tenant, tenant_id)
		if tenant is None:
			raise TenantNotFound(f"Tenant not found: {tenant_id}")
		return tenant

	async def get_tenant_by_slug(self, slug: str) -> Tenant:
		stmt = select(Tenant).where(Tenant.slug == slug.lower())
		tenant = await self.session.scalar(stmt)
		if tenant is None:
			raise TenantNotFound(f"Tenant not found: {slug}")
		return tenant

	async def list_tenants(
		self,
		statuses: list[TenantStatus] | None = None,
	) -> list[Tenant]:
		stmt = select(Tenant).order_by(Tenant.created_at, Tenant.slug)
		if statuses:
			stmt = stmt.where(Tenant.status.in_([s.value for s in statuses]))
		result = await self.session.scalars(stmt)
		return list(result.all())

	async def register(self, tenant_id: UUID, schema_name: str) -> Tenant:
		"""
		Map a tenant to its schema.

		Registering the same pair again is a no-op. A schema name owned by
		another tenant, or a tenant that already owns a different schema,
		is a SchemaConflict.
		"""
		tenant = await self.get_tenant(tenant_id)

		stmt = select(Tenant).where(
			Tenant.schema_name == schema_name,
			Tenant.id != tenant_id,
		)
		owner = await self.session.scalar(stmt)
		if owner is not None:
			raise SchemaConflict(
				f"Schema {schema_name} is already registered to tenant {owner.id}"
			)

		if tenant.schema_name == schema_name:
			return tenant
		if tenant.schema_name is not None:
			raise SchemaConflict(
				f"Tenant {tenant_id} is already registered to schema {tenant.schema_name}"
			)

		tenant.schema_name = schema_name
		try:
			await self.session.flush()
		except IntegrityError as exc:
			raise SchemaConflict(f"Schema {schema_name} is already registered") from exc
		await self.record_operation(tenant_id, SchemaOperation.REGISTER, schema_name)
		logger.info(f"Registered schema {schema_name} for tenant {tenant.slug}")
		return tenant

	async def resolve(self, tenant_id: UUID) -> str:
		tenant = await self.get_tenant(tenant_id)
		if tenant.schema_name is None:
			raise TenantNotFound(f"No schema registered for tenant: {tenant_id}")
		return tenant.schema_name

	async def resolve_by_domain(self, hostname: str) -> UUID:
		host = normalize_hostname(hostname)
		stmt = select(TenantDomain.tenant_id).where(TenantDomain.hostname == host)
		tenant_id = await self.session.scalar(stmt)
		if tenant_id is None:
			raise TenantNotFound(f"No tenant for domain: {host}")
		return tenant_id

	async def deregister(self, tenant_id: UUID) -> None:
		"""
		Remove the tenant's schema mapping and domains.

		Call only after the schema has been dropped.
		"""
		tenant = await self.get_tenant(tenant_id)
		schema_name = tenant.schema_name
		await self.session.execute(
			delete(TenantDomain).where(TenantDomain.tenant_id == tenant_id)
		)
		tenant.schema_name = None
		await self.session.flush()
		if schema_name is not None:
			await self.record_operation(tenant_id, SchemaOperation.DEREGISTER, schema_name)
			logger.info(f"Deregistered schema {schema_name} for tenant {tenant.slug}")

	async def add_domain(
		self,
		tenant_id: UUID,
		hostname: str,
		is_primary: bool = False,
	) -> TenantDomain:
		host = normalize_hostname(hostname)
		if not host:
			raise ValueError("Empty hostname")
		await self.get_tenant(tenant_id)

		stmt = select(TenantDomain).where(TenantDomain.hostname == host)
		existing = await self.session.scalar(stmt)
		if existing is not None:
			if existing.tenant_id != tenant_id:
				logger.warning(
					f"Domain {host} requested by tenant {tenant_id} "
					f"is owned by tenant {existing.tenant_id}"
				)
				raise DomainConflict(f"Domain {host} belongs to another tenant")
			if is_primary and not existing.is_primary:
				await self._demote_primary(tenant_id, keep=host)
				existing.is_primary = True
				await self.session.flush()
			return existing

		if is_primary:
			await self._demote_primary(tenant_id, keep=host)
		domain = TenantDomain(tenant_id=tenant_id, hostname=host, is_primary=is_primary)
		self.session.add(domain)
		try:
			await self.session.flush()
		except IntegrityError as exc:
			# Lost a race for the unique hostname
			raise DomainConflict(f"Domain {host} belongs to another tenant") from exc
		return domain

	async def _demote_primary(self, tenant_id: UUID, keep: str) -> None:
		"""A tenant has at most one primary domain."""
		await self.session.execute(
			update(TenantDomain)
			.where(
				TenantDomain.tenant_id == tenant_id,
				TenantDomain.hostname != keep,
				TenantDomain.is_primary.is_(True),
			)
			.values(is_primary=False)
		)

	async def remove_domain(self, tenant_id: UUID, hostname: str) -> None:
		host = normalize_hostname(hostname)
		stmt = select(TenantDomain).where(
			TenantDomain.hostname == host,
			TenantDomain.tenant_id == tenant_id,
		)
		domain = await self.session.scalar(stmt)
		if domain is None:
			raise TenantNotFound(f"Domain {host} is not registered to tenant {tenant_id}")
		await self.session.delete(domain)
		await self.session.flush()

	async def record_operation(
		self,
		tenant_id: UUID,
		operation: SchemaOperation,
		schema_name: str,
		details: dict | None = None,
	) -> TenantSchemaOperation:
		entry = TenantSchemaOperation(
			tenant_id=tenant_id,
			operation=operation.value,
			schema_name=schema_name,
			details=details,
		)
		self.session.add(entry)
		await self.session.flush()
		return entry

	async def list_operations(self, tenant_id: UUID) -> list[TenantSchemaOperation]:
		stmt = (
			select(TenantSchemaOperation)
			.where(TenantSchemaOperation.tenant_id == tenant_id)
			.order_by(TenantSchemaOperation.created_at, TenantSchemaOperation.id)
		)
		result = await self.session.scalars(stmt)
		return list(result.all())
