# (c) Copyright Datacraft, 2026
"""
Schema provisioner.

Physical creation, migration and destruction of tenant schemas. Registry
updates are committed before the physical step they describe, so a crash
leaves a registry record pointing at a schema that can be resumed, never
an unregistered schema that looks live.
"""
import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from alumnet.core.features.tenants.db.orm import SchemaOperation, TenantStatus
from .exceptions import InvalidTenantState, ProvisioningFailure, UnsafeDeletion
from .migrations import (
	TenantMigration,
	VERSION_TABLE,
	apply_migrations,
	get_applied_revisions,
	load_migrations,
	pending_migrations,
)
from .registry import SchemaRegistry
from .schema import TenantSchemaManager
from .seed import DEFAULT_SEEDERS, TenantSeeder

logger = logging.getLogger(__name__)

MIGRATABLE_STATUSES = (
	TenantStatus.PROVISIONING,
	TenantStatus.ACTIVE,
	TenantStatus.SUSPENDED,
)


@dataclass
class SchemaStatus:
	schema_name: str | None
	exists: bool
	applied_revisions: list[str] = field(default_factory=list)
	pending_revisions: list[str] = field(default_factory=list)
	tables: list[str] = field(default_factory=list)
	table_counts: dict[str, int] = field(default_factory=dict)
	size_bytes: int = 0
	issues: list[str] = field(default_factory=list)


@dataclass
class RollingMigrationReport:
	migrated: dict[str, list[str]] = field(default_factory=dict)
	failed: dict[str, str] = field(default_factory=dict)


class SchemaProvisioner:
	def __init__(
		self,
		engine: AsyncEngine,
		session_factory: async_sessionmaker,
		schema_manager: TenantSchemaManager | None = None,
		migrations: Sequence[TenantMigration] | None = None,
		seeders: Sequence[TenantSeeder] | None = None,
	):
		self.engine = engine
		self.session_factory = session_factory
		self.schema_manager = schema_manager or TenantSchemaManager(engine)
		self.migrations = list(migrations) if migrations is not None else load_migrations()
		self.seeders = list(seeders) if seeders is not None else list(DEFAULT_SEEDERS)
		# Entries vanish once no operation holds or awaits the lock
		self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
			weakref.WeakValueDictionary()
		)

	def _lock(self, tenant_id: UUID) -> asyncio.Lock:
		lock = self._locks.get(tenant_id)
		if lock is None:
			lock = asyncio.Lock()
			self._locks[tenant_id] = lock
		return lock

	async def _seed(self, schema_name: str, initial_data: dict[str, Any]) -> int:
		seeded = 0
		async with self.engine.begin() as conn:
			for seeder in self.seeders:
				seeded += await conn.run_sync(seeder, schema_name, initial_data)
		return seeded

	async def _record(
		self,
		tenant_id: UUID,
		operation: SchemaOperation,
		schema_name: str,
		details: dict | None = None,
	) -> None:
		async with self.session_factory() as session:
			await SchemaRegistry(session).record_operation(
				tenant_id, operation, schema_name, details
			)
			await session.commit()

	async def create_schema(
		self,
		tenant_id: UUID,
		initial_data: dict[str, Any] | None = None,
	) -> str:
		"""
		Register, create, fully migrate and seed the tenant's schema.

		`initial_data` overrides the seeded default settings.

		Idempotent: a second call for the same tenant finds the schema
		registered, existing and up to date, and changes nothing. A call
		after a partial failure resumes from the last applied revision.
		"""
		schema_name = self.schema_manager.get_schema_name(tenant_id)

		async with self._lock(tenant_id):
			async with self.session_factory() as session:
				registry = SchemaRegistry(session)
				tenant = await registry.get_tenant(tenant_id)
				if TenantStatus(tenant.status) not in MIGRATABLE_STATUSES:
					raise InvalidTenantState(
						f"Cannot create schema for tenant {tenant.slug} in state {tenant.status}"
					)
				await registry.register(tenant_id, schema_name)
				await session.commit()

			try:
				created = await self.schema_manager.create_schema(schema_name)
				applied = await apply_migrations(self.engine, schema_name, self.migrations)
				seeded = await self._seed(schema_name, initial_data or {})
			except Exception as exc:
				logger.error(
					f"Provisioning schema {schema_name} for tenant {tenant_id} failed: {exc}"
				)
				raise ProvisioningFailure(
					f"Provisioning schema {schema_name} failed: {exc}", cause=exc
				) from exc

		if created or applied or seeded:
			await self._record(
				tenant_id,
				SchemaOperation.CREATE,
				schema_name,
				{"created": created, "revisions": applied, "seeded": seeded},
			)
			logger.info(
				f"Provisioned schema {schema_name} for tenant {tenant_id} "
				f"({len(applied)} revisions applied)"
			)
		return schema_name

	async def migrate_schema(
		self,
		tenant_id: UUID,
		migrations: Sequence[TenantMigration] | None = None,
	) -> list[str]:
		"""Apply pending migrations to one tenant's existing schema."""
		migrations = self.migrations if migrations is None else migrations

		async with self._lock(tenant_id):
			async with self.session_factory() as session:
				registry = SchemaRegistry(session)
				tenant = await registry.get_tenant(tenant_id)
				if TenantStatus(tenant.status) not in MIGRATABLE_STATUSES:
					raise InvalidTenantState(
						f"Cannot migrate schema for tenant {tenant.slug} in state {tenant.status}"
					)
				schema_name = await registry.resolve(tenant_id)

			if not await self.schema_manager.schema_exists(schema_name):
				raise InvalidTenantState(
					f"Schema {schema_name} is registered but does not exist; reprovision it"
				)
			try:
				applied = await apply_migrations(self.engine, schema_name, migrations)
			except Exception as exc:
				logger.error(f"Migrating schema {schema_name} failed: {exc}")
				raise ProvisioningFailure(
					f"Migrating schema {schema_name} failed: {exc}", cause=exc
				) from exc

		if applied:
			await self._record(
				tenant_id, SchemaOperation.MIGRATE, schema_name, {"revisions": applied}
			)
		return applied

	async def migrate_all(
		self,
		migrations: Sequence[TenantMigration] | None = None,
	) -> RollingMigrationReport:
		"""
		Roll migrations out tenant by tenant.

		A failing tenant is reported and skipped; the rest continue.
		"""
		async with self.session_factory() as session:
			tenants = await SchemaRegistry(session).list_tenants(
				statuses=[TenantStatus.ACTIVE, TenantStatus.SUSPENDED]
			)
			tenant_ids = [(t.id, t.slug) for t in tenants]

		report = RollingMigrationReport()
		for tenant_id, slug in tenant_ids:
			try:
				report.migrated[slug] = await self.migrate_schema(tenant_id, migrations)
			except (ProvisioningFailure, InvalidTenantState) as exc:
				logger.error(f"Rolling migration failed for tenant {slug}: {exc.detail}")
				report.failed[slug] = exc.detail
		logger.info(
			f"Rolling migration complete: {len(report.migrated)} migrated, "
			f"{len(report.failed)} failed"
		)
		return report

	async def drop_schema(self, tenant_id: UUID) -> bool:
		"""
		Drop the tenant's schema. Irreversible.

		Refused unless the tenant is pending deletion. Returns False when
		the schema was already gone (resumed deletion).
		"""
		async with self._lock(tenant_id):
			async with self.session_factory() as session:
				tenant = await SchemaRegistry(session).get_tenant(tenant_id)
				if tenant.status != TenantStatus.PENDING_DELETION.value:
					raise UnsafeDeletion(
						f"Refusing to drop schema of tenant {tenant.slug} in state {tenant.status}"
					)
				schema_name = tenant.schema_name or self.schema_manager.get_schema_name(tenant_id)

			dropped = await self.schema_manager.drop_schema(schema_name, cascade=True)

		if dropped:
			await self._record(tenant_id, SchemaOperation.DROP, schema_name)
			logger.warning(f"Schema {schema_name} of tenant {tenant_id} dropped permanently")
		else:
			logger.info(f"Schema {schema_name} of tenant {tenant_id} was already dropped")
		return dropped

	async def schema_status(self, tenant_id: UUID) -> SchemaStatus:
		"""Inspect a tenant's schema: existence, revisions, tables and size."""
		async with self.session_factory() as session:
			tenant = await SchemaRegistry(session).get_tenant(tenant_id)
			schema_name = tenant.schema_name

		if schema_name is None:
			return SchemaStatus(
				schema_name=None,
				exists=False,
				issues=["No schema registered for tenant"],
			)

		status = SchemaStatus(
			schema_name=schema_name,
			exists=await self.schema_manager.schema_exists(schema_name),
		)
		if not status.exists:
			status.issues.append(f"Schema does not exist: {schema_name}")
			return status

		status.table_counts = await self.schema_manager.get_schema_table_counts(schema_name)
		status.tables = sorted(status.table_counts)
		status.size_bytes = await self.schema_manager.get_schema_size(schema_name)

		if VERSION_TABLE in status.tables:
			status.applied_revisions = await get_applied_revisions(self.engine, schema_name)
		else:
			status.issues.append(f"Missing version table: {VERSION_TABLE}")
		status.pending_revisions = [
			m.revision for m in pending_migrations(self.migrations, status.applied_revisions)
		]
		for revision in status.pending_revisions:
			status.issues.append(f"Pending migration: {revision}")
		return status

	async def validate_schema(self, tenant_id: UUID) -> list[str]:
		"""List integrity issues of a tenant schema; empty means healthy."""
		return (await self.schema_status(tenant_id)).issues
