# (c) Copyright Datacraft, 2026
"""
Tenant schema migrations.

Every tenant schema carries a `tenant_schema_migrations` table listing
the revisions applied to it. Provisioning a new schema replays the whole
chain; migrating an existing schema applies only the pending tail, one
revision per transaction.
"""
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Callable, Sequence

from sqlalchemy import Column, DateTime, MetaData, String, Table, select
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from alumnet.core.tenancy.schema import validate_schema_name
from alumnet.core.utils.tz import utc_now

logger = logging.getLogger(__name__)

VERSION_TABLE = "tenant_schema_migrations"


@dataclass(frozen=True)
class TenantMigration:
	revision: str
	down_revision: str | None
	description: str
	upgrade: Callable[[Connection, str], None]

	@classmethod
	def from_module(cls, module: ModuleType) -> "TenantMigration":
		doc = (module.__doc__ or "").strip()
		return cls(
			revision=module.revision,
			down_revision=module.down_revision,
			description=doc.splitlines()[0] if doc else "",
			upgrade=module.upgrade,
		)


def order_migrations(migrations: Sequence[TenantMigration]) -> list[TenantMigration]:
	"""Order migrations along their down_revision chain, rejecting forks and gaps."""
	by_parent: dict[str | None, TenantMigration] = {}
	for migration in migrations:
		if migration.down_revision in by_parent:
			raise ValueError(
				f"Migrations {by_parent[migration.down_revision].revision} and "
				f"{migration.revision} share down_revision {migration.down_revision}"
			)
		by_parent[migration.down_revision] = migration

	ordered = []
	parent = None
	while parent in by_parent:
		migration = by_parent.pop(parent)
		ordered.append(migration)
		parent = migration.revision
	if by_parent:
		orphans = ", ".join(sorted(m.revision for m in by_parent.values()))
		raise ValueError(f"Migrations not connected to the chain: {orphans}")
	return ordered


def load_migrations() -> list[TenantMigration]:
	from .versions import MODULES

	return order_migrations([TenantMigration.from_module(m) for m in MODULES])


def version_table(schema_name: str) -> Table:
	return Table(
		VERSION_TABLE,
		MetaData(),
		Column("revision", String(64), primary_key=True),
		Column("description", String(255)),
		Column("applied_at", DateTime(timezone=True), nullable=False),
		schema=schema_name,
	)


def _applied_revisions(conn: Connection, schema_name: str) -> list[str]:
	table = version_table(schema_name)
	table.create(conn, checkfirst=True)
	result = conn.execute(
		select(table.c.revision).order_by(table.c.applied_at, table.c.revision)
	)
	return [row[0] for row in result]


def _apply_one(conn: Connection, schema_name: str, migration: TenantMigration) -> None:
	migration.upgrade(conn, schema_name)
	conn.execute(
		version_table(schema_name).insert().values(
			revision=migration.revision,
			description=migration.description[:255],
			applied_at=utc_now(),
		)
	)


async def get_applied_revisions(engine: AsyncEngine, schema_name: str) -> list[str]:
	validate_schema_name(schema_name)
	async with engine.begin() as conn:
		return await conn.run_sync(_applied_revisions, schema_name)


def pending_migrations(
	migrations: Sequence[TenantMigration],
	applied: Sequence[str],
) -> list[TenantMigration]:
	applied_set = set(applied)
	return [m for m in order_migrations(migrations) if m.revision not in applied_set]


async def apply_migrations(
	engine: AsyncEngine,
	schema_name: str,
	migrations: Sequence[TenantMigration],
) -> list[str]:
	"""Apply pending migrations to one schema. Returns applied revisions."""
	applied = await get_applied_revisions(engine, schema_name)
	done = []
	for migration in pending_migrations(migrations, applied):
		async with engine.begin() as conn:
			await conn.run_sync(_apply_one, schema_name, migration)
		logger.info(f"Applied tenant migration {migration.revision} to {schema_name}")
		done.append(migration.revision)
	return done
